import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ...domain.errors import EmailAlreadyRegistered, PersistenceError
from ...domain.models import Notification, Role, User
from ...domain.ports.persistence import PersistenceGateway


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway."""

    def __init__(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    role TEXT NOT NULL CHECK (role IN ('admin', 'client', 'team')),
                    two_factor_secret TEXT,
                    two_factor_enabled INTEGER NOT NULL DEFAULT 0,
                    two_factor_verified INTEGER NOT NULL DEFAULT 0,
                    is_temporary_admin INTEGER NOT NULL DEFAULT 0,
                    temporary_admin_until TEXT,
                    permanent_admin INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    reset_password_token TEXT,
                    reset_password_expiry TEXT,
                    last_login_at TEXT,
                    onboarding_complete INTEGER NOT NULL DEFAULT 0,
                    phone TEXT,
                    timezone TEXT NOT NULL DEFAULT 'UTC',
                    company TEXT,
                    industry TEXT,
                    job_title TEXT,
                    skills TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_reset_token
                    ON users(reset_password_token);

                CREATE INDEX IF NOT EXISTS idx_users_temporary_admin
                    ON users(is_temporary_admin, temporary_admin_until);

                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    recipient_id INTEGER NOT NULL,
                    sender_id INTEGER,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    message TEXT NOT NULL,
                    is_read INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(recipient_id) REFERENCES users(id)
                );

                CREATE INDEX IF NOT EXISTS idx_notifications_recipient
                    ON notifications(recipient_id, created_at DESC);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # UserRepository API -----------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM users WHERE email = ?", (email.strip().lower(),))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def get_user_by_reset_token(self, token_digest: str, now: datetime) -> Optional[User]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM users WHERE reset_password_token = ? AND reset_password_expiry > ?",
                (token_digest, self._format(now)),
            )
            row = cur.fetchone()
        return self._row_to_user(row) if row else None

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role,
        phone: Optional[str] = None,
        company: Optional[str] = None,
        industry: Optional[str] = None,
        job_title: Optional[str] = None,
        skills: Optional[Sequence[str]] = None,
    ) -> User:
        now = self._now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    INSERT INTO users (
                        email, first_name, last_name, password_hash, role, phone,
                        company, industry, job_title, skills, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        email.strip().lower(),
                        first_name,
                        last_name,
                        password_hash,
                        Role(role).value,
                        phone,
                        company,
                        industry,
                        job_title,
                        json.dumps(list(skills or [])),
                        now,
                        now,
                    ),
                )
                user_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            raise EmailAlreadyRegistered() from exc
        return self._require_user(user_id)

    def update_user_password(
        self, user_id: int, password_hash: str, *, clear_reset_token: bool = False
    ) -> User:
        statement = "UPDATE users SET password_hash = ?, updated_at = ?"
        if clear_reset_token:
            statement += ", reset_password_token = NULL, reset_password_expiry = NULL"
        with self._lock, self._conn:
            self._conn.execute(statement + " WHERE id = ?", (password_hash, self._now(), user_id))
        return self._require_user(user_id)

    def update_user_profile(
        self,
        user_id: int,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        timezone: Optional[str] = None,
        company: Optional[str] = None,
        industry: Optional[str] = None,
        job_title: Optional[str] = None,
        skills: Optional[Sequence[str]] = None,
    ) -> User:
        updates = []
        params: List[Any] = []
        for column, value in (
            ("first_name", first_name),
            ("last_name", last_name),
            ("phone", phone),
            ("timezone", timezone),
            ("company", company),
            ("industry", industry),
            ("job_title", job_title),
        ):
            if value is not None:
                updates.append(f"{column} = ?")
                params.append(value)
        if skills is not None:
            updates.append("skills = ?")
            params.append(json.dumps(list(skills)))

        if updates:
            updates.append("updated_at = ?")
            params.append(self._now())
            params.append(user_id)
            statement = f"UPDATE users SET {', '.join(updates)} WHERE id = ?"
            with self._lock, self._conn:
                self._conn.execute(statement, params)
        return self._require_user(user_id)

    def set_reset_token(self, user_id: int, token_digest: str, expires_at: datetime) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE users
                SET reset_password_token = ?, reset_password_expiry = ?, updated_at = ?
                WHERE id = ?
                """,
                (token_digest, self._format(expires_at), self._now(), user_id),
            )

    def set_two_factor_secret(self, user_id: int, secret: str) -> User:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET two_factor_secret = ?, updated_at = ? WHERE id = ?",
                (secret, self._now(), user_id),
            )
        return self._require_user(user_id)

    def enable_two_factor(self, user_id: int, logged_in_at: datetime) -> User:
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE users
                SET two_factor_enabled = 1, two_factor_verified = 1,
                    onboarding_complete = 1, last_login_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (self._format(logged_in_at), self._now(), user_id),
            )
        return self._require_user(user_id)

    def record_login(self, user_id: int, logged_in_at: datetime) -> User:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET last_login_at = ?, updated_at = ? WHERE id = ?",
                (self._format(logged_in_at), self._now(), user_id),
            )
        return self._require_user(user_id)

    def set_admin_grant(
        self,
        user_id: int,
        *,
        permanent_admin: bool,
        is_temporary_admin: bool,
        temporary_admin_until: Optional[datetime],
    ) -> User:
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE users
                SET permanent_admin = ?, is_temporary_admin = ?,
                    temporary_admin_until = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    int(permanent_admin),
                    int(is_temporary_admin),
                    self._format(temporary_admin_until) if temporary_admin_until else None,
                    self._now(),
                    user_id,
                ),
            )
        return self._require_user(user_id)

    def revoke_lapsed_temporary_admin(self, user_id: int, now: datetime) -> bool:
        # Conditional so that concurrent revokers agree on a single winner.
        with self._lock, self._conn:
            cur = self._conn.execute(
                """
                UPDATE users
                SET is_temporary_admin = 0, temporary_admin_until = NULL, updated_at = ?
                WHERE id = ? AND is_temporary_admin = 1
                  AND temporary_admin_until IS NOT NULL AND temporary_admin_until < ?
                """,
                (self._now(), user_id, self._format(now)),
            )
            return cur.rowcount > 0

    def get_lapsed_temporary_admins(self, now: datetime) -> List[User]:
        with self._lock:
            cur = self._conn.execute(
                """
                SELECT * FROM users
                WHERE role = 'team' AND is_temporary_admin = 1
                  AND temporary_admin_until IS NOT NULL AND temporary_admin_until < ?
                ORDER BY temporary_admin_until
                """,
                (self._format(now),),
            )
            rows = cur.fetchall()
        return [self._row_to_user(row) for row in rows]

    def set_user_active(self, user_id: int, is_active: bool) -> User:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET is_active = ?, updated_at = ? WHERE id = ?",
                (int(is_active), self._now(), user_id),
            )
        return self._require_user(user_id)

    # NotificationRepository API ---------------------------------------------
    def create_notification(
        self,
        recipient_id: int,
        type: str,
        title: str,
        message: str,
        sender_id: Optional[int] = None,
    ) -> Notification:
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    INSERT INTO notifications (recipient_id, sender_id, type, title, message, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (recipient_id, sender_id, type, title, message, self._now()),
                )
                cur = self._conn.execute("SELECT * FROM notifications WHERE id = ?", (cur.lastrowid,))
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to persist notification: {exc}") from exc
        if not row:
            raise PersistenceError("Failed to persist notification.")
        return self._row_to_notification(row)

    def get_notifications_for_user(self, user_id: int, limit: int = 50) -> List[Notification]:
        with self._lock:
            cur = self._conn.execute(
                "SELECT * FROM notifications WHERE recipient_id = ? ORDER BY id DESC LIMIT ?",
                (user_id, limit),
            )
            rows = cur.fetchall()
        return [self._row_to_notification(row) for row in rows]

    def count_unread_notifications(self, user_id: int) -> int:
        with self._lock:
            cur = self._conn.execute(
                "SELECT COUNT(*) FROM notifications WHERE recipient_id = ? AND is_read = 0",
                (user_id,),
            )
            (count,) = cur.fetchone()
        return count

    def mark_notification_read(self, user_id: int, notification_id: int) -> bool:
        """Flag one of the user's notifications as read; False if it is not theirs."""
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE id = ? AND recipient_id = ?",
                (notification_id, user_id),
            )
        return cur.rowcount == 1

    def mark_all_notifications_read(self, user_id: int) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE recipient_id = ? AND is_read = 0",
                (user_id,),
            )
        return cur.rowcount

    # Helpers ----------------------------------------------------------------
    def _require_user(self, user_id: Optional[int]) -> User:
        user = self.get_user_by_id(user_id) if user_id is not None else None
        if not user:
            raise ValueError(f"User {user_id} not found.")
        return user

    @staticmethod
    def _format(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()

    @classmethod
    def _now(cls) -> str:
        return cls._format(datetime.now(timezone.utc))

    @staticmethod
    def _parse_datetime(value: str) -> datetime:
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _parse_optional(self, value: Optional[str]) -> Optional[datetime]:
        return self._parse_datetime(value) if value else None

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            two_factor_secret=row["two_factor_secret"],
            two_factor_enabled=bool(row["two_factor_enabled"]),
            two_factor_verified=bool(row["two_factor_verified"]),
            is_temporary_admin=bool(row["is_temporary_admin"]),
            temporary_admin_until=self._parse_optional(row["temporary_admin_until"]),
            permanent_admin=bool(row["permanent_admin"]),
            is_active=bool(row["is_active"]),
            reset_password_token=row["reset_password_token"],
            reset_password_expiry=self._parse_optional(row["reset_password_expiry"]),
            last_login_at=self._parse_optional(row["last_login_at"]),
            onboarding_complete=bool(row["onboarding_complete"]),
            phone=row["phone"],
            timezone=row["timezone"],
            company=row["company"],
            industry=row["industry"],
            job_title=row["job_title"],
            skills=json.loads(row["skills"] or "[]"),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_notification(self, row: sqlite3.Row) -> Notification:
        return Notification(
            id=row["id"],
            recipient_id=row["recipient_id"],
            sender_id=row["sender_id"],
            type=row["type"],
            title=row["title"],
            message=row["message"],
            is_read=bool(row["is_read"]),
            created_at=self._parse_datetime(row["created_at"]),
        )
