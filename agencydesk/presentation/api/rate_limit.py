"""Per-client request limiting for the HTTP surface.

Two fixed windows run side by side: a general limit on every request and a
stricter one on the endpoints that check credentials or one-time codes.
Counters live in process memory, so each worker limits independently.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, FrozenSet, Tuple

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

GENERAL_LIMIT_MESSAGE = "Too many requests. Please try again later."
AUTH_LIMIT_MESSAGE = "Too many login attempts. Please try again in 15 minutes."

EXCLUDED_PATHS: FrozenSet[str] = frozenset({"/health"})
AUTH_PATHS: FrozenSet[str] = frozenset(
    {
        "/api/auth/login",
        "/api/auth/2fa/enable",
        "/api/auth/2fa/verify",
        "/api/auth/forgot-password",
        "/api/auth/reset-password",
    }
)


@dataclass
class Window:
    started_at: float
    count: int


class FixedWindowLimiter:
    """Allow ``max_requests`` per key in each ``window_seconds`` window."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = int(max_requests)
        self.window_seconds = float(window_seconds)
        self.max_keys = int(max_keys)
        self._clock = clock
        self._windows: "OrderedDict[str, Window]" = OrderedDict()
        self._lock = threading.Lock()

    def consume(self, key: str) -> Tuple[bool, int, float]:
        """Count one request for ``key``.

        Returns ``(allowed, remaining, reset_after)``; ``reset_after`` is the
        number of seconds until the key's window starts over.
        """
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                if window is None and len(self._windows) >= self.max_keys:
                    self._windows.popitem(last=False)
                window = Window(started_at=now, count=0)
                self._windows[key] = window
            self._windows.move_to_end(key)

            reset_after = max(0.0, window.started_at + self.window_seconds - now)
            if window.count >= self.max_requests:
                return False, 0, reset_after
            window.count += 1
            return True, self.max_requests - window.count, reset_after


def get_client_identifier(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class RateLimitMiddleware:
    """ASGI middleware answering 429 with the standard failure envelope.

    ``/health`` and CORS preflight requests are never counted.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        max_requests: int,
        auth_max_requests: int,
        window_seconds: float,
    ) -> None:
        self.app = app
        self.general = FixedWindowLimiter(max_requests, window_seconds)
        self.auth = FixedWindowLimiter(auth_max_requests, window_seconds)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path in EXCLUDED_PATHS or scope.get("method", "").upper() == "OPTIONS":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        client_id = get_client_identifier(request)

        allowed, remaining, reset_after = self.general.consume(client_id)
        limiter, detail = self.general, GENERAL_LIMIT_MESSAGE
        if allowed and path in AUTH_PATHS:
            allowed, remaining, reset_after = self.auth.consume(client_id)
            limiter, detail = self.auth, AUTH_LIMIT_MESSAGE

        headers = {
            "RateLimit-Limit": str(limiter.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(math.ceil(reset_after)),
        }

        if not allowed:
            logger.warning("Rate limit exceeded for %s on %s.", client_id, path)
            headers["Retry-After"] = str(max(1, math.ceil(reset_after)))
            response = JSONResponse(
                status_code=429,
                content={"success": False, "message": detail},
                headers=headers,
            )
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                raw = list(message.get("headers", []))
                raw.extend((name.lower().encode(), value.encode()) for name, value in headers.items())
                message["headers"] = raw
            await send(message)

        await self.app(scope, receive, send_with_headers)
