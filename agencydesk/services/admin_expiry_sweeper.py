from __future__ import annotations

import asyncio
import logging
import threading
from typing import Optional

from ..application.services.privilege_service import PrivilegeService

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60 * 60


class AdminExpirySweeper:
    """Background task that revokes lapsed temporary admin grants.

    Sweeps once on start and then every ``interval_seconds``. Iterations
    never overlap: a sweep that finds the previous one still running skips.
    """

    def __init__(
        self,
        privileges: PrivilegeService,
        *,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._privileges = privileges
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None
        self._shutdown = asyncio.Event()
        self._sweep_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self._task:
            return
        logger.info("Admin expiry sweeper started (every %s seconds).", self._interval)
        self._shutdown.clear()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="admin-expiry-sweeper")

    async def stop(self) -> None:
        if not self._task:
            return
        logger.info("Stopping admin expiry sweeper.")
        self._shutdown.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    def sweep_once(self) -> Optional[int]:
        """Run one sweep; returns revoked count or None if one is already running."""
        if not self._sweep_lock.acquire(blocking=False):
            logger.warning("Previous admin expiry sweep still running; skipping.")
            return None
        try:
            revoked = self._privileges.sweep_expired()
        finally:
            self._sweep_lock.release()
        if revoked:
            logger.info("Admin expiry sweep revoked %s grant(s).", revoked)
        return revoked

    async def _run(self) -> None:
        while not self._shutdown.is_set():
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception:
                logger.exception("Admin expiry sweep failed.")
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue
