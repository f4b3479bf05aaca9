from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    """Fire-and-forget executor for side effects such as outbound email.

    Submitted callables run on a small thread pool. Their failures are logged
    and never reach the caller that triggered them.
    """

    def __init__(self, *, max_workers: int = 2) -> None:
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Set[Future[Any]] = set()
        self._lock = threading.Lock()
        self._shutdown = False

    def start(self) -> None:
        with self._lock:
            if self._executor is not None:
                return
            logger.info("Starting background dispatcher with %s workers.", self._max_workers)
            self._shutdown = False
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="side-effects"
            )

    def stop(self, wait_for_pending: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
            self._shutdown = True
        if executor is None:
            return
        logger.info("Stopping background dispatcher.")
        executor.shutdown(wait=wait_for_pending)

    def submit(self, description: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Future[Any]]:
        if self._shutdown:
            logger.warning("Dispatcher is shutting down; dropping %s.", description)
            return None
        if self._executor is None:
            self.start()
        with self._lock:
            if self._executor is None:
                logger.warning("Dispatcher is shutting down; dropping %s.", description)
                return None
            future = self._executor.submit(func, *args, **kwargs)
            self._pending.add(future)
        future.add_done_callback(lambda done: self._on_done(description, done))
        return future

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every side effect submitted so far has finished."""
        with self._lock:
            pending = set(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def _on_done(self, description: str, future: Future[Any]) -> None:
        with self._lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Background task %s failed.", description, exc_info=exc)
        elif future.result() is False:
            logger.warning("Background task %s reported failure.", description)
