import logging
import os
from typing import Optional

# PIL logs every PNG chunk at DEBUG while QR codes are rendered.
_NOISY_LOGGERS = ("PIL", "multipart")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structured logging defaults for the application."""
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=resolved,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.INFO, logging.getLevelName(resolved)))
