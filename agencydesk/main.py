"""ASGI entrypoint for the agency dashboard auth API.

Run with ``uvicorn agencydesk.main:app`` or ``python -m agencydesk.main``.
"""

import os

import uvicorn

from .core.app_factory import create_application

app = create_application()

__all__ = ("app",)


if __name__ == "__main__":
    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
