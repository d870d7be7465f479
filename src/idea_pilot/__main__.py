"""Entrypoint: python -m idea_pilot"""
from __future__ import annotations

import uvicorn

from idea_pilot.config import settings
from idea_pilot.logging_config import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "idea_pilot.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
