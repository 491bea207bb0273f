# app/core/logging_config.py
"""
Process-wide logging setup.

Application loggers ("app.*") follow LOG_LEVEL from settings; HTTP client and
database driver loggers are held at WARNING so eBay/OpenAI calls and SQL do
not drown out the publish workflow. DEBUG=true lets SQLAlchemy log
statements again.
"""

import logging
from typing import Optional

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "asyncpg",
    "aiosqlite",
    "sqlalchemy",
    "sqlalchemy.engine",
    "alembic",
    "multipart",
)


def configure_logging(level: Optional[str] = None) -> None:
    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    app_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(level=app_level, format=LOG_FORMAT, handlers=[logging.StreamHandler()])

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if settings.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    logging.getLogger("app").setLevel(app_level)
    logging.getLogger("__main__").setLevel(app_level)

    logging.getLogger(__name__).info(
        f"Logging configured at level: {level_name} ({settings.ENVIRONMENT})"
    )
