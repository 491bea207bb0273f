#!/usr/bin/env python
"""Run the droplist API under uvicorn. PORT/HOST come from the environment."""
import logging
import os

import uvicorn

from app.core.config import get_settings
from app.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    configure_logging()

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload = settings.ENVIRONMENT == "development" and settings.DEBUG

    logger.info(
        "Starting droplist on %s:%s (eBay %s)",
        host, port, "sandbox" if settings.ebay_sandbox else "production",
    )
    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
        # OAuth redirect and webhook challenge URLs depend on the forwarded scheme
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    main()
