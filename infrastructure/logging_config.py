"""Basic logging configuration (minimal)."""

import logging
import os


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL (default INFO).

    Identity loggers live under ``domain``, ``application`` and
    ``infrastructure``; they inherit the root level unless set explicitly.
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    for name in ("application.identity", "infrastructure.persistence"):
        logger = logging.getLogger(name)
        if logger.level == logging.NOTSET:
            logger.setLevel(getattr(logging, log_level, logging.INFO))
