"""Package logger setup for the CLI and HTTP entrypoints."""

from __future__ import annotations

import logging

LOGGER_NAME = "scam_thread_risk"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stderr handler to the package logger; repeat calls only change the level."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level or "INFO").upper(), logging.INFO))
    if not any(getattr(handler, "_scam_thread_risk", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._scam_thread_risk = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
