"""Logging configuration helpers."""

import logging


def configure_logging(level: str | int = "INFO") -> None:
    """Configure store logging with a single stream handler."""
    logger = logging.getLogger("nutrition_store")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
