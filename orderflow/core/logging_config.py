import logging

from orderflow.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a single stream handler to the ``orderflow`` logger."""
    logger = logging.getLogger("orderflow")
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
