"""Logging configuration for the planning engine."""
import logging

from ..config.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(name: str = "projectplan", level=None) -> logging.Logger:
    """
    Configure logging for the package (or one of its modules).

    Args:
        name: Logger name, typically the package name or __name__
        level: Log level; defaults to the configured PROJECTPLAN_LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level or settings.LOG_LEVEL)

    # Calling twice must not duplicate output
    if not any(getattr(h, "_projectplan", False) for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler._projectplan = True
        logger.addHandler(console_handler)

    return logger
