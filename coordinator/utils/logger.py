import logging
from typing import Optional


def get_logger(name: Optional[str] = None, level: str = "info") -> logging.Logger:
    """
    Retrieve a configured logger for the specified module.

    If no name is provided, the default logger name 'Coordinator' is used.
    Each logger is configured with:
    - A StreamHandler for console output
    - A standardized log format with timestamp, level, logger name, and message

    Args:
        name (Optional[str]): Name of the logger (usually the module name).
        level (str): Logging level name, e.g. "info" or "debug".

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(name or "Coordinator")
    if not logger.hasHandlers():
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger


def setup_logger(level: str = "info"):
    """
    Initialize the root coordinator logger.

    Typically called once during application startup.

    Returns:
        logging.Logger: Global coordinator logger.
    """
    logger = get_logger(level=level)
    logger.info("Coordinator logger initialized")
    return logger
