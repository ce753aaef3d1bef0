import logging
import os
import sys


def setup_logging(name: str = "customer_resolver", level: int = logging.INFO) -> logging.Logger:
    """
    Sets up the project logger used by every resolver component.

    Args:
        name: Name of the logger.
        level: Logging level (default: INFO).

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers if already configured
    if logger.handlers:
        return logger

    logger.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def _level_from_env() -> int:
    """Reads RESOLVER_LOG_LEVEL, falling back to INFO for unknown names."""
    name = os.getenv("RESOLVER_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


# Default logger for the project
logger = setup_logging(level=_level_from_env())
