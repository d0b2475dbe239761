import sys

from loguru import logger

__all__ = ["configure_logging"]

_SHORT_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"
_DEBUG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route loguru output to stderr at ``level``.

    stdout is left for command output (generated TOML, JSON reports), so logs
    never end up inside a redirected file. Source locations are only shown at
    DEBUG level.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    level = level.upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=_DEBUG_FORMAT if level == "DEBUG" else _SHORT_FORMAT,
    )
