"""Loguru setup for the CLI and embedding applications."""

import sys
from pathlib import Path

from loguru import logger

from knot.core.config import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings | None = None) -> None:
    """Configure loguru based on settings.

    Replaces the default handler with a stderr sink and, when
    ``knot_log_file`` is set, a rotating file sink.

    Args:
        settings: Settings to use. Defaults to the cached settings.
    """
    settings = settings or get_settings()
    level = "DEBUG" if settings.knot_debug else settings.knot_log_level

    logger.remove()  # Remove default handler

    # Look up sys.stderr per message so redirected streams keep working
    logger.add(
        lambda msg: sys.stderr.write(msg),
        level=level,
        format=LOG_FORMAT,
        colorize=True,
    )

    if settings.knot_log_file:
        Path(settings.knot_log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.knot_log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            format=LOG_FORMAT,
        )

    logger.debug(f"Logging configured at {level}")
