"""Logging configuration for the application."""
import logging
import sys

from comment_threads.config import Settings


def setup_logging(settings: Settings) -> None:
    """
    Configure the root logger once at startup.

    DEBUG wins over LOG_LEVEL so a local ``DEBUG=true`` run is verbose
    without touching the level variable.
    """
    level = logging.DEBUG if settings.DEBUG else logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    # SQL echo is controlled by the engine, keep the driver loggers quiet.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured: env=%s level=%s", settings.APP_ENV, logging.getLevelName(level)
    )
