"""Logging setup — one call from the app factory, module loggers everywhere else."""

import logging

from hrms.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger from ``settings.LOG_LEVEL`` (or *level*)."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled by the engine, not by the app log level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
