"""Logging setup."""

import logging

from pingcron.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Configure the root logger from settings."""
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
