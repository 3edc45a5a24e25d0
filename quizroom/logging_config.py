"""Logging configuration helpers for the quizroom API."""

import logging
from logging import Logger

from quizroom.config import settings


def configure_logging() -> Logger:
    """Configure basic logging for the service and return its logger."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("quizroom")
