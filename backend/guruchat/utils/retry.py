"""
Retry logic with exponential backoff for database calls.
"""
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)
import logging
from typing import Callable

from sqlalchemy.exc import IntegrityError, OperationalError

logger = logging.getLogger(__name__)


def retry_database_connect(max_attempts: int = 3) -> Callable:
    """
    Retry decorator for opening the first database connection.

    Usage:
        @retry_database_connect(max_attempts=settings.DB_CONNECT_ATTEMPTS)
        def _ping(engine):
            ...
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


# Two writers creating the same conversation row race on its unique key;
# the loser retries and finds the row the winner inserted.
retry_on_conflict = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
    retry=retry_if_exception_type(IntegrityError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
