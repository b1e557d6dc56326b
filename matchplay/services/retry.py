"""Bounded retry for transient store failures."""

import logging
import time
from typing import Callable, TypeVar

from matchplay.core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_store_call(
    operation: Callable[[], T],
    attempts: int,
    backoff: float,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run `operation`, retrying only on StoreUnavailableError with exponential backoff.
    Every other error is returned to the caller on the first occurrence.
    The last StoreUnavailableError is re-raised once the attempts are used up.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except StoreUnavailableError:
            if attempt == attempts:
                raise
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(
                "Store unavailable (attempt %d/%d), retrying in %.3fs",
                attempt,
                attempts,
                delay,
            )
            sleep(delay)
    raise AssertionError("unreachable")
