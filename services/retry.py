from __future__ import annotations

import logging
from typing import Callable, TypeVar

from repositories.store import StaleWriteError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 5


def run_with_retries(operation: Callable[[], T], *, label: str, attempts: int = MAX_ATTEMPTS) -> T:
    """
    Run a read-transition-commit operation, re-running it on StaleWriteError.

    `operation` must re-read everything it writes; domain errors raised on a
    re-run (e.g. AlreadyClaimed after a concurrent claim won) propagate as-is.
    """

    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except StaleWriteError:
            if attempt >= attempts:
                raise
            logger.warning("Stale ledger write during %s (attempt %d/%d), retrying", label, attempt, attempts)


__all__ = ["MAX_ATTEMPTS", "run_with_retries"]
