"""
pointledger.database.retry — Retry Policy for Conflicting Writes
=================================================================

Re-runs a whole unit of work when the database reports a transient
conflict (lock timeout, deadlock, serialization failure) or when the
caller signals one itself.

**Transaction ownership**: the operation opens and commits its own
session.  Retrying an operation retries the entire transaction, never
a statement inside an already-open one::

    def operation():
        with Session(engine) as session:
            ...
            session.commit()

    run_with_retry(operation, operation_name="points.create_point")

Backoff is exponential with jitter:
``min(initial * 2^(attempt-1), max) + random(0, jitter)`` milliseconds.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIABLE: tuple[type[BaseException], ...] = (OperationalError,)


def backoff_ms(
    attempt: int,
    *,
    initial_ms: int = 50,
    max_ms: int = 1000,
    jitter_ms: int = 25,
) -> float:
    """Delay before retrying after the *attempt*-th failure."""
    base = min(initial_ms * (2 ** (attempt - 1)), max_ms)
    return base + random.uniform(0, jitter_ms)


def run_with_retry(
    operation: Callable[[], T],
    *,
    operation_name: str,
    max_attempts: int = 3,
    initial_backoff_ms: int = 50,
    retriable: tuple[type[BaseException], ...] = DEFAULT_RETRIABLE,
) -> T:
    """Call *operation* until it succeeds or *max_attempts* is exhausted.

    Exceptions outside *retriable* propagate immediately.  The last
    retriable exception propagates once attempts run out.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except retriable as exc:
            if attempt >= max_attempts:
                logger.error(
                    "%s failed after %d attempt(s): %s",
                    operation_name, attempt, exc.__class__.__name__,
                )
                raise
            delay = backoff_ms(attempt, initial_ms=initial_backoff_ms) if initial_backoff_ms else 0
            logger.warning(
                "%s attempt %d/%d hit %s, retrying in %.0f ms",
                operation_name, attempt, max_attempts, exc.__class__.__name__, delay,
            )
            if delay:
                time.sleep(delay / 1000)
