"""
Transaction Utilities for Bazaar Backend
========================================

Transaction runner with a bounded, independently testable retry policy for
write conflicts (deadlocks, serialization failures, locked databases).

Usage Examples:
    # Run a whole unit of work, retrying it on write conflicts
    order = run_in_transaction(lambda: _confirm(order_id), operation="confirm_payment")

    # Custom policy (tests inject a fake sleep)
    policy = RetryPolicy(max_retries=3, base_delay=0.1, sleep=fake_sleep)
    run_in_transaction(work, policy=policy)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from django.conf import settings
from django.db import OperationalError, transaction
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception, stop_after_attempt

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substrings reported by MySQL, PostgreSQL and SQLite for retryable write conflicts
WRITE_CONFLICT_MARKERS = (
    "deadlock",
    "1213",
    "40001",
    "could not serialize",
    "database is locked",
)


class TransactionError(Exception):
    """Custom exception for transaction-related errors"""

    pass


class TransientStorageError(TransactionError):
    """Raised when a unit of work keeps hitting write conflicts after every retry."""

    code = "transient_storage_error"

    def __init__(self, operation: str, attempts: int, last_error: Optional[BaseException] = None):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Operation '{operation}' hit a write conflict {attempts} times; retry the request later"
        )


def is_write_conflict(exc: BaseException) -> bool:
    """True when the database error is a write conflict worth retrying."""
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in WRITE_CONFLICT_MARKERS)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential-backoff policy.

    The delay before retry ``n`` (1-based) is ``base_delay * multiplier ** (n - 1)``,
    so the defaults wait 0.1s, 0.2s and 0.4s before giving up.
    """

    max_retries: int = 3
    base_delay: float = 0.1
    multiplier: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_retries=getattr(settings, "ORDER_CONFIRMATION_MAX_RETRIES", 3),
            base_delay=getattr(settings, "ORDER_CONFIRMATION_RETRY_BASE_DELAY", 0.1),
        )

    def delay_for(self, retry_number: int) -> float:
        return self.base_delay * self.multiplier ** (retry_number - 1)

    def retrying(self, on_retry: Optional[Callable[[int, BaseException], None]] = None) -> Retrying:
        def wait(retry_state: RetryCallState) -> float:
            return self.delay_for(retry_state.attempt_number)

        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception()
            logger.warning(
                f"Write conflict detected, retrying in {self.delay_for(retry_state.attempt_number)}s "
                f"(attempt {retry_state.attempt_number}/{self.max_retries}): {exc}"
            )
            if on_retry is not None:
                on_retry(retry_state.attempt_number, exc)

        return Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait,
            retry=retry_if_exception(is_write_conflict),
            sleep=self.sleep,
            before_sleep=before_sleep,
        )


def run_in_transaction(
    func: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    operation: Optional[str] = None,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
    using: str = "default",
) -> T:
    """
    Run ``func`` inside ``transaction.atomic`` and re-run the whole transaction on
    a write conflict.

    Errors that are not write conflicts propagate unchanged after the rollback.
    Exhausting the policy raises TransientStorageError.
    """
    policy = policy or RetryPolicy.from_settings()
    operation = operation or getattr(func, "__name__", "transaction")

    def attempt() -> T:
        with transaction.atomic(using=using):
            return func()

    try:
        return policy.retrying(on_retry=on_retry)(attempt)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.error(f"Transaction '{operation}' failed after {policy.max_retries + 1} attempts: {last_error}")
        raise TransientStorageError(operation, policy.max_retries + 1, last_error) from last_error

