"""Bounded retry for remote operations."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..exceptions import StorageError

logger = logging.getLogger(__name__)


@dataclass
class RetryOutcome:
    """Final result of an action run with retries."""

    success: bool
    attempts: int
    error: Optional[str] = None


def run_with_retry(
    action: Callable[[], bool],
    retry_count: int,
    wait_seconds: float,
    on_retry: Optional[Callable[[int, str], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryOutcome:
    """Run an action until it succeeds or the retry budget is spent.

    The action reports failure by returning False or by raising any
    ``Exception``; ``KeyboardInterrupt`` and ``SystemExit`` propagate.
    It is attempted at most ``retry_count + 1`` times with a fixed pause
    between attempts.

    Args:
        action: Callable returning True on success
        retry_count: Number of retries after the first attempt
        wait_seconds: Pause between attempts
        on_retry: Optional callback(attempt, error) invoked before each retry
        sleep: Sleep function (replaceable in tests)

    Returns:
        RetryOutcome with the number of attempts and the last error

    Examples:
        >>> run_with_retry(lambda: True, retry_count=3, wait_seconds=0)
        RetryOutcome(success=True, attempts=1, error=None)
    """
    if retry_count < 0:
        raise ValueError("retry_count must not be negative")

    attempt = 0
    last_error: Optional[str] = None
    while True:
        attempt += 1
        try:
            if action():
                return RetryOutcome(success=True, attempts=attempt)
            last_error = "operation reported failure"
        except Exception as e:
            last_error = str(e) or type(e).__name__
            if not isinstance(e, (StorageError, OSError)):
                logger.debug("Unexpected error in attempt %d", attempt, exc_info=True)

        if attempt > retry_count:
            return RetryOutcome(success=False, attempts=attempt, error=last_error)

        logger.debug(
            "Attempt %d/%d failed (%s), retrying in %.2fs",
            attempt,
            retry_count + 1,
            last_error,
            wait_seconds,
        )
        if on_retry:
            on_retry(attempt, last_error)
        sleep(wait_seconds)
