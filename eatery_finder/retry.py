"""Retry with exponential backoff for flaky backend calls."""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

from . import config

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_MARKERS = (
    "503",
    "429",
    "overloaded",
    "rate limit",
    "unavailable",
    "resource_exhausted",
)


def is_retryable_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def backoff_delay(attempt_index: int, base_delay: float) -> float:
    return base_delay * (2 ** attempt_index)


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = config.RETRY_MAX_ATTEMPTS,
    base_delay: float = config.RETRY_BASE_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    is_retryable: Callable[[BaseException], bool] = is_retryable_error,
    label: Optional[str] = None,
) -> T:
    """Run ``operation`` and retry transient failures.

    Delays are ``base_delay * 2**attempt_index`` (1s, 2s, 4s by default).
    Errors that are not transient propagate on the first attempt; running out
    of attempts re-raises the last error. State lives in this call only.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    name = label or getattr(operation, "__name__", "operation")
    for attempt in range(max_attempts):
        try:
            return operation()
        except Exception as exc:
            if not is_retryable(exc) or attempt + 1 >= max_attempts:
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "%s failed (attempt %s/%s), retrying in %.1fs: %s",
                name,
                attempt + 1,
                max_attempts,
                delay,
                exc,
            )
            sleep(delay)
    raise RuntimeError("Unexpected retry loop exit")
