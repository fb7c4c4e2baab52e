"""Retry logic with exponential backoff for Storyblok API calls.

This module provides the transport-level retry used by the Storyblok clients.
Throttling (429), gateway errors (502, 503, 504) and transient network errors
are retried with capped exponential backoff plus full jitter; every other
error fails fast.

Each retry is also counted on the RetryCounters bound to the current context
(see retry_counters_scope), so callers can report how often a single sync item
was retried without threading counters through every call.
"""

import contextvars
import logging
import os
import random
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, TypeVar

from requests.exceptions import ConnectionError, Timeout

from .errors import APIUnreachableError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RETRYABLE_STATUS_CODES = {429, 502, 503, 504}


@dataclass
class RetryCounters:
    """Retry counts observed by the transport for one unit of work.

    Attributes:
        total: All retries
        status_429: Retries caused by 429 responses
        status_5xx: Retries caused by 5xx responses
        net: Retries caused by transient network errors
    """
    total: int = 0
    status_429: int = 0
    status_5xx: int = 0
    net: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, reason: str) -> None:
        """Count one retry for the given reason ('429', '5xx' or 'net')."""
        with self._lock:
            self.total += 1
            if reason == '429':
                self.status_429 += 1
            elif reason == '5xx':
                self.status_5xx += 1
            elif reason == 'net':
                self.net += 1


_current_counters: contextvars.ContextVar[Optional[RetryCounters]] = contextvars.ContextVar(
    'retry_counters', default=None
)


@contextmanager
def retry_counters_scope(counters: Optional[RetryCounters] = None) -> Iterator[RetryCounters]:
    """Bind retry counters to the current context for the duration of a block.

    Args:
        counters: Counters to bind (a fresh instance is created when omitted)

    Yields:
        The bound RetryCounters

    Example:
        >>> with retry_counters_scope() as counters:
        ...     api.get_story_raw(space_id, story_id)
        >>> counters.total
        0
    """
    if counters is None:
        counters = RetryCounters()
    token = _current_counters.set(counters)
    try:
        yield counters
    finally:
        _current_counters.reset(token)


def current_retry_counters() -> Optional[RetryCounters]:
    """Return the counters bound to the current context, if any."""
    return _current_counters.get()


@dataclass(frozen=True)
class RetryPolicy:
    """Retry and backoff tuning.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: Backoff base in seconds (doubled per attempt)
        max_delay: Upper bound for any single sleep in seconds
    """
    max_retries: int = 4
    base_delay: float = 0.25
    max_delay: float = 5.0

    @classmethod
    def from_env(cls) -> 'RetryPolicy':
        """Build a policy from SB_MA_RETRY_MAX, SB_MA_RETRY_BASE_MS and SB_MA_RETRY_CAP_MS.

        Invalid or out-of-range values are ignored in favour of the defaults.
        """
        defaults = cls()
        max_retries = _env_int('SB_MA_RETRY_MAX', minimum=0)
        base_ms = _env_int('SB_MA_RETRY_BASE_MS', minimum=0)
        cap_ms = _env_int('SB_MA_RETRY_CAP_MS', minimum=1)
        return cls(
            max_retries=defaults.max_retries if max_retries is None else max_retries,
            base_delay=defaults.base_delay if base_ms is None else base_ms / 1000.0,
            max_delay=defaults.max_delay if cap_ms is None else cap_ms / 1000.0,
        )

    def backoff(self, retry_num: int) -> float:
        """Compute the sleep before retry number retry_num (0-based), jitter included."""
        delay = min(self.base_delay * (2 ** retry_num), self.max_delay)
        if delay <= 0:
            return 0.0
        return min(delay + random.uniform(0, delay), self.max_delay)


def _env_int(name: str, minimum: int) -> Optional[int]:
    value = os.getenv(name, '').strip()
    if not value:
        return None
    try:
        parsed = int(value)
    except ValueError:
        return None
    return parsed if parsed >= minimum else None


def retry_on_rate_limit(func: Callable[..., T], *args, **kwargs) -> T:
    """Retry function on throttling and transient failures with exponential backoff.

    Uses RetryPolicy.from_env() for tuning.

    Args:
        func: The function to execute with retry logic
        *args: Positional arguments to pass to the function
        **kwargs: Keyword arguments to pass to the function

    Returns:
        The return value of the function

    Raises:
        The last error when retries are exhausted; non-retryable errors
        are passed through immediately.

    Example:
        >>> story = retry_on_rate_limit(api.get_story_raw, 123, 456)
    """
    return retry_with_policy(RetryPolicy.from_env(), func, *args, **kwargs)


def retry_with_policy(policy: RetryPolicy, func: Callable[..., T], *args, **kwargs) -> T:
    """Same as retry_on_rate_limit but with an explicit policy."""
    for retry_num in range(policy.max_retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            reason = _retry_reason(e)
            if reason is None:
                raise

            if retry_num >= policy.max_retries:
                logger.error(
                    f"Request still failing ({reason}) after {policy.max_retries} retries, giving up"
                )
                raise

            counters = current_retry_counters()
            if counters is not None:
                counters.record(reason)

            wait_time = policy.backoff(retry_num)
            retry_after = getattr(e, 'retry_after', None)
            if retry_after:
                wait_time = min(float(retry_after), policy.max_delay)
            logger.info(
                f"Retryable failure ({reason}), retrying in {wait_time:.2f}s "
                f"(retry {retry_num + 1}/{policy.max_retries})"
            )
            time.sleep(wait_time)

    raise RuntimeError("unreachable")  # pragma: no cover


def _retry_reason(exception: Exception) -> Optional[str]:
    """Classify an exception as retryable.

    Args:
        exception: The exception to check

    Returns:
        '429', '5xx' or 'net' for retryable errors, None otherwise
    """
    if isinstance(exception, (Timeout, ConnectionError, APIUnreachableError)):
        return 'net'

    status_code = getattr(exception, 'status_code', None)
    if status_code is None:
        response = getattr(exception, 'response', None)
        status_code = getattr(response, 'status_code', None)

    if status_code in RETRYABLE_STATUS_CODES:
        return '429' if status_code == 429 else '5xx'

    return None
