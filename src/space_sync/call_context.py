"""Cancellation and deadline handling for blocking sync operations.

A CallContext is handed to every call that may block (token acquisition,
remote fetches, hydration workers). Cancelling it wakes up waiters promptly;
an optional deadline turns into DeadlineExceededError once it passes.
"""

import threading
import time
from typing import Optional

from .errors import DeadlineExceededError, OperationCancelledError


class CallContext:
    """Cancellation token with an optional deadline.

    Contexts are independent: a per-item context created with with_timeout()
    is not affected by cancelling the run-level context and vice versa.

    Example:
        >>> ctx = CallContext.with_timeout(30)
        >>> ctx.check()          # raises once cancelled or expired
        >>> ctx.wait(0.1)        # sleeps, returns early on cancel
        False
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize the context.

        Args:
            timeout: Seconds until the deadline (None for no deadline)
        """
        self._cancelled = threading.Event()
        self._timeout = timeout
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def with_timeout(cls, seconds: float) -> 'CallContext':
        return cls(timeout=seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        """True once cancelled or past the deadline."""
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """Raise if the context is cancelled or expired.

        Raises:
            OperationCancelledError: If cancel() was called
            DeadlineExceededError: If the deadline has passed
        """
        if self.cancelled:
            raise OperationCancelledError()
        if self.expired:
            raise DeadlineExceededError(self._timeout or 0.0)

    def wait(self, seconds: float) -> bool:
        """Sleep up to seconds, waking early on cancellation.

        The sleep is shortened to the remaining time before the deadline.

        Returns:
            True if the context became done during (or before) the wait
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds > 0:
            self._cancelled.wait(seconds)
        return self.done
