"""Unit tests for space_sync.call_context.CallContext."""

import threading
import time

import pytest

from src.space_sync.call_context import CallContext
from src.space_sync.errors import DeadlineExceededError, OperationCancelledError


class TestCallContext:
    """Test cases for cancellation and deadlines."""

    def test_fresh_context_is_not_done(self):
        """A new context without deadline never expires."""
        ctx = CallContext()

        assert ctx.done is False
        assert ctx.remaining() is None
        ctx.check()

    def test_cancel_marks_done_and_check_raises(self):
        """cancel() makes check() raise OperationCancelledError."""
        ctx = CallContext()
        ctx.cancel()

        assert ctx.cancelled is True
        with pytest.raises(OperationCancelledError):
            ctx.check()

    def test_deadline_expires(self):
        """A passed deadline raises DeadlineExceededError."""
        ctx = CallContext.with_timeout(0.01)
        time.sleep(0.02)

        assert ctx.expired is True
        with pytest.raises(DeadlineExceededError):
            ctx.check()

    def test_deadline_error_is_a_cancellation(self):
        """Deadline errors can be handled as cancellations."""
        assert issubclass(DeadlineExceededError, OperationCancelledError)

    def test_wait_returns_early_on_cancel(self):
        """wait() wakes up as soon as another thread cancels."""
        ctx = CallContext()
        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()

        start = time.monotonic()
        done = ctx.wait(5.0)
        elapsed = time.monotonic() - start
        timer.join()

        assert done is True
        assert elapsed < 2.0

    def test_wait_is_shortened_by_deadline(self):
        """wait() never sleeps past the deadline."""
        ctx = CallContext.with_timeout(0.05)

        start = time.monotonic()
        done = ctx.wait(5.0)

        assert done is True
        assert time.monotonic() - start < 2.0

    def test_contexts_are_independent(self):
        """Cancelling one context does not affect another."""
        run_ctx = CallContext()
        item_ctx = CallContext.with_timeout(30)

        run_ctx.cancel()

        assert item_ctx.done is False
