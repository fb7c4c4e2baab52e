"""Adaptive per-space rate limiting.

Each space gets its own pair of token buckets, one for reads and one for
writes, so source reads and target writes never throttle each other. Buckets
refill lazily from elapsed time on every access; there is no background timer.

Rates are adjusted through nudge_read/nudge_write: a small increase after an
unthrottled success and a larger decrease after a 429. This
additive-increase/additive-decrease loop follows the provider's real ceiling
without having to know it. call_read/call_write never raise a bucket above
the rate it was configured with.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, TypeVar

from src.storyblok_client.errors import is_rate_limited

from .call_context import CallContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RPS = 7.0
DEFAULT_BURST = 7

# Nudge parameters used by call_read/call_write
NUDGE_UP = 0.02
NUDGE_DOWN = -0.2
MIN_RPS = 1.0
MAX_RPS = DEFAULT_RPS

# Shortest sleep while waiting for a token
MIN_WAIT = 0.005


@dataclass
class RateBucket:
    """Token bucket state for one (space, direction).

    Attributes:
        rate: Refill rate in tokens per second
        burst: Bucket capacity
        tokens: Current (fractional) token count
        last: Monotonic time of the last refill
        ceiling: Highest rate call_read/call_write may nudge to
            (the configured rate; non-positive means rate)
    """
    rate: float
    burst: float
    tokens: float
    last: float
    ceiling: float = 0.0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        if self.ceiling <= 0:
            self.ceiling = self.rate

    def refill(self, now: float) -> None:
        """Add tokens for the time elapsed since the last refill. Caller holds lock."""
        elapsed = now - self.last
        if elapsed > 0:
            self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
            self.last = now


@dataclass
class _SpaceBuckets:
    read: RateBucket
    write: RateBucket


class SpaceRateLimiter:
    """Per-space read/write token buckets with adaptive rates.

    Safe for concurrent use: the space registry and every bucket have their
    own lock, and no lock is held while sleeping.

    Example:
        >>> limiter = SpaceRateLimiter()
        >>> limiter.wait_read(ctx, source_space_id)
        >>> limiter.nudge_read(source_space_id, NUDGE_UP, MIN_RPS, MAX_RPS)
    """

    def __init__(
        self,
        read_rps: float = DEFAULT_RPS,
        write_rps: float = DEFAULT_RPS,
        burst: int = DEFAULT_BURST,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the limiter.

        Args:
            read_rps: Read rate and ceiling of adaptive nudges (non-positive means default)
            write_rps: Write rate and ceiling of adaptive nudges (non-positive means default)
            burst: Bucket capacity (non-positive means default)
            clock: Monotonic time source
        """
        self._read_rps = read_rps if read_rps > 0 else DEFAULT_RPS
        self._write_rps = write_rps if write_rps > 0 else DEFAULT_RPS
        self._burst = float(burst if burst > 0 else DEFAULT_BURST)
        self._clock = clock
        self._lock = threading.Lock()
        self._spaces: Dict[int, _SpaceBuckets] = {}

    def _get(self, space_id: int) -> _SpaceBuckets:
        with self._lock:
            buckets = self._spaces.get(space_id)
            if buckets is None:
                now = self._clock()
                buckets = _SpaceBuckets(
                    read=RateBucket(self._read_rps, self._burst, self._burst, now),
                    write=RateBucket(self._write_rps, self._burst, self._burst, now),
                )
                self._spaces[space_id] = buckets
            return buckets

    def wait_read(self, ctx: Optional[CallContext], space_id: int) -> None:
        """Block until a read token for space_id is available, then take it.

        Raises:
            OperationCancelledError: If ctx is cancelled while waiting
            DeadlineExceededError: If ctx expires while waiting
        """
        self._wait(self._get(space_id).read, ctx)

    def wait_write(self, ctx: Optional[CallContext], space_id: int) -> None:
        """Block until a write token for space_id is available, then take it.

        Raises:
            OperationCancelledError: If ctx is cancelled while waiting
            DeadlineExceededError: If ctx expires while waiting
        """
        self._wait(self._get(space_id).write, ctx)

    def nudge_read(self, space_id: int, delta: float, min_rate: float, max_rate: float) -> None:
        self._nudge(self._get(space_id).read, delta, min_rate, max_rate, space_id, "read")

    def nudge_write(self, space_id: int, delta: float, min_rate: float, max_rate: float) -> None:
        self._nudge(self._get(space_id).write, delta, min_rate, max_rate, space_id, "write")

    def call_read(self, ctx: Optional[CallContext], space_id: int, fn: Callable[..., T], *args, **kwargs) -> T:
        """Run a read call under the read bucket of space_id.

        Waits for a token, calls fn, then nudges the rate up on success or
        down when the failure was throttling. Nudges stay within
        [MIN_RPS, configured rate]. Errors are re-raised.
        """
        self.wait_read(ctx, space_id)
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            if is_rate_limited(e):
                self._adapt(self._get(space_id).read, NUDGE_DOWN, space_id, "read")
            raise
        self._adapt(self._get(space_id).read, NUDGE_UP, space_id, "read")
        return result

    def call_write(self, ctx: Optional[CallContext], space_id: int, fn: Callable[..., T], *args, **kwargs) -> T:
        """Run a write call under the write bucket of space_id (see call_read)."""
        self.wait_write(ctx, space_id)
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            if is_rate_limited(e):
                self._adapt(self._get(space_id).write, NUDGE_DOWN, space_id, "write")
            raise
        self._adapt(self._get(space_id).write, NUDGE_UP, space_id, "write")
        return result

    def read_rate(self, space_id: int) -> float:
        return self._get(space_id).read.rate

    def write_rate(self, space_id: int) -> float:
        return self._get(space_id).write.rate

    def _wait(self, bucket: RateBucket, ctx: Optional[CallContext]) -> None:
        while True:
            if ctx is not None:
                ctx.check()
            with bucket.lock:
                bucket.refill(self._clock())
                if bucket.tokens >= 1:
                    bucket.tokens -= 1
                    return
                need = 1 - bucket.tokens
                rate = bucket.rate if bucket.rate > 0 else 1.0
            delay = max(need / rate, MIN_WAIT)
            if ctx is None:
                time.sleep(delay)
            elif ctx.wait(delay):
                ctx.check()

    def _adapt(self, bucket: RateBucket, delta: float, space_id: int, direction: str) -> None:
        self._nudge(bucket, delta, min(MIN_RPS, bucket.ceiling), bucket.ceiling, space_id, direction)

    def _nudge(
        self,
        bucket: RateBucket,
        delta: float,
        min_rate: float,
        max_rate: float,
        space_id: int,
        direction: str,
    ) -> None:
        with bucket.lock:
            bucket.rate = min(max(bucket.rate + delta, min_rate), max_rate)
            rate = bucket.rate
        if delta < 0:
            logger.debug(f"Throttled: space {space_id} {direction} rate lowered to {rate:.2f}/s")
