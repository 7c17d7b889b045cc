"""Token buckets for upstream pacing and inbound client budgets.

One bucket is shared by every call to a provider, so concurrent requests
draw from the same allowance. After the provider answers 429 the bucket
is penalized: it is drained and closed until the provider's retry
deadline, and every caller waits it out together. The same bucket type,
one per client address, backs the inbound limit on the HTTP surface.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Window the inbound budget is expressed over
WINDOW_SECONDS = 60


class RateLimitExceeded(Exception):
    """An inbound client has spent its budget."""

    def __init__(self, client_id: str, limit: int, retry_after: float) -> None:
        self.client_id = client_id
        self.limit = limit
        self.retry_after = retry_after
        self.reset_at = int(time.time() + retry_after)
        super().__init__(f"{client_id} is over {limit} requests/min; retry in {retry_after:.1f}s")


@dataclass
class TokenBucket:
    """Refilling allowance of request tokens.

    ``capacity`` is the burst size and ``refill_rate`` the tokens regained
    per second. ``blocked_until`` is a monotonic deadline set by
    ``penalize``; no token is handed out before it.
    """

    capacity: int
    refill_rate: float
    name: str = "bucket"
    tokens: float = field(init=False)
    last_refill: float = field(init=False)
    blocked_until: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("capacity must be at least 1")
        if self.refill_rate <= 0:
            raise ValueError("refill_rate must be positive")
        self.tokens = float(self.capacity)
        self.last_refill = time.monotonic()

    @classmethod
    def per_minute(cls, requests_per_minute: int, burst: int = 1, name: str = "bucket") -> "TokenBucket":
        return cls(capacity=burst, refill_rate=requests_per_minute / 60.0, name=name)

    @classmethod
    def every(cls, interval_seconds: float, name: str = "bucket") -> "TokenBucket":
        """One token per ``interval_seconds``, never more than one banked."""
        return cls(capacity=1, refill_rate=1.0 / interval_seconds, name=name)

    def _top_up(self) -> float:
        now = time.monotonic()
        self.tokens = min(float(self.capacity), self.tokens + (now - self.last_refill) * self.refill_rate)
        self.last_refill = now
        return now

    @property
    def seconds_until_token(self) -> float:
        """Time until a whole token has accrued, ignoring any penalty."""
        missing = 1.0 - self.tokens
        return missing / self.refill_rate if missing > 0 else 0.0

    @property
    def blocked_for(self) -> float:
        """Seconds left on the current penalty, 0 when not penalized."""
        return max(0.0, self.blocked_until - time.monotonic())

    def _delay(self, now: float) -> float:
        return max(self.blocked_until - now, self.seconds_until_token, 0.0)

    async def consume(self, tokens: int = 1) -> bool:
        """Take ``tokens`` if they are available right now."""
        async with self._lock:
            now = self._top_up()
            if now < self.blocked_until or self.tokens < tokens:
                return False
            self.tokens -= tokens
            return True

    async def acquire(self) -> float:
        """Take one token, sleeping until one is available.

        Returns:
            Seconds spent waiting.
        """
        waited = 0.0
        while True:
            async with self._lock:
                delay = self._delay(self._top_up())
                if delay <= 0:
                    self.tokens -= 1
                    break
            # Release the lock while sleeping so penalize and peers proceed
            await asyncio.sleep(max(delay, 0.001))
            waited += max(delay, 0.001)

        if waited:
            logger.debug("bucket_waited", bucket=self.name, waited_s=round(waited, 3))
        return waited

    def penalize(self, seconds: float) -> None:
        """Drain the bucket and close it for ``seconds``."""
        now = time.monotonic()
        self.blocked_until = max(self.blocked_until, now + max(seconds, 0.0))
        self.tokens = 0.0
        self.last_refill = now
        logger.warning("bucket_penalized", bucket=self.name, seconds=seconds)

    async def snapshot(self) -> dict[str, Any]:
        async with self._lock:
            now = self._top_up()
            return {
                "tokens": int(self.tokens),
                "capacity": self.capacity,
                "refill_rate": self.refill_rate,
                "blocked_for": round(max(0.0, self.blocked_until - now), 3),
            }


@dataclass(frozen=True)
class ClientBudget:
    """What is left of one client's inbound budget."""

    limit: int
    remaining: int
    reset_at: int

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at),
        }


class RateLimiter:
    """Per-client inbound limit, one bucket per client id.

    Example:
        limiter = RateLimiter(requests_per_minute=100)
        try:
            budget = await limiter.admit("10.0.0.1")
        except RateLimitExceeded as e:
            ...  # answer 429 with Retry-After: e.retry_after
    """

    def __init__(self, requests_per_minute: int = 100) -> None:
        self.requests_per_minute = requests_per_minute
        self._buckets: dict[str, TokenBucket] = {}

    def _bucket_for(self, client_id: str) -> TokenBucket:
        # Single event loop: no await between lookup and insert
        bucket = self._buckets.get(client_id)
        if bucket is None:
            bucket = TokenBucket.per_minute(
                self.requests_per_minute,
                burst=self.requests_per_minute,
                name=f"client:{client_id}",
            )
            self._buckets[client_id] = bucket
        return bucket

    async def admit(self, client_id: str) -> ClientBudget:
        """Spend one request from ``client_id``'s budget.

        Raises:
            RateLimitExceeded: The budget is exhausted.
        """
        bucket = self._bucket_for(client_id)
        if not await bucket.consume():
            logger.warning("client_throttled", client_id=client_id)
            raise RateLimitExceeded(client_id, self.requests_per_minute, bucket.seconds_until_token)

        state = await bucket.snapshot()
        return ClientBudget(
            limit=self.requests_per_minute,
            remaining=state["tokens"],
            reset_at=int(time.time() + WINDOW_SECONDS),
        )

    def clear(self) -> None:
        """Forget every client's bucket."""
        self._buckets.clear()
