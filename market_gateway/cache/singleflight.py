"""Per-key in-flight request coalescing.

At most one computation runs per key at a time; callers arriving while
it runs await the same result (or the same exception).
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SingleFlight:
    """Collapse concurrent calls for the same key into one.

    Example:
        flight = SingleFlight()
        quote = await flight.do("quote:AAPL", lambda: client.get_quote("AAPL"))
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._lock = asyncio.Lock()

    @property
    def inflight(self) -> int:
        """Number of keys currently being computed."""
        return len(self._inflight)

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` unless a call for ``key`` is already in flight.

        Args:
            key: Coalescing key.
            fn: Async function producing the value.

        Returns:
            The value produced by the single in-flight call.
        """
        async with self._lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = asyncio.get_running_loop().create_future()
                self._inflight[key] = future

        if not leader:
            logger.debug("singleflight_joined", key=key)
            return await asyncio.shield(future)

        try:
            result = await fn()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Retrieved here so an unjoined flight does not warn on GC.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            async with self._lock:
                if self._inflight.get(key) is future:
                    del self._inflight[key]
