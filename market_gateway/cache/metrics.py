"""Counters for the cache read path."""

from dataclasses import dataclass, fields
from typing import Any


@dataclass
class CacheMetrics:
    """Hit/miss accounting for one CacheManager.

    Only touched from the event loop that owns the manager, so plain
    integer updates are enough.

    Attributes:
        hits: Lookups answered from the store.
        misses: Lookups that found nothing (or an expired entry).
        errors: Store operations that raised.
        computes: Upstream computations run after a miss.
        lookup_ms: Total time spent in store lookups.
    """

    hits: int = 0
    misses: int = 0
    errors: int = 0
    computes: int = 0
    lookup_ms: float = 0.0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        """Share of lookups served from cache, 0.0 to 1.0."""
        return self.hits / self.lookups if self.lookups else 0.0

    def record_lookup(self, hit: bool, elapsed_ms: float) -> None:
        if hit:
            self.hits += 1
        else:
            self.misses += 1
        self.lookup_ms += elapsed_ms

    def snapshot(self) -> dict[str, Any]:
        """Counters plus derived ratios, JSON-ready."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "computes": self.computes,
            "lookups": self.lookups,
            "hit_ratio": round(self.hit_ratio, 4),
            "avg_lookup_ms": round(self.lookup_ms / self.lookups, 3) if self.lookups else 0.0,
        }

    def reset(self) -> None:
        for f in fields(self):
            setattr(self, f.name, f.default)
