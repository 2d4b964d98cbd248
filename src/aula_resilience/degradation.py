"""
Graceful degradation cache.

Keeps the last good value per logical resource (e.g. "calendar:2026-10")
and serves it when a fresh fetch fails, so screens can show stale data
with a "showing cached data" banner instead of an error.

Usage:
```python
from aula_resilience.degradation import GracefulDegradation

degradation = GracefulDegradation(max_entries=500)
result = await degradation.get_data("calendar", fetch_calendar)
if result.degraded:
    show_banner()
```
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from aula_resilience.exception.base import AppError
from aula_resilience.exception.retry import NO_FALLBACK, RetryOptions, with_retry

if TYPE_CHECKING:
    from aula_resilience.exception.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DegradationCacheEntry:
    """Last-known-good value for one key."""

    key: str
    value: Any = NO_FALLBACK
    failure_count_since_last_success: int = 0

    @property
    def has_value(self) -> bool:
        return self.value is not NO_FALLBACK


@dataclass(frozen=True)
class DegradedResult(Generic[T]):
    """Data returned by get_data; ``degraded`` is set whenever fresh data could not be fetched."""

    data: T | None
    error: AppError | None = None
    degraded: bool = False


class GracefulDegradation:
    """
    Last-known-good store with LRU eviction.

    ``max_entries=None`` keeps every key for the lifetime of the process.
    """

    def __init__(self, max_entries: int | None = 1000) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, DegradationCacheEntry] = OrderedDict()

    def _touch(self, key: str) -> DegradationCacheEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = DegradationCacheEntry(key=key)
            self._entries[key] = entry
        self._entries.move_to_end(key)
        self._evict()
        return entry

    def _evict(self) -> None:
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            logger.debug(f"[Degradation] evicted {evicted_key}")

    async def get_data(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T] | T],
        fallback: Any = NO_FALLBACK,
        options: RetryOptions | None = None,
        *,
        breaker: CircuitBreaker | None = None,
    ) -> DegradedResult[T]:
        """
        Fetch through the retry engine, falling back to the explicit
        fallback or the cached value for ``key``.
        """
        fallback_data = fallback if fallback is not NO_FALLBACK else self._cached_value(key)
        retry_options = (options or RetryOptions()).with_fallback(fallback_data)

        result = await with_retry(fetcher, retry_options, breaker=breaker)

        if result.success and not result.fallback_used:
            entry = self._touch(key)
            entry.value = result.data
            entry.failure_count_since_last_success = 0
            return DegradedResult(data=result.data, degraded=False)

        if result.fallback_used:
            entry = self._touch(key)
            entry.failure_count_since_last_success += 1
            logger.warning(
                f"[Degradation] serving fallback for {key} "
                f"(failures: {entry.failure_count_since_last_success})"
            )
            return DegradedResult(data=result.data, error=result.error, degraded=True)

        return DegradedResult(data=None, error=result.error, degraded=True)

    def is_degraded(self, key: str) -> bool:
        return self.get_failure_count(key) > 0

    def get_failure_count(self, key: str) -> int:
        entry = self._entries.get(key)
        return entry.failure_count_since_last_success if entry else 0

    def clear_failures(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is not None:
            entry.failure_count_since_last_success = 0

    def _cached_value(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None or not entry.has_value:
            return NO_FALLBACK
        return entry.value

    def get_fallback_data(self, key: str, default: Any = None) -> Any:
        """Cached value for ``key``, or ``default`` when nothing was cached."""
        value = self._cached_value(key)
        return default if value is NO_FALLBACK else value

    def get_entry(self, key: str) -> DegradationCacheEntry | None:
        return self._entries.get(key)

    def clear(self, key: str | None = None) -> None:
        """Drop one key, or everything when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
