"""
Calendar identity resolution with a short-lived in-process cache.

Each resource writes to its own calendar on the provider. Looking the id up
costs a round trip, so results are memoised for a few minutes. After a
resource re-authorises, ``force_refresh`` or ``clear`` drops the stale entry.
"""

import logging
import time
from typing import Any, Callable, Optional, Protocol

from onboarding_scheduler.config import settings

logger = logging.getLogger(__name__)


class Cache(Protocol):
    """Minimal key/value cache with per-entry TTL."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None: ...

    def invalidate(self, key: str) -> bool: ...

    def clear(self) -> None: ...

    def remaining_ttl(self, key: str) -> Optional[float]: ...

    def keys(self) -> list[str]: ...


class TtlCache:
    """In-memory TTL cache. Last write wins; no locking."""

    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            logger.debug("Cache EXPIRED: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = (value, self._clock() + ttl)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)

    def invalidate(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def remaining_ttl(self, key: str) -> Optional[float]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        remaining = entry[1] - self._clock()
        return remaining if remaining > 0 else None

    def keys(self) -> list[str]:
        return list(self._entries)


class CalendarIdLookup(Protocol):
    async def resolve_calendar_id(self, resource_id: str) -> str: ...


class CalendarIdResolver:
    """Resolves and caches the calendar id each resource writes to."""

    def __init__(
        self,
        lookup: CalendarIdLookup,
        cache: Optional[Cache] = None,
        fallback_calendar_id: Optional[str] = None,
    ):
        self._lookup = lookup
        self._cache = cache if cache is not None else TtlCache(
            default_ttl=settings.calendar.calendar_id_cache_ttl_sec
        )
        self.fallback_calendar_id = fallback_calendar_id or settings.calendar.fallback_calendar_id

    @staticmethod
    def _key(resource_id: str) -> str:
        return f"calendar_id:{resource_id.lower()}"

    async def resolve(self, resource_id: str) -> str:
        """Return the resource's calendar id, falling back to the provider default.

        A fallback value is never cached, so the next call retries the lookup.
        """
        cached = self._cache.get(self._key(resource_id))
        if cached is not None:
            return cached
        try:
            calendar_id = await self._lookup.resolve_calendar_id(resource_id)
        except Exception:
            logger.warning(
                "Calendar id lookup failed for %s, using '%s'",
                resource_id, self.fallback_calendar_id, exc_info=True,
            )
            return self.fallback_calendar_id
        if not calendar_id:
            logger.warning("No calendar id for %s, using '%s'", resource_id, self.fallback_calendar_id)
            return self.fallback_calendar_id
        self._cache.set(self._key(resource_id), calendar_id)
        return calendar_id

    async def force_refresh(self, resource_id: str) -> str:
        self._cache.invalidate(self._key(resource_id))
        logger.info("Forcing calendar id refresh for %s", resource_id)
        return await self.resolve(resource_id)

    def clear(self, resource_id: Optional[str] = None) -> None:
        """Drop one resource's cached id, or every cached id."""
        if resource_id is None:
            self._cache.clear()
            logger.info("Cleared all cached calendar ids")
        else:
            self._cache.invalidate(self._key(resource_id))
            logger.info("Cleared cached calendar id for %s", resource_id)

    def cache_status(self) -> dict[str, dict[str, Any]]:
        """Cached ids with their remaining TTL in seconds, keyed by resource id."""
        status: dict[str, dict[str, Any]] = {}
        for key in self._cache.keys():
            remaining = self._cache.remaining_ttl(key)
            if remaining is None:
                continue
            status[key.split(":", 1)[1]] = {
                "calendar_id": self._cache.get(key),
                "expires_in_sec": round(remaining, 1),
            }
        return status
