"""Tests for the calendar id cache and resolver."""

import pytest

from onboarding_scheduler.tools.calendar_ids import CalendarIdResolver, TtlCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingLookup:
    def __init__(self, result="cal-1", fail=False):
        self.calls = 0
        self.result = result
        self.fail = fail

    async def resolve_calendar_id(self, resource_id: str) -> str:
        self.calls += 1
        if self.fail:
            raise ConnectionError("provider down")
        return self.result


class TestTtlCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.cache = TtlCache(default_ttl=300, clock=self.clock)

    def test_hit_within_ttl(self):
        self.cache.set("k", "v")
        self.clock.now += 299
        assert self.cache.get("k") == "v"

    def test_expires_after_ttl(self):
        self.cache.set("k", "v")
        self.clock.now += 300
        assert self.cache.get("k") is None

    def test_custom_ttl(self):
        self.cache.set("k", "v", ttl=10)
        self.clock.now += 11
        assert self.cache.get("k") is None

    def test_invalidate(self):
        self.cache.set("k", "v")
        assert self.cache.invalidate("k")
        assert not self.cache.invalidate("k")
        assert self.cache.get("k") is None

    def test_last_write_wins(self):
        self.cache.set("k", "first")
        self.cache.set("k", "second")
        assert self.cache.get("k") == "second"

    def test_remaining_ttl(self):
        self.cache.set("k", "v")
        self.clock.now += 100
        assert self.cache.remaining_ttl("k") == 200


class TestCalendarIdResolver:
    def setup_method(self):
        self.clock = FakeClock()
        self.lookup = CountingLookup()
        self.resolver = CalendarIdResolver(
            self.lookup, cache=TtlCache(default_ttl=300, clock=self.clock), fallback_calendar_id="primary",
        )

    @pytest.mark.asyncio
    async def test_cached_for_five_minutes(self):
        assert await self.resolver.resolve("a@x") == "cal-1"
        assert await self.resolver.resolve("A@X") == "cal-1"
        assert self.lookup.calls == 1
        self.clock.now += 301
        await self.resolver.resolve("a@x")
        assert self.lookup.calls == 2

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self):
        await self.resolver.resolve("a@x")
        self.lookup.result = "cal-2"
        assert await self.resolver.force_refresh("a@x") == "cal-2"
        assert self.lookup.calls == 2

    @pytest.mark.asyncio
    async def test_clear_single_and_all(self):
        await self.resolver.resolve("a@x")
        await self.resolver.resolve("b@x")
        self.resolver.clear("a@x")
        assert set(self.resolver.cache_status()) == {"b@x"}
        self.resolver.clear()
        assert self.resolver.cache_status() == {}

    @pytest.mark.asyncio
    async def test_failure_falls_back_without_caching(self):
        self.lookup.fail = True
        assert await self.resolver.resolve("a@x") == "primary"
        self.lookup.fail = False
        assert await self.resolver.resolve("a@x") == "cal-1"
        assert self.lookup.calls == 2

    @pytest.mark.asyncio
    async def test_empty_result_falls_back(self):
        self.lookup.result = ""
        assert await self.resolver.resolve("a@x") == "primary"
        assert self.resolver.cache_status() == {}

    @pytest.mark.asyncio
    async def test_cache_status_reports_ttl(self):
        await self.resolver.resolve("a@x")
        self.clock.now += 60
        status = self.resolver.cache_status()
        assert status["a@x"] == {"calendar_id": "cal-1", "expires_in_sec": 240.0}
