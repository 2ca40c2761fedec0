#!/usr/bin/env python3
"""Unit tests for EndpointSelector caching and single-flight probing."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.somnia_deployer.endpoint_prober import EndpointProber
from src.somnia_deployer.endpoint_selector import EndpointSelector
from src.somnia_deployer.models import ProbeResult

A = "https://a.rpc"
B = "https://b.rpc"
C = "https://c.rpc"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def fresh(endpoint: str, latency_ms: float) -> ProbeResult:
    return ProbeResult(endpoint, True, latency_ms=latency_ms, freshness_delta_seconds=2)


def stale(endpoint: str) -> ProbeResult:
    return ProbeResult(endpoint, True, latency_ms=1, freshness_delta_seconds=600)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def prober():
    prober = EndpointProber(web3_factory=MagicMock())
    prober.probe_all = AsyncMock(return_value=[fresh(A, 200), fresh(B, 20), stale(C)])
    return prober


@pytest.fixture
def selector(prober, clock):
    return EndpointSelector([A, B, C], prober, cache_ttl=60, clock=clock)


class TestEndpointSelector:
    """Test suite for EndpointSelector."""

    def test_requires_endpoints(self, prober):
        with pytest.raises(ValueError, match="No RPC endpoints configured"):
            EndpointSelector([], prober)

    @pytest.mark.asyncio
    async def test_selects_lowest_latency_fresh_endpoint(self, selector, prober):
        assert await selector.select_stable() == B
        prober.probe_all.assert_awaited_once_with((A, B, C))

    @pytest.mark.asyncio
    async def test_all_stale_falls_back_to_first(self, selector, prober, caplog):
        prober.probe_all.return_value = [stale(A), ProbeResult(B, False, error="down"), stale(C)]

        with caplog.at_level(logging.WARNING):
            assert await selector.select_stable() == A

        assert "Fallback to: https://a.rpc" in caplog.text

    @pytest.mark.asyncio
    async def test_cache_hit_within_ttl(self, selector, prober, clock):
        first = await selector.select_stable()
        clock.advance(59)
        second = await selector.select_stable()

        assert first == second == B
        assert prober.probe_all.await_count == 1
        assert selector.probe_passes == 1

    @pytest.mark.asyncio
    async def test_reprobe_after_ttl(self, selector, prober, clock):
        assert await selector.select_stable() == B

        prober.probe_all.return_value = [fresh(A, 10), stale(B), stale(C)]
        clock.advance(60)

        assert await selector.select_stable() == A
        assert prober.probe_all.await_count == 2
        assert selector.cached.endpoint == A
        assert selector.cached.selected_at == clock.now

    @pytest.mark.asyncio
    async def test_invalidate_forces_reprobe(self, selector, prober):
        await selector.select_stable()
        selector.invalidate()

        assert selector.cached is None
        await selector.select_stable()
        assert prober.probe_all.await_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_probe(self, selector, prober):
        async def slow_probe(endpoints):
            await asyncio.sleep(0.01)
            return [fresh(A, 200), fresh(B, 20), stale(C)]

        prober.probe_all = AsyncMock(side_effect=slow_probe)

        results = await asyncio.gather(*(selector.select_stable() for _ in range(5)))

        assert results == [B] * 5
        assert prober.probe_all.await_count == 1

    @pytest.mark.asyncio
    async def test_independent_instances_do_not_share_cache(self, prober, clock):
        first = EndpointSelector([A, B], prober, clock=clock)
        second = EndpointSelector([A, B], prober, clock=clock)

        await first.select_stable()

        assert first.cached is not None
        assert second.cached is None
