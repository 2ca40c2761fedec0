#!/usr/bin/env python3
"""RPC endpoint health probing.

This module probes candidate RPC endpoints for liveness, freshness and
latency, and picks the best synchronized endpoint among them.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from web3 import AsyncWeb3

from .models import ProbeResult

logger = logging.getLogger(__name__)


class EndpointProber:
    """Probes RPC endpoints and selects the lowest-latency synchronized one."""

    def __init__(
        self,
        web3_factory: Callable[[str], AsyncWeb3],
        request_timeout: float = 10,
        max_block_age: int = 30,
        clock: Callable[[], float] = time.time,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        """
        Initialize the EndpointProber.

        Args:
            web3_factory: Builds an AsyncWeb3 client for an endpoint URL
            request_timeout: Per-probe timeout in seconds
            max_block_age: Maximum latest-block age (seconds) of a viable endpoint
            clock: Wall clock used for block freshness
            timer: Monotonic timer used for latency
        """
        self.web3_factory = web3_factory
        self.request_timeout = request_timeout
        self.max_block_age = max_block_age
        self._clock = clock
        self._timer = timer

    async def probe(self, endpoint: str) -> ProbeResult:
        """
        Probe a single endpoint by fetching its latest block.

        Never raises: failures are recorded as an unreachable result.
        """
        try:
            w3 = self.web3_factory(endpoint)
            start = self._timer()
            block = await asyncio.wait_for(
                w3.eth.get_block("latest"), timeout=self.request_timeout
            )
            latency_ms = (self._timer() - start) * 1000
        except asyncio.TimeoutError:
            logger.warning(f"🚫 RPC {endpoint} error: timed out after {self.request_timeout}s")
            return ProbeResult(endpoint=endpoint, reachable=False, error="timeout")
        except Exception as e:
            logger.warning(f"🚫 RPC {endpoint} error: {e}")
            return ProbeResult(endpoint=endpoint, reachable=False, error=str(e))

        delta = int(self._clock()) - int(block["timestamp"])
        result = ProbeResult(
            endpoint=endpoint,
            reachable=True,
            latency_ms=latency_ms,
            freshness_delta_seconds=delta,
        )
        if not result.is_viable(self.max_block_age):
            logger.warning(f"⏰ RPC {endpoint} is not synchronized (block diff {delta} sec).")
        else:
            logger.debug(f"Probed {result}")
        return result

    async def probe_all(self, endpoints: Sequence[str]) -> list[ProbeResult]:
        """Probe all endpoints concurrently, returning results in input order."""
        return list(await asyncio.gather(*(self.probe(url) for url in endpoints)))

    def pick_best(self, endpoints: Sequence[str], results: Sequence[ProbeResult]) -> str:
        """
        Choose the viable endpoint with minimum latency.

        Falls back to the first configured endpoint when none is viable.

        Raises:
            ValueError: If no endpoints are configured
        """
        if not endpoints:
            raise ValueError("No RPC endpoints configured")

        viable = [r for r in results if r.is_viable(self.max_block_age)]
        if not viable:
            logger.warning(f"⚠️ No RPC meets the requirements. Fallback to: {endpoints[0]}")
            return endpoints[0]

        # min() keeps the first of equal latencies, i.e. configuration order
        best = min(viable, key=lambda r: r.latency_ms)
        logger.info(f"📡 Stable RPC selected: {best.endpoint} (latency {best.latency_ms:.0f}ms)")
        return best.endpoint

    async def select(self, endpoints: Sequence[str]) -> str:
        """Probe every endpoint and return the best one."""
        results = await self.probe_all(endpoints)
        return self.pick_best(endpoints, results)
