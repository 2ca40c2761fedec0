#!/usr/bin/env python3
"""Cached endpoint selection.

The selector reuses the last probed endpoint for ``cache_ttl`` seconds so
repeated calls do not re-probe every endpoint. Concurrent callers on a stale
cache share a single probe pass (single-flight under an asyncio lock).
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from .endpoint_prober import EndpointProber
from .models import SelectedEndpoint

logger = logging.getLogger(__name__)


class EndpointSelector:
    """Owns the selected-endpoint cache and refreshes it through the prober."""

    def __init__(
        self,
        endpoints: Sequence[str],
        prober: EndpointProber,
        cache_ttl: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not endpoints:
            raise ValueError("No RPC endpoints configured")
        self.endpoints: tuple[str, ...] = tuple(endpoints)
        self.prober = prober
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cached: SelectedEndpoint | None = None
        self._lock = asyncio.Lock()
        self.probe_passes: int = 0

    @property
    def cached(self) -> SelectedEndpoint | None:
        return self._cached

    def _fresh_entry(self) -> SelectedEndpoint | None:
        entry = self._cached
        if entry is not None and entry.age(self._clock()) < self.cache_ttl:
            return entry
        return None

    async def select_stable(self) -> str:
        """
        Return the current best endpoint, probing only when the cache expired.

        Returns:
            Endpoint URL
        """
        if entry := self._fresh_entry():
            return entry.endpoint

        async with self._lock:
            # Another caller may have refreshed the cache while we waited
            if entry := self._fresh_entry():
                return entry.endpoint

            logger.debug(f"Endpoint cache expired, probing {len(self.endpoints)} endpoints")
            endpoint = await self.prober.select(self.endpoints)
            self.probe_passes += 1
            self._cached = SelectedEndpoint(endpoint=endpoint, selected_at=self._clock())
            return endpoint

    def invalidate(self) -> None:
        """Force the next selection to re-probe."""
        self._cached = None
