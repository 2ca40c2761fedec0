#!/usr/bin/env python3
"""Network readiness monitoring.

Before a transfer is sent the monitor checks that the selected endpoint sees
a recent block and that the wallet holds enough native currency to pay for
gas. ``wait_until_ready`` polls until both hold.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from web3 import Web3

from .connection import ConnectionFactory

logger = logging.getLogger(__name__)


class NetworkReadinessMonitor:
    """Checks block freshness and wallet balance on the selected endpoint."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        max_block_age: int = 30,
        min_balance_wei: int = Web3.to_wei(1, "ether") // 100,
        poll_interval: float = 10,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the NetworkReadinessMonitor.

        Args:
            connection_factory: Source of connections bound to the selected endpoint
            max_block_age: Maximum age in seconds of the latest block
            min_balance_wei: Minimum wallet balance in wei
            poll_interval: Seconds between readiness checks while waiting
            clock: Wall clock used for block age and elapsed wait time
            sleep: Coroutine used to pause between checks
        """
        self.connection_factory = connection_factory
        self.max_block_age = max_block_age
        self.min_balance_wei = min_balance_wei
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    async def is_ready(self) -> bool:
        """
        Check whether the network is fresh and the wallet is funded.

        Never raises; any error counts as not ready.
        """
        try:
            conn = await self.connection_factory.get_connection()

            block = await conn.get_latest_block()
            block_age = int(self._clock()) - int(block["timestamp"])
            if block_age > self.max_block_age:
                logger.warning(f"⚡ Blockchain is not updating quickly (latest block {block_age}s old).")
                return False

            balance = await conn.get_balance()
            if balance < self.min_balance_wei:
                logger.warning(
                    f"💰 Insufficient wallet balance: {Web3.from_wei(balance, 'ether')} STT "
                    f"(need {Web3.from_wei(self.min_balance_wei, 'ether')})."
                )
                return False

            return True
        except Exception as e:
            logger.error(f"🚨 Network monitoring error: {e}")
            return False

    async def _pause(self, stop_event: asyncio.Event | None) -> None:
        if stop_event is None:
            await self._sleep(self.poll_interval)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
        except asyncio.TimeoutError:
            pass  # Interval elapsed without a stop request

    async def wait_until_ready(
        self,
        stop_event: asyncio.Event | None = None,
        max_wait: float | None = None,
    ) -> bool:
        """
        Block until the network is ready.

        Waits indefinitely by default. Cancelling the task (or Ctrl+C) aborts
        the wait.

        Args:
            stop_event: When set, the wait ends early
            max_wait: Maximum seconds to wait

        Returns:
            True once ready, False if stopped or max_wait elapsed first
        """
        started = self._clock()
        while not await self.is_ready():
            if stop_event is not None and stop_event.is_set():
                logger.warning("⏹️ Readiness wait stopped.")
                return False
            if max_wait is not None and self._clock() - started >= max_wait:
                logger.error(f"⏱️ Network not ready after {max_wait:.0f} seconds.")
                return False

            logger.warning(
                f"⏳ RPC/network conditions not normal, waiting {self.poll_interval:.0f} seconds..."
            )
            await self._pause(stop_event)

            if stop_event is not None and stop_event.is_set():
                logger.warning("⏹️ Readiness wait stopped.")
                return False
        return True
