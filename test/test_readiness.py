#!/usr/bin/env python3
"""Unit tests for NetworkReadinessMonitor."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import Web3

from src.somnia_deployer.readiness import NetworkReadinessMonitor

MIN_BALANCE = Web3.to_wei(1, "ether") // 100


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def conn(clock):
    conn = MagicMock()
    conn.get_latest_block = AsyncMock(side_effect=lambda: {"timestamp": int(clock.now) - 3})
    conn.get_balance = AsyncMock(return_value=MIN_BALANCE)
    return conn


@pytest.fixture
def factory(conn):
    factory = MagicMock()
    factory.get_connection = AsyncMock(return_value=conn)
    return factory


@pytest.fixture
def sleep(clock):
    async def fake_sleep(seconds):
        clock.now += seconds

    return AsyncMock(side_effect=fake_sleep)


@pytest.fixture
def monitor(factory, clock, sleep):
    return NetworkReadinessMonitor(
        factory,
        max_block_age=30,
        min_balance_wei=MIN_BALANCE,
        poll_interval=10,
        clock=clock,
        sleep=sleep,
    )


class TestIsReady:
    """Tests for the readiness check."""

    @pytest.mark.asyncio
    async def test_ready_when_fresh_and_funded(self, monitor):
        assert await monitor.is_ready() is True

    @pytest.mark.asyncio
    async def test_stale_block_not_ready(self, monitor, conn, clock, caplog):
        conn.get_latest_block = AsyncMock(return_value={"timestamp": int(clock.now) - 31})

        with caplog.at_level(logging.WARNING):
            assert await monitor.is_ready() is False

        assert "not updating quickly" in caplog.text
        conn.get_balance.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_low_balance_not_ready(self, monitor, conn, caplog):
        conn.get_balance = AsyncMock(return_value=MIN_BALANCE - 1)

        with caplog.at_level(logging.WARNING):
            assert await monitor.is_ready() is False

        assert "Insufficient wallet balance" in caplog.text

    @pytest.mark.asyncio
    async def test_errors_fail_closed(self, monitor, factory, caplog):
        factory.get_connection = AsyncMock(side_effect=ConnectionError("all endpoints down"))

        with caplog.at_level(logging.ERROR):
            assert await monitor.is_ready() is False

        assert "Network monitoring error" in caplog.text


class TestWaitUntilReady:
    """Tests for the polling wait."""

    @pytest.mark.asyncio
    async def test_returns_immediately_when_ready(self, monitor, sleep):
        assert await monitor.wait_until_ready() is True
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_polls_every_interval_until_ready(self, monitor, sleep):
        monitor.is_ready = AsyncMock(side_effect=[False, False, True])

        assert await monitor.wait_until_ready() is True

        assert monitor.is_ready.await_count == 3
        assert [c.args for c in sleep.await_args_list] == [(10,), (10,)]

    @pytest.mark.asyncio
    async def test_requires_both_conditions(self, monitor, conn, clock):
        # Balance arrives first, the chain catches up only later
        blocks = iter([int(clock.now) - 100, int(clock.now) - 100, int(clock.now) + 20])
        conn.get_latest_block = AsyncMock(side_effect=lambda: {"timestamp": next(blocks)})
        conn.get_balance = AsyncMock(side_effect=[MIN_BALANCE])

        assert await monitor.wait_until_ready() is True
        assert conn.get_latest_block.await_count == 3
        assert conn.get_balance.await_count == 1

    @pytest.mark.asyncio
    async def test_low_balance_never_ready(self, monitor, conn, sleep):
        conn.get_balance = AsyncMock(return_value=0)

        # Bounded only so the test terminates; the default has no bound
        assert await monitor.wait_until_ready(max_wait=600) is False

        assert sleep.await_count == 60
        assert all(c.args == (10,) for c in sleep.await_args_list)

    @pytest.mark.asyncio
    async def test_preset_stop_event(self, monitor, conn, sleep):
        conn.get_balance = AsyncMock(return_value=0)
        stop = asyncio.Event()
        stop.set()

        assert await monitor.wait_until_ready(stop_event=stop) is False
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop_event_interrupts_pause(self, factory, conn):
        conn.get_balance = AsyncMock(return_value=0)
        monitor = NetworkReadinessMonitor(factory, min_balance_wei=MIN_BALANCE, poll_interval=30)
        stop = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, stop.set)

        result = await asyncio.wait_for(monitor.wait_until_ready(stop_event=stop), timeout=5)

        assert result is False

    @pytest.mark.asyncio
    async def test_cancellation_aborts_wait(self, factory, conn):
        conn.get_balance = AsyncMock(return_value=0)
        monitor = NetworkReadinessMonitor(factory, min_balance_wei=MIN_BALANCE, poll_interval=30)

        task = asyncio.create_task(monitor.wait_until_ready())
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
