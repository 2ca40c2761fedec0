#!/usr/bin/env python3
"""Tests for the interactive main menu."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.somnia_deployer.menu import BANNER, BackRequested, MainMenu
from src.somnia_deployer.utils.hardhat_utility import HardhatError

PROMPT = "src.somnia_deployer.menu.prompt"
PAUSE = "src.somnia_deployer.menu.pause"


@pytest.fixture
def deployer():
    deployer = MagicMock()
    deployer.contract_address = ""
    deployer.send_native = AsyncMock()
    deployer.send_token = AsyncMock()
    deployer.deploy_token = AsyncMock()
    deployer.connection_factory.selector.select_stable = AsyncMock(return_value="https://a.rpc")
    return deployer


@pytest.fixture
def verifier():
    verifier = MagicMock()
    verifier.is_installed.return_value = True
    verifier.is_configured.return_value = True
    verifier.install = AsyncMock()
    return verifier


@pytest.fixture
def menu(deployer, verifier):
    return MainMenu(deployer, verifier)


@pytest.mark.asyncio
async def test_exit_option_stops_loop(menu, capsys):
    with patch(PROMPT, new_callable=AsyncMock, return_value="4"):
        assert await menu.run_once() is False

    output = capsys.readouterr().out
    assert output.index(BANNER) < output.index("1. Deploy New Contract")


@pytest.mark.asyncio
async def test_send_native_dispatch(menu, deployer):
    answers = ["2", "0x00000000219ab540356cbb839cbe05303d7705fa", "0.5"]
    with patch(PROMPT, new_callable=AsyncMock, side_effect=answers), \
         patch(PAUSE, new_callable=AsyncMock) as mock_pause:
        assert await menu.run_once() is True

    deployer.send_native.assert_awaited_once_with("0x00000000219ab540356cbb839cbe05303d7705fa", "0.5")
    mock_pause.assert_awaited_once()


@pytest.mark.asyncio
async def test_back_returns_to_menu(menu, deployer):
    with patch(PROMPT, new_callable=AsyncMock, side_effect=["2", BackRequested()]), \
         patch(PAUSE, new_callable=AsyncMock) as mock_pause:
        assert await menu.run_once() is True

    deployer.send_native.assert_not_awaited()
    mock_pause.assert_not_awaited()


@pytest.mark.asyncio
async def test_action_failure_is_logged(menu, deployer, caplog):
    deployer.send_native = AsyncMock(side_effect=RuntimeError("exhausted retries"))

    with patch(PROMPT, new_callable=AsyncMock, side_effect=["2", "0xabc", "1"]), \
         patch(PAUSE, new_callable=AsyncMock), \
         caplog.at_level(logging.ERROR):
        assert await menu.run_once() is True

    assert "Transfer failed: exhausted retries" in caplog.text


@pytest.mark.asyncio
async def test_send_erc20_requires_contract(menu, deployer, caplog):
    with patch(PROMPT, new_callable=AsyncMock, return_value="3") as mock_prompt, \
         patch(PAUSE, new_callable=AsyncMock), \
         caplog.at_level(logging.ERROR):
        assert await menu.run_once() is True

    mock_prompt.assert_awaited_once()
    deployer.send_token.assert_not_awaited()
    assert "Contract not deployed" in caplog.text


@pytest.mark.asyncio
async def test_deploy_without_hardhat_disables_verification(menu, deployer, verifier):
    verifier.is_installed.return_value = False
    answers = ["1", "Token", "TKN", "18", "1000", "n"]

    with patch(PROMPT, new_callable=AsyncMock, side_effect=answers), \
         patch(PAUSE, new_callable=AsyncMock):
        assert await menu.run_once() is True

    verifier.install.assert_not_awaited()
    assert deployer.verifier is None
    token = deployer.deploy_token.await_args.args[0]
    assert (token.name, token.symbol, token.decimals, token.total_supply) == ("Token", "TKN", 18, "1000")


@pytest.mark.asyncio
async def test_hardhat_error_is_reported(menu, deployer, caplog):
    deployer.deploy_token = AsyncMock(side_effect=HardhatError("📦 Artifact not found"))
    answers = ["1", "Token", "TKN", "18", "1000"]

    with patch(PROMPT, new_callable=AsyncMock, side_effect=answers), \
         patch(PAUSE, new_callable=AsyncMock), \
         caplog.at_level(logging.ERROR):
        assert await menu.run_once() is True

    assert "Artifact not found" in caplog.text
    assert "Transfer failed" not in caplog.text
