#!/usr/bin/env python3
"""Interactive main menu.

Prompts are plain line input read in a worker thread so the event loop keeps
running. Typing ``back`` at any prompt returns to the main menu.
"""

import asyncio
import logging

from .models import TokenSpec
from .token_deployer import TokenDeployer
from .utils.hardhat_utility import HardhatError, HardhatVerifier

logger = logging.getLogger(__name__)

BACK: str = "back"

BANNER: str = "Somnia Token Deployer | Somnia Testnet"

MENU_OPTIONS: dict[str, str] = {
    "1": "Deploy New Contract (Create ERC20 Token)",
    "2": "Send Native Token (STT)",
    "3": "Send ERC20 Token (if custom token is deployed)",
    "4": "Exit",
}


class BackRequested(Exception):
    """The user typed 'back' at a prompt."""


def print_separator(length: int = 50) -> None:
    print("=" * length)


async def prompt(message: str, default: str | None = None) -> str:
    answer = (await asyncio.to_thread(input, f"{message} ")).strip()
    if answer.lower() == BACK:
        raise BackRequested
    if not answer and default is not None:
        return default
    return answer


async def confirm(message: str, default: bool = True) -> bool:
    suffix = "[Y/n]" if default else "[y/N]"
    answer = (await prompt(f"{message} {suffix}", default="y" if default else "n")).lower()
    return answer in ("y", "yes")


async def pause() -> None:
    await asyncio.to_thread(input, 'Press "Enter" to return to the main menu...')


class MainMenu:
    """Dispatches menu choices to the TokenDeployer."""

    def __init__(self, deployer: TokenDeployer, verifier: HardhatVerifier) -> None:
        self.deployer = deployer
        self.verifier = verifier

    async def ensure_hardhat(self) -> bool:
        """Offer to install and configure Hardhat when it is missing."""
        if not self.verifier.is_installed():
            if not await confirm("🔧 Hardhat is not installed. Do you want to install it now?"):
                logger.warning("⚠️ Hardhat is not installed. Automatic verification will not run.")
                return False
            await self.verifier.install()

        if not self.verifier.is_configured():
            if not await confirm("🚀 Hardhat project is not initialized. Do you want to initialize it automatically?"):
                logger.warning("⚠️ Hardhat project is not initialized. Automatic verification might fail.")
                return False
            logger.info("🚀 Initializing minimal Hardhat project...")
            endpoint = await self.deployer.connection_factory.selector.select_stable()
            self.verifier.write_config(endpoint)
        return True

    async def deploy_contract(self) -> None:
        token = TokenSpec(
            name=await prompt("Enter Contract Name:"),
            symbol=await prompt("Enter Contract Symbol:"),
            decimals=int(await prompt("Enter Decimals (default 18):", default="18")),
            total_supply=await prompt("Enter Total Supply (e.g., 100000):"),
        )
        print_separator()
        hardhat_ready = await self.ensure_hardhat()
        # Compilation needs Hardhat; verification is skipped without it
        self.deployer.verifier = self.verifier if hardhat_ready else None
        await self.deployer.deploy_token(token)
        print_separator()

    async def send_native(self) -> None:
        destination = await prompt("Enter the destination address:")
        amount = await prompt("Enter the amount of native token to send:")
        print_separator()
        await self.deployer.send_native(destination, amount)

    async def send_erc20(self) -> None:
        if not self.deployer.contract_address:
            logger.error("❌ Contract not deployed. Please deploy the contract first.")
            return
        destination = await prompt("Enter the destination address:")
        amount = await prompt("Enter the token amount to send:")
        symbol = await prompt("Enter the token symbol (must match deployed token):")
        print_separator()
        await self.deployer.send_token(destination, amount, symbol)

    async def run_once(self) -> bool:
        """Show the menu and run one action. Returns False when the user exits."""
        print_separator()
        print(BANNER)
        print_separator()
        for key, label in MENU_OPTIONS.items():
            print(f"{key}. {label}")
        print_separator()

        try:
            choice = await prompt("Select an option:")
        except BackRequested:
            return True

        actions = {
            "1": self.deploy_contract,
            "2": self.send_native,
            "3": self.send_erc20,
        }
        if choice == "4":
            logger.info("🚪 Exiting safely...")
            return False
        if (action := actions.get(choice)) is None:
            logger.warning(f"Unknown option: {choice}")
            return True

        try:
            await action()
        except BackRequested:
            logger.info("🔙 'back' detected. Returning to main menu...")
            return True
        except (ValueError, HardhatError) as e:
            logger.error(f"❌ {e}")
        except Exception as e:
            logger.error(f"❌ Transfer failed: {e}")
        await pause()
        return True

    async def run(self) -> None:
        while await self.run_once():
            pass
