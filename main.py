#!/usr/bin/env python3
"""Entry point for the Somnia token deployer.

Loads configuration from the environment (and a .env file), wires the
endpoint selection, submission and readiness components together and runs
the interactive menu.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from src.somnia_deployer.config import DeployerConfig
from src.somnia_deployer.connection import ConnectionFactory, WalletIdentity, Web3ClientPool
from src.somnia_deployer.endpoint_prober import EndpointProber
from src.somnia_deployer.endpoint_selector import EndpointSelector
from src.somnia_deployer.menu import MainMenu
from src.somnia_deployer.readiness import NetworkReadinessMonitor
from src.somnia_deployer.token_deployer import TokenDeployer
from src.somnia_deployer.transaction_submitter import TransactionSubmitter
from src.somnia_deployer.utils.env_utility import EnvStore
from src.somnia_deployer.utils.hardhat_utility import HardhatCompiler, HardhatVerifier
from src.somnia_deployer.utils.logging_utility import setup_logging

# Get logger for this module
logger = logging.getLogger(__name__)


def build_menu(config: DeployerConfig, project_dir: Path, clients: Web3ClientPool) -> MainMenu:
    """Create the component graph for a loaded configuration.

    Probing and connections share one RPC client per endpoint from ``clients``.
    """
    prober = EndpointProber(
        web3_factory=clients.get,
        request_timeout=config.monitoring.request_timeout,
        max_block_age=config.monitoring.max_block_age,
    )
    selector = EndpointSelector(
        endpoints=config.network.rpc_urls,
        prober=prober,
        cache_ttl=config.monitoring.cache_ttl,
    )
    factory = ConnectionFactory(
        selector=selector,
        wallet=WalletIdentity.from_key(config.private_key),
        chain_id=config.network.chain_id,
        clients=clients,
    )
    submitter = TransactionSubmitter(factory, explorer_url=config.network.explorer_url)
    monitor = NetworkReadinessMonitor(
        factory,
        max_block_age=config.monitoring.max_block_age,
        min_balance_wei=config.monitoring.min_balance_wei,
        poll_interval=config.monitoring.readiness_interval,
    )
    verifier = HardhatVerifier(project_dir, config.network, config.explorer_api_key)
    deployer = TokenDeployer(
        config=config,
        connection_factory=factory,
        submitter=submitter,
        monitor=monitor,
        compiler=HardhatCompiler(project_dir),
        verifier=verifier,
        env_store=EnvStore(config.env_file),
    )
    logger.info(f"Wallet address: {factory.wallet.address}")
    return MainMenu(deployer, verifier)


async def main() -> None:
    """Main entry point for the deployer.

    Parses startup arguments, loads configuration and runs the menu until
    the user exits.

    Raises:
        SystemExit: On configuration errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Somnia Token Deployer - deploy an ERC20 token and send transfers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  MAIN_PRIVATE_KEY  - Wallet private key (required)
  RPC_URL           - Comma-separated RPC endpoints (default: Somnia testnet)
  CHAIN_ID          - Chain ID (default: 50312)
  EXPLORER_URL      - Explorer base URL for transaction links
  CONTRACT_ADDRESS  - Previously deployed token contract
  EXPLORER_API_KEY  - API key for contract verification
  LOG_LEVEL         - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path of the .env file to load and update (default: .env)"
    )
    parser.add_argument(
        "--project-dir",
        default=".",
        help="Hardhat project directory holding contracts/ (default: .)"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    EnvStore(args.env_file).load()

    try:
        config: DeployerConfig = DeployerConfig.from_env(env_file=args.env_file)
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - MAIN_PRIVATE_KEY: Wallet private key (64 hex characters)")
        logger.error("  - RPC_URL: Comma-separated RPC endpoints")
        logger.error("  - CHAIN_ID: Chain ID (default: 50312)")
        logger.error("  - CONTRACT_ADDRESS: Optional deployed token contract")
        sys.exit(1)

    config.log_config()
    clients = Web3ClientPool(config.monitoring.request_timeout)
    try:
        menu = build_menu(config, Path(args.project_dir).resolve(), clients)
        await menu.run()
    finally:
        await clients.aclose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(0)
