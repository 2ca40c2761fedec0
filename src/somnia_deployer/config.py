#!/usr/bin/env python3
"""Configuration management for the Somnia token deployer.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables (usually populated from a
``.env`` file) with sensible defaults for the Somnia testnet.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import ClassVar
from urllib.parse import urlparse

from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_RPC_URLS: tuple[str, ...] = (
    "https://dream-rpc.somnia.network",
    "https://rpc.ankr.com/somnia_testnet",
    "https://somnia-poc.w3us.site/api/eth-rpc",
)
DEFAULT_CHAIN_ID: int = 50312


def parse_rpc_urls(raw: str) -> tuple[str, ...]:
    """Split a comma-separated endpoint list, trimming blanks."""
    return tuple(url.strip() for url in raw.split(",") if url.strip())


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """Configuration for the target network.

    Attributes:
        rpc_urls: Ordered endpoint candidates; the first is the fallback
        chain_id: Chain ID used when signing transactions
        explorer_url: Base URL for transaction links in log output
        network_name: Hardhat network name used for verification
        explorer_api_url: Explorer API used by Hardhat verify
        explorer_browser_url: Explorer UI registered with Hardhat verify
    """

    rpc_urls: tuple[str, ...] = DEFAULT_RPC_URLS
    chain_id: int = DEFAULT_CHAIN_ID
    explorer_url: str = ""
    network_name: str = "somnia-testnet"
    explorer_api_url: str = "https://shannon-explorer.somnia.network/api"
    explorer_browser_url: str = "https://shannon-explorer.somnia.network/"

    SUPPORTED_SCHEMES: ClassVar[set[str]] = {"http", "https", "ws", "wss"}

    def __post_init__(self) -> None:
        """Validate network configuration."""
        if not self.rpc_urls:
            raise ValueError("At least one RPC URL is required (RPC_URL)")

        for url in self.rpc_urls:
            parsed = urlparse(url)
            if parsed.scheme not in self.SUPPORTED_SCHEMES:
                raise ValueError(
                    f"Invalid RPC URL scheme: {parsed.scheme or '(none)'} in {url}. "
                    "Expected http, https, ws, or wss"
                )

        if self.chain_id <= 0:
            raise ValueError(f"Chain ID must be positive, got {self.chain_id}")

        # Links are built as f"{explorer_url}/tx/{hash}"
        if self.explorer_url.endswith("/"):
            object.__setattr__(self, "explorer_url", self.explorer_url.rstrip("/"))


@dataclass(frozen=True, slots=True)
class MonitoringConfig:
    """Timing and retry settings for endpoint selection and submission."""
    request_timeout: int = 10  # seconds per RPC call
    cache_ttl: int = 60  # seconds a selected endpoint is reused
    max_block_age: int = 30  # seconds before an endpoint counts as stale
    readiness_interval: int = 10  # seconds between readiness polls
    retry_count: int = 3  # submission attempts
    min_balance: Decimal = Decimal("0.01")  # native units required to transact

    def __post_init__(self) -> None:
        """Validate monitoring configuration."""
        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")

        if self.cache_ttl < 0:
            raise ValueError(f"Cache TTL must be non-negative, got {self.cache_ttl}")

        if self.max_block_age <= 0:
            raise ValueError(f"Max block age must be positive, got {self.max_block_age}")

        if self.readiness_interval <= 0:
            raise ValueError(
                f"Readiness interval must be positive, got {self.readiness_interval}"
            )

        if self.retry_count < 1:
            raise ValueError(f"Retry count must be at least 1, got {self.retry_count}")
        if self.retry_count > 10:
            raise ValueError(f"Retry count too high (max 10), got {self.retry_count}")

        if self.min_balance < 0:
            raise ValueError(f"Minimum balance must be non-negative, got {self.min_balance}")

    @property
    def min_balance_wei(self) -> int:
        return Web3.to_wei(self.min_balance, "ether")


@dataclass(frozen=True, slots=True)
class DeployerConfig:
    """Main configuration for the deployer.

    Attributes:
        private_key: Wallet secret (never logged)
        network: Target network settings
        monitoring: Endpoint selection and retry settings
        contract_address: Previously deployed token contract, if any
        explorer_api_key: API key handed to Hardhat verify
        env_file: Path of the .env file updated after a deployment
    """

    private_key: str = field(repr=False)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    contract_address: str = ""
    explorer_api_key: str = "empty"
    env_file: str = ".env"

    def __post_init__(self) -> None:
        """Validate deployer configuration."""
        if not self.private_key:
            raise ValueError("MAIN_PRIVATE_KEY environment variable is required")

        # Should be 64 hex chars, optionally with 0x prefix
        key = self.private_key.removeprefix("0x")
        if len(key) != 64:
            raise ValueError(
                f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
            )
        try:
            int(key, 16)
        except ValueError:
            raise ValueError("Invalid private key format. Must be hexadecimal") from None

        if self.contract_address:
            if not Web3.is_address(self.contract_address):
                raise ValueError(f"Invalid contract address: {self.contract_address}")
            checksummed = Web3.to_checksum_address(self.contract_address)
            if checksummed != self.contract_address:
                # Use object.__setattr__ since dataclass is frozen
                object.__setattr__(self, "contract_address", checksummed)

    @classmethod
    def from_env(cls, env_file: str = ".env") -> "DeployerConfig":
        """Load configuration from environment variables.

        Args:
            env_file: Path recorded for later CONTRACT_ADDRESS updates

        Returns:
            DeployerConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        private_key = os.environ.get("MAIN_PRIVATE_KEY", "")
        if not private_key:
            raise ValueError(
                "MAIN_PRIVATE_KEY environment variable is required. "
                "This is the key of the wallet that deploys and sends."
            )

        raw_rpc = os.environ.get("RPC_URL", "")
        rpc_urls = parse_rpc_urls(raw_rpc) if raw_rpc.strip() else DEFAULT_RPC_URLS

        try:
            network_config = NetworkConfig(
                rpc_urls=rpc_urls,
                chain_id=int(os.environ.get("CHAIN_ID", str(DEFAULT_CHAIN_ID))),
                explorer_url=os.environ.get("EXPLORER_URL", ""),
            )

            monitoring_config = MonitoringConfig(
                request_timeout=int(os.environ.get("REQUEST_TIMEOUT", "10")),
                cache_ttl=int(os.environ.get("CACHE_TTL", "60")),
                max_block_age=int(os.environ.get("MAX_BLOCK_AGE", "30")),
                readiness_interval=int(os.environ.get("READINESS_INTERVAL", "10")),
                retry_count=int(os.environ.get("RETRY_COUNT", "3")),
                min_balance=Decimal(os.environ.get("MIN_BALANCE", "0.01")),
            )
        except InvalidOperation:
            raise ValueError(
                f"Invalid MIN_BALANCE: {os.environ.get('MIN_BALANCE')}"
            ) from None

        return cls(
            private_key=private_key,
            network=network_config,
            monitoring=monitoring_config,
            contract_address=os.environ.get("CONTRACT_ADDRESS", "").strip(),
            explorer_api_key=os.environ.get("EXPLORER_API_KEY", "empty") or "empty",
            env_file=env_file,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 50)
        logger.info("Somnia Token Deployer Configuration")
        logger.info("=" * 50)

        logger.info("Network:")
        for index, url in enumerate(self.network.rpc_urls, start=1):
            logger.info(f"  RPC {index}: {url}")
        logger.info(f"  Chain ID: {self.network.chain_id}")
        logger.info(f"  Explorer: {self.network.explorer_url or '[NOT SET]'}")

        logger.info("Monitoring Settings:")
        logger.info(f"  Request Timeout: {self.monitoring.request_timeout} seconds")
        logger.info(f"  Endpoint Cache TTL: {self.monitoring.cache_ttl} seconds")
        logger.info(f"  Max Block Age: {self.monitoring.max_block_age} seconds")
        logger.info(f"  Retry Count: {self.monitoring.retry_count}")
        logger.info(f"  Min Balance: {self.monitoring.min_balance} STT")

        logger.info("Wallet:")
        logger.info("  Private Key: [CONFIGURED]")
        logger.info(f"  Token Contract: {self.contract_address or '[NOT DEPLOYED]'}")

        logger.info("=" * 50)

    def with_contract_address(self, contract_address: str) -> "DeployerConfig":
        """Create a new config pointing at a freshly deployed contract.

        Args:
            contract_address: Address of the deployed token contract

        Returns:
            New DeployerConfig instance with contract_address set
        """
        return replace(self, contract_address=contract_address)
