#!/usr/bin/env python3
"""Token deployment and transfer flows.

This module ties compilation, submission, readiness checks, verification and
``.env`` persistence together into the three actions the menu offers:
deploying a token, sending native currency and sending tokens.
"""

import logging
from collections.abc import Sequence
from typing import Protocol

from web3 import Web3

from .config import DeployerConfig
from .connection import ConnectionFactory
from .models import (
    CompiledContract,
    ConfirmedTransaction,
    DeploymentResult,
    TokenSpec,
    TransactionRequest,
    parse_units,
)
from .readiness import NetworkReadinessMonitor
from .transaction_submitter import TransactionFailed, TransactionSubmitter
from .utils.contract_utility import ContractUtility
from .utils.env_utility import EnvStore
from .utils.logging_utility import SUCCESS

logger = logging.getLogger(__name__)

NATIVE_DECIMALS: int = 18


class Compiler(Protocol):
    async def compile(self) -> CompiledContract: ...


class Verifier(Protocol):
    def write_config(self, rpc_url: str, key_env: str = ...) -> object: ...

    async def verify(self, address: str, constructor_args: Sequence[object]) -> bool: ...


def to_checksum(address: str) -> str:
    """Validate and checksum a user-entered address."""
    address = address.strip()
    if not Web3.is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


class TokenDeployer:
    """Deploys the token contract and sends native and token transfers."""

    def __init__(
        self,
        config: DeployerConfig,
        connection_factory: ConnectionFactory,
        submitter: TransactionSubmitter,
        monitor: NetworkReadinessMonitor,
        compiler: Compiler,
        verifier: Verifier | None,
        env_store: EnvStore,
    ) -> None:
        self.config = config
        self.connection_factory = connection_factory
        self.submitter = submitter
        self.monitor = monitor
        self.compiler = compiler
        self.verifier = verifier
        self.env_store = env_store
        self._contract_util: ContractUtility | None = None

    @property
    def contract_address(self) -> str:
        return self.config.contract_address

    @property
    def max_retries(self) -> int:
        return self.config.monitoring.retry_count

    async def contract_utility(self) -> ContractUtility:
        """Compile once per session and reuse the result."""
        if self._contract_util is None:
            self._contract_util = ContractUtility(await self.compiler.compile())
        return self._contract_util

    async def deploy_token(self, token: TokenSpec) -> DeploymentResult:
        """
        Compile, deploy and verify a new token contract.

        The deployed address is persisted to the .env file. Verification
        failures only produce a warning.

        Raises:
            TransactionFailed: If the deployment transaction fails
        """
        logger.info("🚀 Preparing to deploy contract...")
        contract_util = await self.contract_utility()

        request = TransactionRequest(
            to=None,
            data=contract_util.constructor_data(*token.constructor_args),
        )
        logger.info("🚀 Sending contract deployment transaction...")
        tx = await self.submitter.submit(request, max_retries=self.max_retries)

        if not (address := tx.contract_address):
            raise TransactionFailed(f"deployment {tx.tx_hash} produced no contract address")
        address = Web3.to_checksum_address(address)
        logger.log(SUCCESS, f"🚀 Contract successfully deployed at address: {address}")

        self.config = self.config.with_contract_address(address)
        self.env_store.update("CONTRACT_ADDRESS", address)

        verified = await self._verify(address, token)

        logger.info("📋 Contract Details:")
        logger.info(f"  - Name: {token.name}")
        logger.info(f"  - Symbol: {token.symbol}")
        logger.info(f"  - Decimals: {token.decimals}")
        logger.info(
            f"  - Total Supply: {token.total_supply} "
            f"(equivalent to {token.total_supply_units} smallest units)"
        )
        logger.info(f"  - Address: {address}")
        logger.info(f"  - Verification Status: {'Verified' if verified else 'Not Verified'}")

        return DeploymentResult(token=token, address=address, transaction=tx, verified=verified)

    async def _verify(self, address: str, token: TokenSpec) -> bool:
        if self.verifier is None:
            logger.warning("⚠️ Hardhat is not set up. Automatic verification will not run.")
            return False

        logger.info("🔍 Verifying contract automatically with Hardhat...")
        try:
            endpoint = await self.connection_factory.selector.select_stable()
            self.verifier.write_config(endpoint)
            verified = await self.verifier.verify(address, token.constructor_args)
        except Exception as e:
            logger.error(f"🔍 Verification error: {e}")
            verified = False

        if verified:
            logger.log(SUCCESS, "🔍 Contract verified successfully.")
        else:
            logger.warning("🔍 Contract has not been verified automatically. Please verify manually if needed.")
        return verified

    async def send_native(self, destination: str, amount: str) -> ConfirmedTransaction:
        """
        Send native currency once the network is ready.

        With a deployed contract holding enough balance the transfer goes
        through its ``sendNative``; otherwise from the wallet directly.
        """
        to = to_checksum(destination)
        value = parse_units(amount, NATIVE_DECIMALS)
        logger.info("🚀 Preparing to send native token transaction...")

        await self.monitor.wait_until_ready()

        if self.contract_address:
            conn = await self.connection_factory.get_connection()
            contract_balance = await conn.get_balance(self.contract_address)
            if contract_balance >= value:
                contract_util = await self.contract_utility()
                request = TransactionRequest(
                    to=self.contract_address,
                    data=contract_util.call_data("sendNative", to, value),
                )
                tx = await self.submitter.submit(request, max_retries=self.max_retries)
                logger.log(SUCCESS, f"💸 Transfer successful via contract. Tx Hash: {tx.tx_hash}")
                return tx
            logger.warning("⚠️ Contract does not have enough native tokens. Using main wallet instead.")

        tx = await self.submitter.submit(TransactionRequest(to=to, value=value), max_retries=self.max_retries)
        logger.log(SUCCESS, f"💸 Transfer successful. Tx Hash: {tx.tx_hash}")
        return tx

    async def send_token(self, destination: str, amount: str, symbol: str) -> ConfirmedTransaction:
        """
        Send tokens of the deployed contract.

        Raises:
            ValueError: If no contract is deployed or the symbol does not match
        """
        if not self.contract_address:
            raise ValueError("Contract not deployed. Please deploy the contract first.")
        to = to_checksum(destination)

        contract_util = await self.contract_utility()
        conn = await self.connection_factory.get_connection()
        token = conn.contract(self.contract_address, contract_util.compiled.abi)

        deployed_symbol = await token.functions.symbol().call()
        if deployed_symbol != symbol.strip():
            raise ValueError(
                f"Token with symbol {symbol.strip()} not found. Deployed token is {deployed_symbol}."
            )

        logger.info("🚀 Preparing to send ERC20 token transaction...")
        decimals = await token.functions.decimals().call()
        units = parse_units(amount, decimals)

        await self.monitor.wait_until_ready()

        request = TransactionRequest(
            to=self.contract_address,
            data=contract_util.call_data("sendToken", to, units),
        )
        tx = await self.submitter.submit(request, max_retries=self.max_retries)
        logger.log(SUCCESS, f"🪙 Transfer successful. Tx Hash: {tx.tx_hash}")
        return tx
