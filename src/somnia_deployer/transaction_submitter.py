#!/usr/bin/env python3
"""Transaction submission with classified retries.

This module submits signed transactions through the currently selected
endpoint, waits for confirmation, and retries transient failures with
adjusted parameters: a fresh nonce, a bumped gas price, or a delay after
gateway and DNS errors.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from .connection import BoundConnection, ConnectionFactory
from .models import ConfirmedTransaction, TransactionRequest
from .utils.logging_utility import SUCCESS

logger = logging.getLogger(__name__)

NONCE_RETRY_DELAY: float = 5
TRANSPORT_RETRY_DELAY: float = 10
GAS_BUMP_PERCENT: int = 120

DNS_FAILURE_SIGNATURES: tuple[str, ...] = (
    "enotfound",
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
)


class ErrorKind(Enum):
    """Classification of a failed submission attempt."""
    NONCE_TOO_LOW = "nonce_too_low"
    FEE_TOO_LOW = "fee_too_low"
    TRANSIENT_TRANSPORT = "transient_transport"
    OTHER = "other"


def classify_error(message: str) -> ErrorKind:
    """Map raw failure text to an ErrorKind (case-insensitive substring match)."""
    text = message.lower()

    if "nonce" in text and "too low" in text:
        return ErrorKind.NONCE_TOO_LOW
    if (("fee" in text or "gas" in text) and "too low" in text) or "underpriced" in text:
        return ErrorKind.FEE_TOO_LOW
    if "502" in text or "gateway" in text or any(sig in text for sig in DNS_FAILURE_SIGNATURES):
        return ErrorKind.TRANSIENT_TRANSPORT
    return ErrorKind.OTHER


class TransactionFailed(Exception):
    """Terminal submission failure."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class TransactionReverted(TransactionFailed):
    """The transaction was mined but its receipt reports failure."""

    def __init__(self, tx_hash: str, block_number: int | None = None) -> None:
        super().__init__(f"transaction {tx_hash} reverted in block {block_number}")
        self.tx_hash = tx_hash
        self.block_number = block_number


class TransactionSubmitter:
    """Submits transactions and retries transient failures."""

    def __init__(
        self,
        connection_factory: ConnectionFactory,
        explorer_url: str = "",
        receipt_timeout: float = 120,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the TransactionSubmitter.

        Args:
            connection_factory: Source of connections bound to the selected endpoint
            explorer_url: Base explorer URL for transaction links (optional)
            receipt_timeout: Seconds to wait for a transaction receipt
            sleep: Coroutine used for retry delays
        """
        self.connection_factory = connection_factory
        self.explorer_url = explorer_url.rstrip("/")
        self.receipt_timeout = receipt_timeout
        self._sleep = sleep

    def explorer_link(self, tx_hash: str) -> str | None:
        return f"{self.explorer_url}/tx/{tx_hash}" if self.explorer_url else None

    async def submit(self, request: TransactionRequest, max_retries: int = 3) -> ConfirmedTransaction:
        """
        Submit a transaction and wait for its confirmation.

        The pending nonce is fetched again on every attempt. Only failures
        before the transaction is broadcast are classified and retried; a
        receipt timeout or revert after broadcast is raised as-is.

        Args:
            request: The transaction to send
            max_retries: Maximum number of attempts

        Returns:
            The confirmed transaction

        Raises:
            TransactionFailed: When attempts are exhausted or the transaction reverted
            Exception: Any non-transient error, re-raised without retry
        """
        gas_price = request.gas_price
        if gas_price is None:
            conn = await self.connection_factory.get_connection()
            gas_price = await conn.get_gas_price()


        attempts = 0
        while attempts < max_retries:
            try:
                conn = await self.connection_factory.get_connection()
                nonce = await conn.get_pending_nonce()
                tx_hash = await conn.send_transaction(request.to_tx_params(nonce, gas_price))
            except Exception as e:
                match classify_error(str(e)):
                    case ErrorKind.NONCE_TOO_LOW:
                        logger.warning("🔄 Nonce too low, fetching latest nonce...")
                        await self._sleep(NONCE_RETRY_DELAY)
                        attempts += 1
                    case ErrorKind.FEE_TOO_LOW:
                        logger.warning("📈 Fee too low, increasing gas price...")
                        conn = await self.connection_factory.get_connection()
                        current_gas_price = await conn.get_gas_price()
                        gas_price = current_gas_price * GAS_BUMP_PERCENT // 100
                        attempts += 1
                    case ErrorKind.TRANSIENT_TRANSPORT:
                        attempts += 1
                        logger.warning(
                            "⚠️ Transaction failed due to server/DNS error. "
                            f"Retrying ({attempts}/{max_retries})..."
                        )
                        await self._sleep(TRANSPORT_RETRY_DELAY)
                    case _:
                        logger.error(f"❌ Transaction failed: {e}")
                        raise
            else:
                # Broadcast: later failures are never retried
                return await self._confirm(conn, tx_hash, nonce, gas_price, attempts + 1)

        logger.error(f"❌ Transaction failed after {attempts} attempts.")
        raise TransactionFailed("exhausted retries", attempts=attempts)

    async def _confirm(
        self,
        conn: BoundConnection,
        tx_hash: str,
        nonce: int,
        gas_price: int,
        attempts: int,
    ) -> ConfirmedTransaction:
        logger.info(f"💸 Tx Hash: {tx_hash}")
        if link := self.explorer_link(tx_hash):
            logger.info(f"🔎 Explorer: {link}")
        logger.info("⏳ Waiting for transaction confirmation...")

        try:
            receipt = await conn.wait_for_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            logger.error(f"❌ Transaction {tx_hash} was not confirmed: {e}")
            raise

        if (status := receipt.get("status", 0)) != 1:
            logger.error(f"✗ Transaction {tx_hash} failed with status={status}")
            raise TransactionReverted(tx_hash, receipt.get("blockNumber"))

        logger.log(SUCCESS, f"✓ Transaction confirmed in block {receipt['blockNumber']}")
        return ConfirmedTransaction(
            tx_hash=tx_hash,
            receipt=receipt,
            nonce=nonce,
            gas_price=gas_price,
            attempts=attempts,
        )
