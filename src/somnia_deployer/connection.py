#!/usr/bin/env python3
"""Wallet identity and connections bound to the selected endpoint."""

import logging
from dataclasses import dataclass, field
from typing import Any

from eth_account import Account
from eth_account.datastructures import SignedTransaction
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.types import BlockData, TxParams, TxReceipt

from .endpoint_selector import EndpointSelector

logger = logging.getLogger(__name__)


def make_async_web3(endpoint: str, request_timeout: float = 10) -> AsyncWeb3:
    """Create an AsyncWeb3 client for an HTTP(S) endpoint."""
    return AsyncWeb3(AsyncHTTPProvider(endpoint, request_kwargs={"timeout": request_timeout}))


@dataclass(frozen=True, slots=True)
class WalletIdentity:
    """The process wallet: secret held in memory, derived address exposed.

    Signing is stateless per call, so one instance is shared by every
    connection.
    """

    account: LocalAccount = field(repr=False)

    @classmethod
    def from_key(cls, private_key: str) -> "WalletIdentity":
        return cls(account=Account.from_key(private_key))

    @property
    def address(self) -> str:
        return self.account.address

    def sign_transaction(self, tx: TxParams) -> SignedTransaction:
        return self.account.sign_transaction(tx)

    def __repr__(self) -> str:
        return f"WalletIdentity(address={self.address})"


@dataclass(slots=True)
class BoundConnection:
    """A wallet bound to one endpoint. Recreated for every use."""

    endpoint: str
    w3: AsyncWeb3
    wallet: WalletIdentity
    chain_id: int

    @property
    def address(self) -> str:
        return self.wallet.address

    async def get_latest_block(self) -> BlockData:
        return await self.w3.eth.get_block("latest")

    async def get_balance(self, address: str | None = None) -> int:
        return await self.w3.eth.get_balance(address or self.address)

    async def get_pending_nonce(self) -> int:
        return await self.w3.eth.get_transaction_count(self.address, "pending")

    async def get_gas_price(self) -> int:
        return await self.w3.eth.gas_price

    def contract(self, address: str, abi: list[dict[str, Any]]) -> AsyncContract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def send_transaction(self, params: TxParams) -> str:
        """
        Sign locally and broadcast a transaction.

        Fills in sender, chain ID and an estimated gas limit when absent.

        Returns:
            Transaction hash as 0x-prefixed hex
        """
        tx: TxParams = {**params, "from": self.address, "chainId": self.chain_id}
        if "gas" not in tx:
            tx["gas"] = await self.w3.eth.estimate_gas(tx)

        signed = self.wallet.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: float = 120) -> TxReceipt:
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)


class Web3ClientPool:
    """One AsyncWeb3 client per endpoint, shared by probing and connections.

    Each HTTP provider owns an aiohttp session, so clients are created once
    per endpoint and disconnected together by ``aclose()``.
    """

    def __init__(self, request_timeout: float = 10) -> None:
        self.request_timeout = request_timeout
        self._clients: dict[str, AsyncWeb3] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def get(self, endpoint: str) -> AsyncWeb3:
        if (w3 := self._clients.get(endpoint)) is None:
            w3 = make_async_web3(endpoint, self.request_timeout)
            self._clients[endpoint] = w3
        return w3

    async def aclose(self) -> None:
        """Disconnect every cached provider and forget it."""
        clients, self._clients = self._clients, {}
        for endpoint, w3 in clients.items():
            try:
                await w3.provider.disconnect()
            except Exception as e:
                logger.warning(f"Failed to close RPC client for {endpoint}: {e}")
            else:
                logger.debug(f"Closed RPC client for {endpoint}")


class ConnectionFactory:
    """Binds the wallet to whichever endpoint the selector currently prefers."""

    def __init__(
        self,
        selector: EndpointSelector,
        wallet: WalletIdentity,
        chain_id: int,
        clients: Web3ClientPool | None = None,
    ) -> None:
        self.selector = selector
        self.wallet = wallet
        self.chain_id = chain_id
        # HTTP clients are reused per endpoint; bound connections are not
        self.clients = clients if clients is not None else Web3ClientPool()

    def web3_for(self, endpoint: str) -> AsyncWeb3:
        return self.clients.get(endpoint)

    async def aclose(self) -> None:
        await self.clients.aclose()

    async def get_connection(self) -> BoundConnection:
        """Return a connection bound to the currently selected endpoint."""
        endpoint = await self.selector.select_stable()
        return BoundConnection(
            endpoint=endpoint,
            w3=self.web3_for(endpoint),
            wallet=self.wallet,
            chain_id=self.chain_id,
        )
