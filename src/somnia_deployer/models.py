#!/usr/bin/env python3
"""Data models for the Somnia token deployer.

This module provides immutable data classes for endpoint probe results,
transaction requests and outcomes, and token deployments.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from web3.types import TxParams, TxReceipt, Wei


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of probing one RPC endpoint.

    Attributes:
        endpoint: The probed endpoint URL
        reachable: Whether the latest block could be fetched
        latency_ms: Wall-clock time of the block request in milliseconds
        freshness_delta_seconds: Age of the latest block when it was fetched
        error: Error text when the endpoint was unreachable
    """

    endpoint: str
    reachable: bool
    latency_ms: float | None = None
    freshness_delta_seconds: int | None = None
    error: str | None = None

    def is_viable(self, max_block_age: int) -> bool:
        """Whether the endpoint is reachable and synchronized."""
        return (
            self.reachable
            and self.latency_ms is not None
            and self.freshness_delta_seconds is not None
            and self.freshness_delta_seconds <= max_block_age
        )

    def __str__(self) -> str:
        if not self.reachable:
            return f"ProbeResult({self.endpoint}, unreachable: {self.error})"
        return (
            f"ProbeResult({self.endpoint}, latency={self.latency_ms:.0f}ms, "
            f"block_age={self.freshness_delta_seconds}s)"
        )


@dataclass(frozen=True, slots=True)
class SelectedEndpoint:
    """Cache entry for the currently selected endpoint.

    Replaced as a whole so the endpoint and its timestamp never disagree.
    """

    endpoint: str
    selected_at: float

    def age(self, now: float) -> float:
        return now - self.selected_at


@dataclass(frozen=True, slots=True)
class TransactionRequest:
    """An intended transaction, not yet signed or submitted.

    Attributes:
        to: Recipient address, or None for a contract creation
        value: Amount of native currency in wei
        data: Hex-encoded call data or init code
        gas_price: Fixed gas price in wei (fetched from the network if None)
        nonce: Caller-provided nonce; ignored, the pending nonce is always used
        gas: Gas limit (estimated if None)
    """

    to: str | None
    value: int = 0
    data: str | None = None
    gas_price: int | None = None
    nonce: int | None = None
    gas: int | None = None

    def to_tx_params(self, nonce: int, gas_price: int) -> TxParams:
        """Build web3 transaction params with nonce and gas price merged in."""
        params: TxParams = {
            "value": Wei(self.value),
            "nonce": nonce,
            "gasPrice": Wei(gas_price),
        }
        if self.to is not None:
            params["to"] = self.to
        if self.data is not None:
            params["data"] = self.data
        if self.gas is not None:
            params["gas"] = self.gas
        return params


@dataclass(frozen=True, slots=True)
class ConfirmedTransaction:
    """A transaction observed included in the chain with a successful receipt."""

    tx_hash: str
    receipt: TxReceipt = field(repr=False)
    nonce: int
    gas_price: int
    attempts: int

    @property
    def block_number(self) -> int:
        return self.receipt["blockNumber"]

    @property
    def contract_address(self) -> str | None:
        return self.receipt.get("contractAddress")

    def __str__(self) -> str:
        return (
            f"ConfirmedTransaction(hash={self.tx_hash[:12]}..., "
            f"block={self.block_number}, attempts={self.attempts})"
        )


@dataclass(frozen=True, slots=True)
class CompiledContract:
    """ABI and bytecode produced by the compiler."""

    abi: list[dict[str, Any]] = field(repr=False)
    bytecode: str = field(repr=False)


def parse_units(amount: str, decimals: int) -> int:
    """Convert a human-readable amount into the smallest unit.

    Args:
        amount: Decimal string such as "1.5"
        decimals: Number of decimals of the unit

    Returns:
        Integer amount in smallest units

    Raises:
        ValueError: If the amount is not a positive number or has too many decimals
    """
    try:
        value = Decimal(amount.strip())
    except (InvalidOperation, AttributeError):
        raise ValueError(f"Invalid amount: {amount!r}") from None

    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be a positive number, got {amount!r}")

    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {decimals} decimals")
    return int(scaled)


@dataclass(frozen=True, slots=True)
class TokenSpec:
    """Parameters of a token to deploy.

    Attributes:
        name: Token name
        symbol: Token symbol
        decimals: Number of decimals
        total_supply: Total supply in whole tokens, as entered
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: str = "100000"

    def __post_init__(self) -> None:
        """Validate token parameters."""
        if not self.name.strip():
            raise ValueError("Token name is required")
        if not self.symbol.strip():
            raise ValueError("Token symbol is required")
        if not 0 < self.decimals <= 255:
            raise ValueError(f"Decimals must be between 1 and 255, got {self.decimals}")
        # Raises ValueError for malformed supplies
        parse_units(self.total_supply, self.decimals)

    @property
    def total_supply_units(self) -> int:
        return parse_units(self.total_supply, self.decimals)

    @property
    def constructor_args(self) -> tuple[str, str, int, int]:
        return (self.name, self.symbol, self.decimals, self.total_supply_units)


@dataclass(frozen=True, slots=True)
class DeploymentResult:
    """Outcome of a token deployment."""

    token: TokenSpec
    address: str
    transaction: ConfirmedTransaction
    verified: bool
