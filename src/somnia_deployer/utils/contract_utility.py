import json
from pathlib import Path
from typing import Any

from web3 import Web3
from web3.contract import Contract

from ..models import CompiledContract


class ContractUtility:
    """
    Utility for contract artifacts and call data encoding.

    Encoding needs no provider, so a provider-less Web3 instance is used; the
    encoded data is submitted through the TransactionSubmitter.
    """

    def __init__(self, compiled: CompiledContract) -> None:
        """
        Initialize the ContractUtility.

        Args:
            compiled: ABI and bytecode of the contract
        """
        self.compiled = compiled
        self.w3 = Web3()
        self.factory: Contract = self.w3.eth.contract(
            abi=compiled.abi,
            bytecode=compiled.bytecode,
        )

    @staticmethod
    def load_artifact(artifact_path: Path) -> CompiledContract:
        """Reads ABI and bytecode from a Hardhat artifact.

        Args:
            artifact_path: Path to the artifact JSON file

        Returns:
            CompiledContract with ABI and 0x-prefixed bytecode

        Raises:
            FileNotFoundError: If the artifact file doesn't exist
            json.JSONDecodeError: If the artifact file is invalid JSON
        """
        with artifact_path.open() as file:
            artifact: dict[str, Any] = json.load(file)

        bytecode = artifact["bytecode"]
        # Some toolchains nest the bytecode as {"object": "..."}
        if isinstance(bytecode, dict):
            bytecode = bytecode["object"]
        if not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode

        return CompiledContract(abi=artifact["abi"], bytecode=bytecode)

    def has_function(self, name: str) -> bool:
        return any(
            item.get("type") == "function" and item.get("name") == name
            for item in self.compiled.abi
        )

    def constructor_data(self, *args: Any) -> str:
        """Init code for a deployment: bytecode followed by encoded constructor args."""
        return self.factory.constructor(*args).data_in_transaction

    def call_data(self, function_name: str, *args: Any) -> str:
        """Encoded call data for a contract function."""
        if not self.has_function(function_name):
            raise ValueError(f"Function {function_name} not found in contract ABI")
        return self.factory.encode_abi(function_name, args=list(args))
