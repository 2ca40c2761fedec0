"""
Somnia token deployer package.

Interactive ERC20 deployment and transfer tool with RPC endpoint health
selection and retrying transaction submission.
"""

from .config import DeployerConfig
from .connection import ConnectionFactory, WalletIdentity, Web3ClientPool
from .endpoint_prober import EndpointProber
from .endpoint_selector import EndpointSelector
from .readiness import NetworkReadinessMonitor
from .token_deployer import TokenDeployer
from .transaction_submitter import TransactionFailed, TransactionSubmitter

__all__ = [
    "ConnectionFactory",
    "DeployerConfig",
    "EndpointProber",
    "EndpointSelector",
    "NetworkReadinessMonitor",
    "TokenDeployer",
    "TransactionFailed",
    "TransactionSubmitter",
    "WalletIdentity",
    "Web3ClientPool",
]
__version__ = "0.1.0"
