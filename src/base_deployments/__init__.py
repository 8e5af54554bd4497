"""
base-deployments: compile, deploy and verify Solidity contracts on Base
"""

from importlib.metadata import PackageNotFoundError, version

from .compiler import compile_contract
from .config import ConfigLoader
from .deployer import deploy_contract
from .deployments import DeploymentLog
from .exceptions import (
    CompileError,
    ConfigError,
    ConfirmationTimeoutError,
    DeploymentError,
    DeploymentRevertedError,
    InsufficientFundsError,
    NetworkError,
    NonceConflictError,
    RecordNotFoundError,
    RpcError,
    VerificationTimeout,
)
from .pipeline import report_deployments, run_deployment, verify_address
from .report import render_report
from .rpc import JsonRpcClient
from .types import (
    CompiledContract,
    DeploymentRecord,
    NetworkConfig,
    VerificationResult,
    VerificationStatus,
)
from .verifier import ExplorerClient, verify_contract

try:
    __version__ = version("base-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "ConfigLoader",
    "compile_contract",
    "deploy_contract",
    "verify_contract",
    "render_report",
    "run_deployment",
    "verify_address",
    "report_deployments",
    "DeploymentLog",
    "JsonRpcClient",
    "ExplorerClient",
    "NetworkConfig",
    "CompiledContract",
    "DeploymentRecord",
    "VerificationResult",
    "VerificationStatus",
    "DeploymentError",
    "ConfigError",
    "CompileError",
    "InsufficientFundsError",
    "NetworkError",
    "RpcError",
    "NonceConflictError",
    "ConfirmationTimeoutError",
    "DeploymentRevertedError",
    "RecordNotFoundError",
    "VerificationTimeout",
]
