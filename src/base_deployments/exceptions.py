"""Custom exception classes for base-deployments library."""

from typing import Optional


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    remedy = "Re-run with --verbose for details."
    exit_code = 1


class ConfigError(DeploymentError, ValueError):
    """Raised when network configuration is missing or invalid."""

    remedy = "Check the network settings in your environment or .env file."
    exit_code = 2


class CompileError(DeploymentError):
    """Raised when the compiler rejects the sources or cannot be run."""

    remedy = "Fix the reported compiler errors; nothing was sent to the network."
    exit_code = 3


class InsufficientFundsError(DeploymentError):
    """Raised when the deployer balance cannot cover the estimated gas cost."""

    remedy = "Fund the deployer account on the target network and try again."
    exit_code = 4


class NetworkError(DeploymentError, ConnectionError):
    """Raised when an HTTP endpoint stays unreachable after all retries."""

    remedy = "Check the RPC/explorer URL and your connectivity, or retry later."
    exit_code = 5


class RpcError(DeploymentError):
    """Raised when a JSON-RPC endpoint answers with an error object."""

    def __init__(self, code: int, message: str, data: Optional[object] = None):
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class NonceConflictError(DeploymentError):
    """Raised when another transaction from the same signer is in flight."""

    remedy = (
        "Wait for pending transactions from this account to confirm, "
        "or cancel them from your wallet, then deploy again."
    )
    exit_code = 6


class ConfirmationTimeoutError(DeploymentError):
    """Raised when a submitted transaction is not confirmed in time."""

    remedy = "Look the transaction up on the block explorer before redeploying."
    exit_code = 7

    def __init__(self, message: str, transaction_hash: str):
        super().__init__(message)
        self.transaction_hash = transaction_hash


class DeploymentRevertedError(DeploymentError):
    """Raised when the deployment transaction is mined with a failed status."""

    remedy = "Inspect the constructor and its arguments; the creation reverted."


class RecordNotFoundError(DeploymentError, LookupError):
    """Raised when no deployment record exists for a requested address."""

    remedy = "Only contracts deployed with this tool (see `report`) can be verified."
    exit_code = 8


class VerificationTimeout(DeploymentError):
    """Signals that the explorer did not settle verification in time.

    Never reaches the operator as a failure: the verifier catches it and
    degrades the result to pending.
    """

    remedy = "Verify the contract manually on the block explorer."
