"""Data types and dataclasses for base-deployments library."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class NetworkConfig:
    """Validated settings for one target network."""

    network: str  # "mainnet" or "testnet"
    chain_id: int
    rpc_url: str
    explorer_api_key: Optional[str] = field(default=None, repr=False)
    credential_ref: str = field(default="", repr=False)  # "env:NAME" or "file:PATH"
    explorer_url: str = ""  # Block explorer UI, e.g. https://basescan.org
    explorer_api_url: str = ""

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/address/{address}"

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"


@dataclass(frozen=True)
class CompiledContract:
    """Output of a successful compilation, ready to deploy and verify."""

    name: str  # e.g. "Counter"
    source_path: str  # Key in the standard-JSON "sources" map
    abi: List[Dict[str, Any]]
    bytecode: str  # 0x-prefixed creation bytecode
    compiler_version: str  # Long form, e.g. "0.8.24+commit.e11b9ed9"
    standard_input: Dict[str, Any] = field(repr=False)
    warnings: Tuple[str, ...] = ()

    @property
    def qualified_name(self) -> str:
        """Fully qualified name as block explorers expect it."""
        return f"{self.source_path}:{self.name}"

    def to_artifact(self) -> Dict[str, Any]:
        data = asdict(self)
        data["warnings"] = list(self.warnings)
        return data

    @classmethod
    def from_artifact(cls, data: Dict[str, Any]) -> "CompiledContract":
        return cls(
            name=data["name"],
            source_path=data["source_path"],
            abi=data["abi"],
            bytecode=data["bytecode"],
            compiler_version=data["compiler_version"],
            standard_input=data["standard_input"],
            warnings=tuple(data.get("warnings", ())),
        )


@dataclass(frozen=True)
class DeploymentRecord:
    """A confirmed contract deployment. Never mutated once created."""

    # Required fields
    contract_address: str  # Checksummed address
    transaction_hash: str  # 0x-prefixed, 32 bytes
    deployed_at: str  # ISO-8601 UTC
    compiler_version: str

    # Context
    network: str = "mainnet"
    chain_id: int = 8453
    contract_name: str = ""
    deployer: str = ""
    block_number: Optional[int] = None
    constructor_args: str = ""  # ABI-encoded hex without 0x prefix

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        return cls(
            contract_address=data["contract_address"],
            transaction_hash=data["transaction_hash"],
            deployed_at=data["deployed_at"],
            compiler_version=data["compiler_version"],
            network=data.get("network", "mainnet"),
            chain_id=data.get("chain_id", 8453),
            contract_name=data.get("contract_name", ""),
            deployer=data.get("deployer", ""),
            block_number=data.get("block_number"),
            constructor_args=data.get("constructor_args", ""),
        )


class VerificationStatus(Enum):
    """
    Explorer verification states.

    Value strings define de/serialization law.
    """

    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not VerificationStatus.PENDING


@dataclass
class VerificationResult:
    """Verification state of one deployment, updated while polling."""

    status: VerificationStatus
    explorer_url: str
    guid: Optional[str] = None  # Explorer request id
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "explorer_url": self.explorer_url,
            "guid": self.guid,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerificationResult":
        return cls(
            status=VerificationStatus(data["status"]),
            explorer_url=data["explorer_url"],
            guid=data.get("guid"),
            message=data.get("message", ""),
        )
