"""Local deployment log and caches for base-deployments library."""

import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .exceptions import DeploymentError, RecordNotFoundError
from .paths import StatePaths, get_state_paths
from .types import CompiledContract, DeploymentRecord, VerificationResult

logger = logging.getLogger(__name__)


class DeploymentLog:
    """Append-only log of confirmed deployments, keyed by transaction hash."""

    def __init__(self, state_dir: Optional[Union[Path, str]] = None):
        """
        Initialize the deployment log.

        Args:
            state_dir: State directory
                       If None, uses ./.base-deployments
        """
        self.paths: StatePaths = get_state_paths(state_dir)

    def _iter_records(self) -> Iterator[DeploymentRecord]:
        try:
            with open(self.paths.deployments) as f:
                for line_number, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        yield DeploymentRecord.from_dict(json.loads(line))
                    except (json.JSONDecodeError, KeyError) as e:
                        raise DeploymentError(
                            f"Corrupted deployment log {self.paths.deployments} "
                            f"at line {line_number}: {e}"
                        ) from e
        except FileNotFoundError:
            return

    def records(self, network: Optional[str] = None) -> List[DeploymentRecord]:
        """
        Get all logged deployments in the order they were appended.

        Args:
            network: Only return deployments on this network

        Returns:
            List of DeploymentRecord objects
        """
        return [r for r in self._iter_records() if network is None or r.network == network]

    def has_transaction(self, transaction_hash: str) -> bool:
        key = transaction_hash.lower()
        return any(r.transaction_hash.lower() == key for r in self._iter_records())

    def append(self, record: DeploymentRecord) -> None:
        """
        Append a deployment record.

        Raises:
            DeploymentError: If a record with the same transaction hash exists
        """
        if self.has_transaction(record.transaction_hash):
            raise DeploymentError(
                f"Deployment {record.transaction_hash} is already logged"
            )
        self.paths.root.mkdir(parents=True, exist_ok=True)
        with open(self.paths.deployments, "a") as f:
            f.write(json.dumps(record.to_dict(), sort_keys=True) + "\n")
        logger.debug("Logged deployment %s", record.transaction_hash)

    def by_transaction(self, transaction_hash: str) -> DeploymentRecord:
        """
        Get a deployment by transaction hash.

        Raises:
            RecordNotFoundError: If no record has this hash
        """
        key = transaction_hash.lower()
        for record in self._iter_records():
            if record.transaction_hash.lower() == key:
                return record
        raise RecordNotFoundError(f"No deployment with transaction {transaction_hash}")

    def latest_for_address(
        self, address: str, network: Optional[str] = None
    ) -> DeploymentRecord:
        """
        Get the most recent deployment at an address.

        Args:
            address: Contract address (any case)
            network: Restrict the search to one network

        Raises:
            RecordNotFoundError: If the address was never deployed with this tool
        """
        key = address.lower()
        matches = [r for r in self.records(network) if r.contract_address.lower() == key]
        if not matches:
            where = f" on {network}" if network else ""
            raise RecordNotFoundError(f"No deployment recorded for {address}{where}")
        return matches[-1]

    # Compile artifacts

    def save_artifact(self, record: DeploymentRecord, compiled: CompiledContract) -> Path:
        """Store the compile artifact needed to verify a deployment later."""
        path = self.paths.artifact_for(record.transaction_hash)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(compiled.to_artifact(), f, indent=2)
        return path

    def load_artifact(self, record: DeploymentRecord) -> CompiledContract:
        """
        Load the compile artifact saved for a deployment.

        Raises:
            RecordNotFoundError: If the artifact is missing
        """
        path = self.paths.artifact_for(record.transaction_hash)
        try:
            with open(path) as f:
                return CompiledContract.from_artifact(json.load(f))
        except FileNotFoundError:
            raise RecordNotFoundError(
                f"Compile artifact for {record.transaction_hash} not found at {path}"
            ) from None


def load_verification_cache(cache_path: Path) -> Dict[str, VerificationResult]:
    """
    Load existing verification cache or return empty dict.

    Args:
        cache_path: Path to verifications.json file

    Returns:
        Dictionary mapping lowercase address -> VerificationResult
        Empty dict if file doesn't exist or is corrupted
    """
    try:
        with open(cache_path) as f:
            raw = json.load(f)
        return {address: VerificationResult.from_dict(data) for address, data in raw.items()}
    except (FileNotFoundError, json.JSONDecodeError, KeyError, ValueError, AttributeError):
        return {}


def save_verification_cache(cache: Dict[str, VerificationResult], cache_path: Path) -> None:
    """
    Save updated verification cache to disk.

    Creates parent directories if they don't exist.
    """
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    with open(cache_path, "w") as f:
        json.dump({k: v.to_dict() for k, v in cache.items()}, f, indent=2)
