"""Path management utilities for base-deployments library."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class StatePaths:
    """Locations of the files kept in a state directory."""

    root: Path
    deployments: Path  # Append-only deployment log
    verifications: Path  # Address -> last verification result
    artifacts: Path  # Compile artifacts, one per deployment

    def artifact_for(self, transaction_hash: str) -> Path:
        return self.artifacts / f"{transaction_hash.lower()}.json"


def get_default_state_dir() -> Path:
    """
    Get default state directory (current project).

    Returns:
        Path to ./.base-deployments
    """
    return Path.cwd() / ".base-deployments"


def get_state_paths(state_root: Optional[Union[Path, str]] = None) -> StatePaths:
    """
    Get state file paths.

    Args:
        state_root: Custom state directory (defaults to ./.base-deployments)

    Returns:
        StatePaths for the directory
    """
    if state_root is None:
        state_root = get_default_state_dir()
    else:
        state_root = Path(state_root).absolute()

    return StatePaths(
        root=state_root,
        deployments=state_root / "deployments.jsonl",
        verifications=state_root / "verifications.json",
        artifacts=state_root / "artifacts",
    )
