"""Compiler version utilities for base-deployments library."""

import re
from typing import Optional

_VERSION_LINE = re.compile(r"Version:\s*(\d+\.\d+\.\d+)(\+commit\.[0-9a-f]+)?")
_SHORT = re.compile(r"^v?(\d+\.\d+\.\d+)")


def parse_solc_version(output: str) -> str:
    """
    Extract the long compiler version from `solc --version` output.

    Args:
        output: stdout of `solc --version`, e.g.
                "solc, the solidity compiler commandline interface\\n"
                "Version: 0.8.24+commit.e11b9ed9.Linux.g++"

    Returns:
        Long version without platform suffix (e.g., "0.8.24+commit.e11b9ed9")

    Raises:
        ValueError: If no version line is found
    """
    match = _VERSION_LINE.search(output)
    if match is None:
        raise ValueError(f"Unrecognized solc version output: {output.strip()!r}")
    return match.group(1) + (match.group(2) or "")


def short_version(version: str) -> Optional[str]:
    """Return the bare "X.Y.Z" part of a version string, or None."""
    match = _SHORT.match(version.strip())
    return match.group(1) if match else None


def versions_match(requested: str, installed: str) -> bool:
    """
    Check an operator-supplied version against the installed compiler.

    A short request ("0.8.24") matches any build of that release; a long
    request ("v0.8.24+commit.e11b9ed9") must match the commit too.
    """
    requested = requested.strip().lstrip("v")
    if "+commit." in requested:
        return installed.startswith(requested)
    return short_version(requested) == short_version(installed)


def explorer_compiler_version(version: str) -> str:
    """
    Format a long compiler version the way explorers expect it.

    Args:
        version: e.g. "0.8.24+commit.e11b9ed9"

    Returns:
        e.g. "v0.8.24+commit.e11b9ed9"
    """
    return version if version.startswith("v") else f"v{version}"
