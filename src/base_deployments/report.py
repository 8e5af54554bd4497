"""Operator-facing output for base-deployments library."""

import logging
import sys
from typing import Dict, List, Optional, Sequence, TextIO

from .constants import NETWORK_CONFIG
from .types import DeploymentRecord, VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)

_RULE = "=" * 64


def _explorer_address_url(record: DeploymentRecord) -> str:
    explorer = NETWORK_CONFIG.get(record.network, {}).get("block_explorer_url", "")
    return f"{explorer}/address/{record.contract_address}" if explorer else ""


def format_report(
    record: DeploymentRecord, result: Optional[VerificationResult] = None
) -> str:
    """Render one deployment and its verification state as text."""
    lines: List[str] = [
        _RULE,
        f"  Contract      : {record.contract_name or '(unnamed)'}",
        f"  Network       : {record.network} (chain {record.chain_id})",
        f"  Address       : {record.contract_address}",
        f"  Transaction   : {record.transaction_hash}",
    ]
    if record.block_number is not None:
        lines.append(f"  Block         : {record.block_number}")
    lines += [
        f"  Deployed at   : {record.deployed_at}",
        f"  Compiler      : solc {record.compiler_version}",
    ]
    if record.deployer:
        lines.append(f"  Deployer      : {record.deployer}")

    if result is None:
        lines.append("  Verification  : not attempted")
        url = _explorer_address_url(record)
    else:
        lines.append(f"  Verification  : {result.status.value}")
        if result.message:
            lines.append(f"                  {result.message}")
        url = result.explorer_url
    if url:
        lines.append(f"  Explorer      : {url}")

    if result is None or result.status is not VerificationStatus.VERIFIED:
        lines.append("")
        lines.append("  Source is not verified. Run `base-deployments verify --address")
        lines.append(f"  {record.contract_address}` or verify manually on the explorer.")
    lines.append(_RULE)
    return "\n".join(lines)


def _write(text: str, stream: Optional[TextIO]) -> None:
    out = stream if stream is not None else sys.stdout
    try:
        out.write(text + "\n")
        out.flush()
    except OSError as e:
        logger.warning("Could not write report: %s", e)


def render_report(
    record: DeploymentRecord,
    result: Optional[VerificationResult] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Print a deployment and its verification state to the operator.

    I/O errors are logged as warnings and otherwise ignored.
    """
    _write(format_report(record, result), stream)


def render_log(
    records: Sequence[DeploymentRecord],
    verifications: Dict[str, VerificationResult],
    stream: Optional[TextIO] = None,
) -> None:
    """Print every logged deployment with its cached verification state."""
    if not records:
        _write("No deployments recorded.", stream)
        return
    for record in records:
        render_report(record, verifications.get(record.contract_address.lower()), stream)
