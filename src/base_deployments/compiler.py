"""Solidity compilation for base-deployments library."""

import json
import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .constants import DEFAULT_OPTIMIZER_RUNS, SOLC_BINARY_ENV
from .exceptions import CompileError
from .types import CompiledContract
from .versions import parse_solc_version, versions_match

logger = logging.getLogger(__name__)


def _source_key(path: Path) -> str:
    """Name a source in the standard-JSON input (relative to cwd when possible)."""
    try:
        return path.resolve().relative_to(Path.cwd().resolve()).as_posix()
    except ValueError:
        return path.name


def installed_solc_version(solc: str) -> str:
    """
    Ask a solc binary for its version.

    Args:
        solc: Binary name or path

    Returns:
        Long version (e.g., "0.8.24+commit.e11b9ed9")

    Raises:
        CompileError: If the binary is missing or its output is unrecognized
    """
    try:
        result = subprocess.run(
            [solc, "--version"],
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        raise CompileError(
            f"Solidity compiler '{solc}' not found; install solc or set ${SOLC_BINARY_ENV}"
        ) from None
    except subprocess.CalledProcessError as e:
        raise CompileError(f"Failed to run '{solc} --version': {e.stderr.strip()}") from e

    try:
        return parse_solc_version(result.stdout)
    except ValueError as e:
        raise CompileError(str(e)) from e


def build_standard_input(
    sources: Sequence[Union[Path, str]],
    optimize: bool = True,
    optimizer_runs: int = DEFAULT_OPTIMIZER_RUNS,
    evm_version: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a solc standard-JSON input document with inline source contents.

    Raises:
        CompileError: If no sources are given, a source cannot be read, or two
            sources map to the same name
    """
    if not sources:
        raise CompileError("No source files given")

    source_map: Dict[str, Dict[str, str]] = {}
    for source in sources:
        path = Path(source)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CompileError(f"Cannot read source {path}: {e.strerror}") from None
        key = _source_key(path)
        if key in source_map:
            raise CompileError(
                f"Source {path} collides with another source named '{key}'; "
                "run from a directory containing both or rename one"
            )
        source_map[key] = {"content": content}

    settings: Dict[str, Any] = {
        "optimizer": {"enabled": optimize, "runs": optimizer_runs},
        "outputSelection": {"*": {"*": ["abi", "evm.bytecode.object", "metadata"]}},
    }
    if evm_version:
        settings["evmVersion"] = evm_version

    return {"language": "Solidity", "sources": source_map, "settings": settings}


def _split_diagnostics(output: Dict[str, Any]) -> Tuple[List[str], List[str]]:
    """Return (errors, warnings) as formatted messages."""
    errors: List[str] = []
    warnings: List[str] = []
    for item in output.get("errors", []):
        message = (item.get("formattedMessage") or item.get("message", "")).strip()
        if item.get("severity") == "error":
            errors.append(message)
        elif item.get("severity") == "warning":
            warnings.append(message)
    return errors, warnings


def _select_contract(
    contracts: Dict[str, Dict[str, Any]], contract_name: Optional[str]
) -> Tuple[str, str, Dict[str, Any]]:
    """Pick (source_key, name, output) for the requested contract."""
    candidates = [
        (source_key, name, data)
        for source_key, by_name in contracts.items()
        for name, data in by_name.items()
        if contract_name is None or name == contract_name
    ]
    if contract_name is not None:
        if not candidates:
            raise CompileError(f"Contract '{contract_name}' not found in compiler output")
        if len(candidates) > 1:
            where = ", ".join(f"{s}:{n}" for s, n, _ in candidates)
            raise CompileError(f"Contract name '{contract_name}' is ambiguous: {where}")
        return candidates[0]

    deployable = [c for c in candidates if c[2].get("evm", {}).get("bytecode", {}).get("object")]
    if len(deployable) != 1:
        names = ", ".join(f"{s}:{n}" for s, n, _ in deployable) or "none"
        raise CompileError(
            f"Expected exactly one deployable contract, found: {names}. Pass a contract name."
        )
    return deployable[0]


def compile_contract(
    sources: Sequence[Union[Path, str]],
    contract_name: Optional[str] = None,
    compiler_version: Optional[str] = None,
    solc: Optional[str] = None,
    optimize: bool = True,
    optimizer_runs: int = DEFAULT_OPTIMIZER_RUNS,
    evm_version: Optional[str] = None,
) -> CompiledContract:
    """
    Compile Solidity sources with an external solc binary.

    Warnings are logged and kept on the result; compilation proceeds.
    Nothing is written to disk.

    Args:
        sources: Solidity source files
        contract_name: Contract to select (optional if exactly one is deployable)
        compiler_version: Required compiler version ("0.8.24" or long form)
        solc: solc binary (defaults to $SOLC_BINARY or "solc")
        optimize: Enable the optimizer
        optimizer_runs: Optimizer runs setting
        evm_version: Optional EVM target (e.g., "cancun")

    Returns:
        CompiledContract

    Raises:
        CompileError: On compiler errors, version mismatch, missing sources
            or binary, or when the contract cannot be selected
    """
    solc = solc or os.environ.get(SOLC_BINARY_ENV) or "solc"

    installed = installed_solc_version(solc)
    if compiler_version is not None and not versions_match(compiler_version, installed):
        raise CompileError(
            f"Requested solc {compiler_version} but '{solc}' is {installed}"
        )

    standard_input = build_standard_input(sources, optimize, optimizer_runs, evm_version)
    logger.info(
        "Compiling %d source(s) with solc %s", len(standard_input["sources"]), installed
    )

    try:
        result = subprocess.run(
            [solc, "--standard-json"],
            input=json.dumps(standard_input),
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        raise CompileError(f"Solidity compiler '{solc}' not found") from None

    try:
        output = json.loads(result.stdout)
    except json.JSONDecodeError:
        raise CompileError(
            f"solc produced no JSON output (exit code {result.returncode}): "
            f"{result.stderr.strip()}"
        ) from None

    errors, warnings = _split_diagnostics(output)
    for warning in warnings:
        logger.warning("Compiler warning:\n%s", warning)
    if errors:
        raise CompileError("Compilation failed:\n" + "\n".join(errors))

    source_key, name, data = _select_contract(output.get("contracts", {}), contract_name)
    bytecode = data.get("evm", {}).get("bytecode", {}).get("object", "")
    if not bytecode:
        raise CompileError(
            f"{source_key}:{name} has no creation bytecode (abstract contract or interface?)"
        )

    logger.info("Compiled %s:%s (%d bytes)", source_key, name, len(bytecode) // 2)
    return CompiledContract(
        name=name,
        source_path=source_key,
        abi=data.get("abi", []),
        bytecode=bytecode if bytecode.startswith("0x") else f"0x{bytecode}",
        compiler_version=installed,
        standard_input=standard_input,
        warnings=tuple(warnings),
    )
