"""Main API for base-deployments library."""

import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TextIO, Tuple, Union

from .compiler import compile_contract
from .config import ConfigLoader
from .constants import (
    CONFIRMATION_POLL_INTERVAL,
    CONFIRMATION_TIMEOUT,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_OPTIMIZER_RUNS,
    VERIFY_POLL_INTERVAL,
    VERIFY_TIMEOUT,
)
from .deployer import deploy_contract
from .deployments import DeploymentLog, load_verification_cache, save_verification_cache
from .exceptions import NetworkError
from .report import render_log, render_report
from .rpc import JsonRpcClient
from .types import (
    CompiledContract,
    DeploymentRecord,
    NetworkConfig,
    VerificationResult,
    VerificationStatus,
)
from .verifier import ExplorerClient, verify_contract

logger = logging.getLogger(__name__)


def verify_deployment(
    record: DeploymentRecord,
    compiled: CompiledContract,
    config: NetworkConfig,
    log: DeploymentLog,
    timeout: float = VERIFY_TIMEOUT,
    poll_interval: float = VERIFY_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> VerificationResult:
    """
    Verify a logged deployment, consulting and updating the status cache.

    Raises:
        NetworkError: If the explorer stays unreachable after retries
    """
    cache = load_verification_cache(log.paths.verifications)
    client = None
    if config.explorer_api_key:
        client = ExplorerClient(
            config.explorer_api_key, config.chain_id, config.explorer_api_url, sleep=sleep
        )

    result = verify_contract(
        record,
        compiled,
        client,
        f"{config.address_url(record.contract_address)}#code",
        cache=cache,
        timeout=timeout,
        poll_interval=poll_interval,
        sleep=sleep,
        clock=clock,
    )
    save_verification_cache(cache, log.paths.verifications)
    return result


def run_deployment(
    sources: Sequence[Union[Path, str]],
    network: str = "mainnet",
    *,
    contract_name: Optional[str] = None,
    compiler_version: Optional[str] = None,
    constructor_args: Sequence[Any] = (),
    loader: Optional[ConfigLoader] = None,
    state_dir: Optional[Union[Path, str]] = None,
    verify: bool = True,
    solc: Optional[str] = None,
    optimize: bool = True,
    optimizer_runs: int = DEFAULT_OPTIMIZER_RUNS,
    confirmations: int = DEFAULT_CONFIRMATIONS,
    confirmation_timeout: float = CONFIRMATION_TIMEOUT,
    confirmation_poll_interval: float = CONFIRMATION_POLL_INTERVAL,
    verify_timeout: float = VERIFY_TIMEOUT,
    verify_poll_interval: float = VERIFY_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    stream: Optional[TextIO] = None,
) -> Tuple[DeploymentRecord, Optional[VerificationResult]]:
    """
    Compile, deploy, verify and report a contract, in that order.

    Verification problems never undo a deployment: a timeout or an
    unreachable explorer leaves the result pending and the operator is told
    to verify manually.

    Args:
        sources: Solidity source files
        network: Target network ("mainnet" or "testnet")
        contract_name: Contract to deploy (optional if only one is deployable)
        compiler_version: Required solc version
        constructor_args: Constructor arguments in declaration order
        loader: Configuration source (defaults to the process environment)
        state_dir: Where the deployment log lives (defaults to ./.base-deployments)
        verify: Submit the source to the block explorer after deployment
        stream: Report destination (defaults to stdout)

    Returns:
        Tuple of (record, verification result or None when verify=False)

    Raises:
        ConfigError, CompileError, InsufficientFundsError, NetworkError,
        NonceConflictError, ConfirmationTimeoutError, DeploymentRevertedError
    """
    loader = loader if loader is not None else ConfigLoader()
    config = loader.load(network)
    signer = loader.load_signer(config)
    logger.info("Deploying to %s (chain %d) as %s", network, config.chain_id, signer.address)

    compiled = compile_contract(
        sources,
        contract_name=contract_name,
        compiler_version=compiler_version,
        solc=solc,
        optimize=optimize,
        optimizer_runs=optimizer_runs,
    )

    rpc = JsonRpcClient(config.rpc_url, sleep=sleep)
    record = deploy_contract(
        compiled,
        config,
        signer,
        rpc,
        constructor_args=constructor_args,
        confirmations=confirmations,
        timeout=confirmation_timeout,
        poll_interval=confirmation_poll_interval,
        sleep=sleep,
        clock=clock,
    )

    log = DeploymentLog(state_dir)
    log.append(record)
    log.save_artifact(record, compiled)

    result = None
    if verify:
        try:
            result = verify_deployment(
                record,
                compiled,
                config,
                log,
                timeout=verify_timeout,
                poll_interval=verify_poll_interval,
                sleep=sleep,
                clock=clock,
            )
        except NetworkError as e:
            logger.warning("Explorer unreachable, verification skipped: %s", e)
            result = VerificationResult(
                status=VerificationStatus.PENDING,
                explorer_url=f"{config.address_url(record.contract_address)}#code",
                message=f"Explorer unreachable: {e}",
            )

    render_report(record, result, stream)
    return record, result


def verify_address(
    address: str,
    network: str = "mainnet",
    *,
    loader: Optional[ConfigLoader] = None,
    state_dir: Optional[Union[Path, str]] = None,
    timeout: float = VERIFY_TIMEOUT,
    poll_interval: float = VERIFY_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    stream: Optional[TextIO] = None,
) -> VerificationResult:
    """
    Verify a contract previously deployed with this tool.

    Raises:
        ConfigError: If the network configuration is invalid
        RecordNotFoundError: If the address or its compile artifact is not logged
        NetworkError: If the explorer stays unreachable after retries
    """
    loader = loader if loader is not None else ConfigLoader()
    config = loader.load(network, require_signer=False)

    log = DeploymentLog(state_dir)
    record = log.latest_for_address(address, network)
    compiled = log.load_artifact(record)

    result = verify_deployment(
        record,
        compiled,
        config,
        log,
        timeout=timeout,
        poll_interval=poll_interval,
        sleep=sleep,
        clock=clock,
    )
    render_report(record, result, stream)
    return result


def report_deployments(
    network: Optional[str] = None,
    *,
    state_dir: Optional[Union[Path, str]] = None,
    stream: Optional[TextIO] = None,
) -> int:
    """
    Print every logged deployment with its cached verification state.

    Returns:
        Number of deployments reported
    """
    log = DeploymentLog(state_dir)
    records = log.records(network)
    render_log(records, load_verification_cache(log.paths.verifications), stream)
    return len(records)
