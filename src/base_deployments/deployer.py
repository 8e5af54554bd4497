"""Contract deployment over JSON-RPC for base-deployments library."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_account.signers.local import LocalAccount
from eth_utils import to_bytes, to_checksum_address

from .config import validate_chain_id
from .constants import (
    CONFIRMATION_POLL_INTERVAL,
    CONFIRMATION_TIMEOUT,
    DEFAULT_CONFIRMATIONS,
    GAS_PADDING,
)
from .exceptions import (
    ConfigError,
    ConfirmationTimeoutError,
    DeploymentError,
    DeploymentRevertedError,
    InsufficientFundsError,
    NetworkError,
    NonceConflictError,
    RpcError,
)
from .rpc import JsonRpcClient, hex_to_int
from .types import CompiledContract, DeploymentRecord, NetworkConfig

logger = logging.getLogger(__name__)

# Node error messages (geth, reth, op-geth) that mean the signer's nonce is contended
_NONCE_MESSAGES = (
    "nonce too low",
    "replacement transaction underpriced",
)

# The node already holds this exact transaction (e.g. a retried send)
_KNOWN_TX_MESSAGES = (
    "already known",
    "known transaction",
)


def _abi_type(param: Dict[str, Any]) -> str:
    """Canonical ABI type of a parameter, expanding tuples."""
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_abi_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def _coerce_arg(param: Dict[str, Any], value: Any) -> Any:
    """Turn hex strings into bytes for bytes/bytesN parameters, recursing into arrays and tuples."""
    abi_type = param["type"]
    if abi_type.endswith("]") and isinstance(value, (list, tuple)):
        element = dict(param, type=abi_type[: abi_type.rindex("[")])
        return [_coerce_arg(element, v) for v in value]
    if abi_type == "tuple" and isinstance(value, (list, tuple)):
        components = param.get("components", [])
        if len(components) != len(value):
            return value
        return tuple(_coerce_arg(c, v) for c, v in zip(components, value))
    if abi_type.startswith("bytes") and isinstance(value, str):
        return to_bytes(hexstr=value)
    return value


def encode_constructor_args(abi: List[Dict[str, Any]], args: Sequence[Any]) -> str:
    """
    ABI-encode constructor arguments.

    Args:
        abi: Contract ABI
        args: Constructor arguments in declaration order

    Returns:
        Encoded arguments as hex without 0x prefix ("" when there are none)

    Raises:
        DeploymentError: If the argument count does not match the constructor
    """
    constructor = next((item for item in abi if item.get("type") == "constructor"), None)
    inputs = constructor.get("inputs", []) if constructor else []
    if len(inputs) != len(args):
        raise DeploymentError(
            f"Constructor expects {len(inputs)} argument(s), got {len(args)}"
        )
    if not inputs:
        return ""
    try:
        values = [_coerce_arg(p, a) for p, a in zip(inputs, args)]
        return encode([_abi_type(p) for p in inputs], values).hex()
    except (EncodingError, TypeError, ValueError) as e:
        raise DeploymentError(f"Cannot encode constructor arguments: {e}") from e


def _raise_for_rpc_error(error: RpcError, account: str) -> None:
    """Translate node errors that belong to the deployment taxonomy."""
    message = error.message.lower()
    if any(m in message for m in _NONCE_MESSAGES):
        raise NonceConflictError(
            f"Nonce conflict for {account}: {error.message}"
        ) from error
    if "insufficient funds" in message:
        raise InsufficientFundsError(
            f"Account {account} cannot pay for deployment: {error.message}"
        ) from error


def _fee_fields(rpc: JsonRpcClient) -> Dict[str, int]:
    """EIP-1559 fee caps when the chain exposes a base fee, legacy gas price otherwise."""
    latest = rpc.get_latest_block()
    base_fee = latest.get("baseFeePerGas") if latest else None
    if base_fee is None:
        return {"gasPrice": rpc.gas_price()}

    base_fee = hex_to_int(base_fee)
    try:
        priority = rpc.max_priority_fee()
    except RpcError:
        priority = max(rpc.gas_price() - base_fee, 0)
    return {
        "maxFeePerGas": base_fee * 2 + priority,
        "maxPriorityFeePerGas": priority,
    }


def wait_for_confirmation(
    rpc: JsonRpcClient,
    tx_hash: str,
    confirmations: int = DEFAULT_CONFIRMATIONS,
    timeout: float = CONFIRMATION_TIMEOUT,
    poll_interval: float = CONFIRMATION_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """
    Block until a transaction has the requested number of confirmations.

    Returns:
        Transaction receipt

    Raises:
        ConfirmationTimeoutError: If not confirmed within the timeout
    """
    deadline = clock() + timeout
    while True:
        receipt = rpc.get_transaction_receipt(tx_hash)
        if receipt is not None and receipt.get("blockNumber") is not None:
            mined_in = hex_to_int(receipt["blockNumber"])
            if confirmations <= 1 or rpc.block_number() - mined_in + 1 >= confirmations:
                return receipt
        if clock() >= deadline:
            raise ConfirmationTimeoutError(
                f"Transaction {tx_hash} not confirmed after {timeout:.0f}s",
                transaction_hash=tx_hash,
            )
        sleep(poll_interval)


def deploy_contract(
    compiled: CompiledContract,
    config: NetworkConfig,
    signer: LocalAccount,
    rpc: JsonRpcClient,
    constructor_args: Sequence[Any] = (),
    confirmations: int = DEFAULT_CONFIRMATIONS,
    timeout: float = CONFIRMATION_TIMEOUT,
    poll_interval: float = CONFIRMATION_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> DeploymentRecord:
    """
    Deploy a compiled contract and wait for its confirmation.

    No transaction is submitted unless the chain id matches, no other
    transaction from the signer is pending, and the balance covers the
    estimated cost.

    Args:
        compiled: Output of compile_contract()
        config: Target network configuration
        signer: Account that signs the creation transaction
        rpc: JSON-RPC client for the target network
        constructor_args: Constructor arguments in declaration order
        confirmations: Confirmations to wait for (at least 1)
        timeout: Maximum seconds to wait for confirmation
        poll_interval: Seconds between receipt polls
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        DeploymentRecord of the confirmed deployment

    Raises:
        ConfigError: If the RPC endpoint serves another chain
        InsufficientFundsError: If the balance cannot cover deployment
        NonceConflictError: If the signer has a transaction in flight
        NetworkError: If the RPC endpoint stays unreachable
        ConfirmationTimeoutError: If the transaction is not confirmed in time
        DeploymentRevertedError: If the creation transaction reverted
    """
    if confirmations < 1:
        raise DeploymentError("At least one confirmation is required")

    encoded_args = encode_constructor_args(compiled.abi, constructor_args)
    data = compiled.bytecode + encoded_args
    account = signer.address

    # Pre-flight: make sure the endpoint is the chain we were configured for
    remote_chain_id = rpc.chain_id()
    if remote_chain_id != config.chain_id:
        raise ConfigError(
            f"RPC endpoint reports chain id {remote_chain_id}, "
            f"configured {config.chain_id}"
        )
    validate_chain_id(config.network, remote_chain_id)

    pending_nonce = rpc.get_transaction_count(account, "pending")
    confirmed_nonce = rpc.get_transaction_count(account, "latest")
    if pending_nonce > confirmed_nonce:
        raise NonceConflictError(
            f"{pending_nonce - confirmed_nonce} transaction(s) from {account} "
            "are still pending"
        )

    balance = rpc.get_balance(account)
    if balance == 0:
        raise InsufficientFundsError(
            f"Deployer {account} has no funds on {config.network} (chain {config.chain_id})"
        )

    try:
        gas_estimate = rpc.estimate_gas({"from": account, "data": data, "value": "0x0"})
    except RpcError as e:
        _raise_for_rpc_error(e, account)
        raise
    gas = int(gas_estimate * GAS_PADDING)

    fees = _fee_fields(rpc)
    fee_per_gas = fees.get("maxFeePerGas", fees.get("gasPrice", 0))
    cost = gas * fee_per_gas
    if balance < cost:
        raise InsufficientFundsError(
            f"Deployer {account} holds {balance} wei but deployment may cost up to "
            f"{cost} wei (short by {cost - balance} wei)"
        )

    transaction = {
        "chainId": config.chain_id,
        "nonce": pending_nonce,
        "gas": gas,
        "value": 0,
        "data": data,
        **fees,
    }
    signed = signer.sign_transaction(transaction)
    raw = "0x" + bytes(signed.raw_transaction).hex()
    local_hash = "0x" + bytes(signed.hash).hex()

    logger.info(
        "Submitting %s deployment from %s (nonce %d, gas %d, tx %s)",
        compiled.name,
        account,
        pending_nonce,
        gas,
        local_hash,
    )
    try:
        tx_hash = rpc.send_raw_transaction(raw)
    except RpcError as e:
        if not any(m in e.message.lower() for m in _KNOWN_TX_MESSAGES):
            _raise_for_rpc_error(e, account)
            raise
        # An earlier attempt reached the node even though its response was lost
        logger.warning("Node already holds %s (%s); waiting for it", local_hash, e.message)
        tx_hash = local_hash
    logger.info("Transaction sent: %s", config.tx_url(tx_hash))

    try:
        receipt = wait_for_confirmation(
            rpc, tx_hash, confirmations, timeout, poll_interval, sleep, clock
        )
    except NetworkError as e:
        raise NetworkError(
            f"Transaction {tx_hash} was submitted but its confirmation could not be "
            f"checked: {e}. Look it up at {config.tx_url(tx_hash)}"
        ) from e
    if hex_to_int(receipt.get("status", "0x1")) != 1:
        raise DeploymentRevertedError(f"Deployment transaction {tx_hash} reverted")
    if not receipt.get("contractAddress"):
        raise DeploymentError(f"Receipt for {tx_hash} has no contract address")

    record = DeploymentRecord(
        contract_address=to_checksum_address(receipt["contractAddress"]),
        transaction_hash=tx_hash,
        deployed_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        compiler_version=compiled.compiler_version,
        network=config.network,
        chain_id=config.chain_id,
        contract_name=compiled.name,
        deployer=account,
        block_number=hex_to_int(receipt["blockNumber"]),
        constructor_args=encoded_args,
    )
    logger.info("Deployed %s at %s", compiled.name, record.contract_address)
    return record
