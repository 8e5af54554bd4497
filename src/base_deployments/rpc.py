"""Minimal Ethereum JSON-RPC client for base-deployments library."""

import itertools
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from .constants import BACKOFF_BASE, HTTP_TIMEOUT, MAX_ATTEMPTS
from .exceptions import NetworkError, RpcError
from .transport import backoff_delay, mask_url, request_json

logger = logging.getLogger(__name__)

# Provider throttling reported inside a 200 response (EIP-1474 "limit exceeded")
_RATE_LIMIT_CODE = -32005
_RATE_LIMIT_MESSAGES = ("rate limit", "limit exceeded", "too many requests")


def _is_rate_limited(error: RpcError) -> bool:
    message = error.message.lower()
    return error.code == _RATE_LIMIT_CODE or any(m in message for m in _RATE_LIMIT_MESSAGES)


def hex_to_int(value: Any) -> int:
    """Decode a JSON-RPC quantity ("0x1a") into an int."""
    if isinstance(value, int):
        return value
    return int(value, 16)


class JsonRpcClient:
    """Blocking JSON-RPC client over HTTP, one request per call."""

    def __init__(
        self,
        rpc_url: str,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_base: float = BACKOFF_BASE,
        timeout: float = HTTP_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._timeout = timeout
        self._sleep = sleep
        self._session = session
        self._ids = itertools.count(1)

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Perform a single JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_chainId")
            params: Positional parameters

        Returns:
            The "result" member of the response

        Raises:
            NetworkError: If the endpoint stays unreachable or rate limited after retries
            RpcError: If the response carries an error object
        """
        for attempt in range(1, self._max_attempts + 1):
            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params if params is not None else [],
                "id": next(self._ids),
            }
            logger.debug("RPC %s -> %s", method, mask_url(self.rpc_url))
            result = request_json(
                "POST",
                self.rpc_url,
                json=payload,
                session=self._session,
                max_attempts=self._max_attempts,
                backoff_base=self._backoff_base,
                timeout=self._timeout,
                sleep=self._sleep,
            )

            if "error" in result and result["error"]:
                error = result["error"]
                rpc_error = RpcError(
                    int(error.get("code", -1)),
                    str(error.get("message", "unknown error")),
                    error.get("data"),
                )
                if not _is_rate_limited(rpc_error):
                    raise rpc_error
                if attempt == self._max_attempts:
                    raise NetworkError(
                        f"{method} still rate limited after {attempt} attempts: "
                        f"{rpc_error.message}"
                    ) from rpc_error
                delay = backoff_delay(attempt, self._backoff_base)
                logger.warning(
                    "%s rate limited (%s), retrying in %.1fs (attempt %d/%d)",
                    method,
                    rpc_error.message,
                    delay,
                    attempt,
                    self._max_attempts,
                )
                self._sleep(delay)
                continue
            if "result" not in result:
                raise RpcError(-1, f"Malformed JSON-RPC response (no result): {result}")
            return result["result"]

    # Typed helpers

    def chain_id(self) -> int:
        return hex_to_int(self.call("eth_chainId"))

    def block_number(self) -> int:
        return hex_to_int(self.call("eth_blockNumber"))

    def get_balance(self, address: str, block: str = "latest") -> int:
        return hex_to_int(self.call("eth_getBalance", [address, block]))

    def get_transaction_count(self, address: str, block: str = "latest") -> int:
        return hex_to_int(self.call("eth_getTransactionCount", [address, block]))

    def get_latest_block(self) -> Dict[str, Any]:
        return self.call("eth_getBlockByNumber", ["latest", False])

    def gas_price(self) -> int:
        return hex_to_int(self.call("eth_gasPrice"))

    def max_priority_fee(self) -> int:
        return hex_to_int(self.call("eth_maxPriorityFeePerGas"))

    def estimate_gas(self, transaction: Dict[str, Any]) -> int:
        return hex_to_int(self.call("eth_estimateGas", [transaction]))

    def send_raw_transaction(self, raw_transaction: str) -> str:
        return self.call("eth_sendRawTransaction", [raw_transaction])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self.call("eth_getTransactionReceipt", [tx_hash])
