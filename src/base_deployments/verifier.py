"""Block explorer source verification for base-deployments library."""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from .constants import (
    BACKOFF_BASE,
    ETHERSCAN_V2_API_URL,
    HTTP_TIMEOUT,
    MAX_ATTEMPTS,
    VERIFY_POLL_INTERVAL,
    VERIFY_TIMEOUT,
)
from .exceptions import VerificationTimeout
from .transport import request_json
from .types import CompiledContract, DeploymentRecord, VerificationResult, VerificationStatus
from .versions import explorer_compiler_version

logger = logging.getLogger(__name__)


class ExplorerClient:
    """Client for the Etherscan-compatible contract verification API."""

    def __init__(
        self,
        api_key: str,
        chain_id: int,
        api_url: str = ETHERSCAN_V2_API_URL,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_base: float = BACKOFF_BASE,
        timeout: float = HTTP_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.chain_id = chain_id
        self.api_url = api_url
        self._retry = {
            "max_attempts": max_attempts,
            "backoff_base": backoff_base,
            "timeout": timeout,
            "sleep": sleep,
            "session": session,
        }

    def submit(
        self, record: DeploymentRecord, compiled: CompiledContract
    ) -> Dict[str, Any]:
        """
        Submit source code for verification.

        Returns:
            Raw API response ({"status", "message", "result"}); on success
            "result" is the GUID of the queued request
        """
        return request_json(
            "POST",
            self.api_url,
            params={"chainid": self.chain_id},
            data={
                "apikey": self.api_key,
                "module": "contract",
                "action": "verifysourcecode",
                "contractaddress": record.contract_address,
                "sourceCode": json.dumps(compiled.standard_input),
                "codeformat": "solidity-standard-json-input",
                "contractname": compiled.qualified_name,
                "compilerversion": explorer_compiler_version(compiled.compiler_version),
                # Misspelling is part of the API
                "constructorArguements": record.constructor_args,
            },
            **self._retry,
        )

    def check_status(self, guid: str) -> Dict[str, Any]:
        """Query the state of a queued verification request."""
        return request_json(
            "GET",
            self.api_url,
            params={
                "chainid": self.chain_id,
                "apikey": self.api_key,
                "module": "contract",
                "action": "checkverifystatus",
                "guid": guid,
            },
            **self._retry,
        )


def _interpret(message: str) -> VerificationStatus:
    """Map an explorer status text onto a VerificationStatus."""
    text = message.lower()
    if "already verified" in text or text.startswith("pass"):
        return VerificationStatus.VERIFIED
    if "pending" in text or "in queue" in text or "rate limit" in text:
        return VerificationStatus.PENDING
    return VerificationStatus.FAILED


def _retry_submission(message: str) -> bool:
    text = message.lower()
    return "unable to locate contractcode" in text or "rate limit" in text


def verify_contract(
    record: DeploymentRecord,
    compiled: CompiledContract,
    client: Optional[ExplorerClient],
    explorer_url: str,
    cache: Optional[Dict[str, VerificationResult]] = None,
    timeout: float = VERIFY_TIMEOUT,
    poll_interval: float = VERIFY_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> VerificationResult:
    """
    Publish a deployment's source to the block explorer and wait for the verdict.

    A timeout is not an error: the result stays pending and the operator is
    told to verify manually. A record already verified in `cache` is returned
    without contacting the explorer.

    Args:
        record: Deployment to verify
        compiled: Compile artifact of the deployed contract
        client: Explorer API client (None when no API key is configured)
        explorer_url: Explorer page for the contract, reported to the operator
        cache: Address -> last result; updated in place with the outcome
        timeout: Maximum seconds to wait for a terminal state
        poll_interval: Seconds between status polls
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        VerificationResult

    Raises:
        NetworkError: If the explorer stays unreachable after retries
    """
    key = record.contract_address.lower()
    if cache is not None:
        cached = cache.get(key)
        if cached is not None and cached.status is VerificationStatus.VERIFIED:
            logger.info("%s is already verified", record.contract_address)
            return cached

    result = VerificationResult(status=VerificationStatus.PENDING, explorer_url=explorer_url)
    if client is None:
        result.message = "No explorer API key configured; verify manually"
        logger.warning("%s: %s", record.contract_address, result.message)
        return result

    try:
        _submit_and_poll(result, record, compiled, client, timeout, poll_interval, sleep, clock)
    except VerificationTimeout as e:
        result.message = str(e)
        logger.warning(
            "Verification of %s still pending after %.0fs; verify manually at %s",
            record.contract_address,
            timeout,
            explorer_url,
        )

    if cache is not None:
        cache[key] = result
    return result


def _submit_and_poll(
    result: VerificationResult,
    record: DeploymentRecord,
    compiled: CompiledContract,
    client: ExplorerClient,
    timeout: float,
    poll_interval: float,
    sleep: Callable[[float], None],
    clock: Callable[[], float],
) -> None:
    deadline = clock() + timeout

    # Freshly deployed code may not be indexed yet; resubmit until it is
    while result.guid is None:
        response = client.submit(record, compiled)
        message = str(response.get("result", ""))
        if str(response.get("status")) == "1":
            result.guid = message
            logger.info("Verification submitted for %s (guid %s)", record.contract_address, message)
        elif _retry_submission(message):
            logger.info("Explorer not ready for %s: %s", record.contract_address, message)
        else:
            result.status = _interpret(message)
            if result.status is VerificationStatus.PENDING:
                result.status = VerificationStatus.FAILED
            result.message = message
            logger.log(
                logging.INFO if result.status is VerificationStatus.VERIFIED else logging.ERROR,
                "Verification of %s: %s",
                record.contract_address,
                message,
            )
            return
        if result.guid is None:
            if clock() >= deadline:
                raise VerificationTimeout("Explorer did not accept the verification request in time")
            sleep(poll_interval)

    while not result.status.is_terminal:
        if clock() >= deadline:
            raise VerificationTimeout(f"Verification request {result.guid} still pending")
        sleep(poll_interval)
        response = client.check_status(result.guid)
        result.message = str(response.get("result", ""))
        result.status = _interpret(result.message)
        logger.debug("Verification %s: %s", result.guid, result.message)

    logger.log(
        logging.INFO if result.status is VerificationStatus.VERIFIED else logging.ERROR,
        "Verification of %s: %s",
        record.contract_address,
        result.message,
    )
