"""HTTP transport with bounded exponential backoff."""

import logging
import re
import time
from typing import Any, Callable, Optional

import requests

from .constants import BACKOFF_BASE, HTTP_TIMEOUT, MAX_ATTEMPTS, RETRY_STATUS_CODES
from .exceptions import NetworkError

logger = logging.getLogger(__name__)

_SECRET_PARAM = re.compile(r"(apikey=)[^&\s]+", re.IGNORECASE)


def mask_url(url: str) -> str:
    """Hide API keys embedded in a URL before it is logged."""
    return _SECRET_PARAM.sub(r"\1***", url)


def backoff_delay(attempt: int, base: float = BACKOFF_BASE) -> float:
    """Delay before retry number `attempt` (1-based): base, 2*base, 4*base, ..."""
    return base * (2 ** (attempt - 1))


def request_json(
    method: str,
    url: str,
    *,
    session: Optional[requests.Session] = None,
    max_attempts: int = MAX_ATTEMPTS,
    backoff_base: float = BACKOFF_BASE,
    timeout: float = HTTP_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> Any:
    """
    Send an HTTP request and decode its JSON body, retrying transient failures.

    Connection errors, timeouts and HTTP 429/5xx responses are retried up to
    `max_attempts` times in total, sleeping with exponential backoff between
    attempts. Other HTTP errors are not retried.

    Args:
        method: HTTP method ("GET" or "POST")
        url: Endpoint URL
        session: Optional requests session to reuse connections
        max_attempts: Total attempts before giving up
        backoff_base: First retry delay in seconds
        timeout: Per-request timeout in seconds
        sleep: Sleep function (injectable for tests)
        **kwargs: Passed through to requests (json, data, params, ...)

    Returns:
        Decoded JSON body

    Raises:
        NetworkError: If the endpoint stays unreachable, answers with a
            non-retryable HTTP error, or returns a body that is not JSON
    """
    http = session if session is not None else requests
    last_error = ""

    for attempt in range(1, max_attempts + 1):
        try:
            response = http.request(method, url, timeout=timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            last_error = f"{type(e).__name__}: {e}"
        else:
            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    raise NetworkError(
                        f"Invalid JSON from {mask_url(url)}: {response.text[:200]!r}"
                    ) from e
            if response.status_code not in RETRY_STATUS_CODES:
                raise NetworkError(
                    f"Request to {mask_url(url)} failed with status {response.status_code}"
                )
            last_error = f"HTTP {response.status_code}"

        if attempt < max_attempts:
            delay = backoff_delay(attempt, backoff_base)
            logger.warning(
                "%s %s failed (%s), retrying in %.1fs (attempt %d/%d)",
                method,
                mask_url(url),
                last_error,
                delay,
                attempt,
                max_attempts,
            )
            sleep(delay)

    raise NetworkError(
        f"{method} {mask_url(url)} failed after {max_attempts} attempts: {last_error}"
    )
