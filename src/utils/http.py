"""JSON-over-HTTP helper that maps transport failures onto retry error types."""

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from utils.retry import (
    RetryPolicy,
    SEARCH_RETRY_POLICY,
    APIRateLimitError,
    NetworkError,
    TemporaryServiceError,
    MalformedResponseError,
    ProviderRejectedError,
    call_with_retry,
)

logger = logging.getLogger(__name__)

SEARCH_TIMEOUT = 10.0
LOOKUP_TIMEOUT = 5.0
CLASSIFY_TIMEOUT = 30.0


def _error_detail(response: requests.Response) -> Optional[str]:
    """Pull the human readable message out of a provider error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("type")
    if isinstance(error, str):
        return error
    return None


class HttpFetcher:
    """Thin wrapper over a requests session.

    Every call carries an explicit timeout; callers pick it per endpoint.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or requests.Session()
        self.sleep = sleep

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = SEARCH_TIMEOUT,
        provider: str = "YouTube",
    ) -> Dict[str, Any]:
        try:
            response = self.session.get(url, params=params, timeout=timeout)
        except requests.Timeout as e:
            raise NetworkError(f"{provider} request timed out after {timeout}s: {e}") from e
        except requests.RequestException as e:
            raise NetworkError(f"{provider} request failed: {e}") from e

        return self._decode(response, provider)

    def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: float = CLASSIFY_TIMEOUT,
        provider: str = "provider",
    ) -> Dict[str, Any]:
        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=timeout)
        except requests.Timeout as e:
            raise NetworkError(f"{provider} request timed out after {timeout}s: {e}") from e
        except requests.RequestException as e:
            raise NetworkError(f"{provider} request failed: {e}") from e

        return self._decode(response, provider)

    def fetch(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = SEARCH_TIMEOUT,
        max_attempts: int = SEARCH_RETRY_POLICY.max_attempts,
        provider: str = "YouTube",
    ) -> Dict[str, Any]:
        """GET with bounded exponential backoff between attempts."""
        policy = RetryPolicy(
            max_attempts=max_attempts,
            base_delay=SEARCH_RETRY_POLICY.base_delay,
            max_delay=SEARCH_RETRY_POLICY.max_delay,
        )
        return call_with_retry(
            lambda: self.get_json(url, params=params, timeout=timeout, provider=provider),
            policy=policy,
            sleep=self.sleep,
            description=f"{provider} GET {url}",
        )

    def _decode(self, response: requests.Response, provider: str) -> Dict[str, Any]:
        status = response.status_code

        if status == 429:
            raise APIRateLimitError(f"{provider} rate limit hit (HTTP 429)")
        if status in (400, 401, 403):
            raise ProviderRejectedError(provider, status, _error_detail(response))
        if status >= 500:
            raise TemporaryServiceError(f"{provider} unavailable (HTTP {status})")
        if status >= 400:
            raise ProviderRejectedError(provider, status, _error_detail(response))

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{provider} returned a non-JSON body: {e}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(f"{provider} returned {type(data).__name__}, expected an object")
        return data
