"""Retry policy, exponential backoff and the error types it acts on."""

import time
import logging
from dataclasses import dataclass
from typing import Callable, Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff: attempt n waits base * 2^(n-1), capped."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0

    def delay_for(self, attempt: int) -> float:
        """Delay to sleep after the given (1-based) failed attempt."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


SEARCH_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=5.0)


class RetryableError(Exception):
    """Base class for errors that should trigger retries."""
    pass


class APIRateLimitError(RetryableError):
    """Raised when API rate limit is hit."""
    pass


class NetworkError(RetryableError):
    """Raised for network-related errors (timeouts, refused connections)."""
    pass


class TemporaryServiceError(RetryableError):
    """Raised for temporary service unavailability."""
    pass


class MalformedResponseError(RetryableError):
    """Raised when a provider answers with a body of unexpected shape."""
    pass


class ProviderRejectedError(Exception):
    """Raised when a provider refuses the request (bad key, quota, bad input).

    Never retried: repeating an auth failure only burns the retry budget.
    """

    def __init__(self, provider: str, status_code: int, detail: Optional[str] = None):
        self.provider = provider
        self.status_code = status_code
        self.detail = detail
        message = f"{provider} rejected the request (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ClassificationError(Exception):
    """Raised when a batch classification call fails as a whole."""
    pass


def call_with_retry(
    func: Callable[[], Any],
    policy: RetryPolicy = SEARCH_RETRY_POLICY,
    exceptions: tuple = (RetryableError,),
    sleep: Callable[[float], None] = time.sleep,
    description: str = "call",
) -> Any:
    """Run func until it succeeds or the policy runs out of attempts.

    Attempts run sequentially. The last exception is re-raised unchanged.
    """
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return func()
        except exceptions as e:
            if attempt >= policy.max_attempts:
                logger.error(f"{description} failed after {attempt} attempts: {e}")
                raise

            delay = policy.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt} of {description} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            sleep(delay)

    raise ValueError("RetryPolicy.max_attempts must be at least 1")
