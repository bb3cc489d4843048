"""Resilient HTTP request executor with retry, backoff and rate-limit handling."""

import logging
import time
from typing import Any, Optional

import requests

from src.core.exceptions import (
    ApiError,
    AuthenticationError,
    DecodingError,
    NetworkUnavailableError,
    NotFoundError,
    PermanentError,
    RateLimitError,
    TransientError,
)
from src.core.types import RequestDescriptor, RetryPolicy, RetryState

logger = logging.getLogger("forumclient")

# App version for User-Agent
_APP_VERSION = "1.0.0"

# Raised before anything is sent; repeating the request cannot help
_CLIENT_SIDE_ERRORS = (
    requests.exceptions.URLRequired,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
    requests.exceptions.InvalidJSONError,
)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in whole seconds.

    Returns None when the header is missing or not an integer.
    """
    if value is None:
        return None
    try:
        seconds = int(str(value).strip())
    except ValueError:
        return None
    return float(max(seconds, 0))


class RequestExecutor:
    """Runs one logical API call at a time, retrying per RetryPolicy.

    - 429: one retry after Retry-After seconds (default 60)
    - 408/500/503, timeouts and no response: exponential backoff, up to max_retries
    - anything else >= 400, a request that cannot be built or a non-JSON
      success body: fail immediately

    Holds no per-call state; the session (connection pool, cookies) is the
    only thing shared between calls.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 30,
        policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._policy = policy or RetryPolicy()
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": f"forumclient/{_APP_VERSION}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def execute(self, descriptor: RequestDescriptor) -> Any:
        """Perform the call, retrying as the policy allows.

        Args:
            descriptor: The request to send

        Returns:
            Decoded JSON payload, or None for an empty response body

        Raises:
            RateLimitError: 429 on the one rate-limit retry too
            TransientError: 408/500/503 or timeout after the retry budget is spent
            NetworkUnavailableError: No response after the retry budget is spent
            PermanentError: Any other error status, or an invalid URL or body (no retry)
            DecodingError: Success status with a body that is not JSON
        """
        state = RetryState(max_retries=self._policy.max_retries)

        while True:
            try:
                return self._attempt(descriptor)

            except RateLimitError as e:
                if state.rate_limit_retried:
                    logger.error(
                        f"Rate limited again on {descriptor.method} {descriptor.url_path}. Giving up."
                    )
                    raise
                wait = e.retry_after
                if wait is None:
                    wait = self._policy.rate_limit_default_wait
                logger.warning(f"Rate limited (429). Waiting {wait}s before retrying once")
                time.sleep(wait)
                state = state.after_rate_limit()

            except (TransientError, NetworkUnavailableError) as e:
                if not self._policy.allows_retry(descriptor):
                    logger.warning(
                        f"{descriptor.method} {descriptor.url_path} failed ({e.kind.value}); "
                        f"not retrying a non-idempotent request"
                    )
                    raise
                if state.exhausted:
                    logger.error(
                        f"{descriptor.method} {descriptor.url_path} failed after "
                        f"{state.attempt + 1} attempts: {e.message}"
                    )
                    raise
                state = state.next_attempt()
                backoff = self._policy.get_backoff_time(state.attempt)
                logger.warning(
                    f"Request failed: {e.message}. Retrying in {backoff}s "
                    f"(retry {state.attempt}/{state.max_retries})"
                )
                time.sleep(backoff)

    def _attempt(self, descriptor: RequestDescriptor) -> Any:
        """Send a single attempt and classify its outcome."""
        url = f"{self._base_url}{descriptor.url_path}"
        logger.debug(f"{descriptor.method} {descriptor.url_path}")

        try:
            response = self._session.request(
                descriptor.method,
                url,
                params=dict(descriptor.query) or None,
                json=descriptor.body,
                timeout=self._timeout,
            )
        except _CLIENT_SIDE_ERRORS as e:
            raise PermanentError(f"Invalid request: {e}")
        except TypeError as e:
            # json= bodies that the encoder rejects outright
            raise PermanentError(f"Request body is not JSON serializable: {e}")
        except requests.Timeout as e:
            raise TransientError(f"Request timed out: {e}")
        except requests.RequestException as e:
            raise NetworkUnavailableError(str(e) or type(e).__name__)

        status = response.status_code
        if status >= 400:
            raise self._classify_error(response)

        if status == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodingError(f"Response is not valid JSON: {e}", status)

    def _classify_error(self, response: requests.Response) -> ApiError:
        """Map an error response to exactly one ApiError subclass."""
        status = response.status_code
        message = self._extract_error_message(response)

        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            return RateLimitError(message, status, retry_after=retry_after)
        if status in self._policy.retryable_statuses:
            return TransientError(message, status)
        if status in (401, 403):
            return AuthenticationError(message, status)
        if status == 404:
            return NotFoundError(message, status)
        return PermanentError(message, status)

    @staticmethod
    def _extract_error_message(response: requests.Response) -> str:
        """Prefer the server's `error` field; fall back to the status text."""
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, str) and error:
                return error
        return f"Request failed with status code {response.status_code}"
