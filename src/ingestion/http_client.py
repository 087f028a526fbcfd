"""
HTTP infrastructure layer with retry logic for the chat platform REST API.

Provides:
- RetryConfig: Exponential backoff configuration (honours ``Retry-After``)
- HTTPClient: Async HTTP client with automatic retry and bot authorization

This layer separates HTTP concerns (retries, backoff, auth headers) from
domain logic (message filtering and extraction) in the poller.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))

    A 429 response carrying ``Retry-After`` (seconds, as sent by Discord)
    overrides the computed delay, still capped at ``max_backoff_seconds``.
    """

    max_retries: int = 0
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Calculate backoff duration for a given retry attempt.

        Args:
            attempt: The retry attempt number (0-indexed)
            retry_after: Server-provided delay in seconds, if any

        Returns:
            Backoff duration in seconds
        """
        if retry_after is not None and retry_after >= 0:
            return min(retry_after, self.max_backoff_seconds)

        delay = self.base_delay * (2**attempt)
        delay = min(delay, self.max_backoff_seconds)

        # Jitter avoids synchronized retries
        jitter = delay * self.jitter_factor * random.random()
        return delay + jitter

    def is_retryable_status(self, status_code: int) -> bool:
        """
        Check if an HTTP status code should trigger a retry.

        Retryable: 429 (rate limited), 500, 502, 503, 504.
        """
        return status_code in {429, 500, 502, 503, 504}


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Raised when rate limit is hit and all retries exhausted."""

    pass


class HTTPClient:
    """
    Async HTTP client with retry logic and bot-token authorization.

    Features:
    - Exponential backoff with jitter on retryable errors
    - ``Retry-After`` support for 429 responses
    - Automatic retry on timeout/connection errors
    - Context manager for proper resource cleanup

    Example:
        async with HTTPClient(RetryConfig(max_retries=1), bot_token=token) as client:
            response = await client.get(
                "https://discord.com/api/v10/channels/123/messages",
                params={"limit": 20},
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 10.0,
        bot_token: str | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            retry_config: Configuration for retry behavior. Uses defaults if None.
            timeout: Request timeout in seconds.
            bot_token: Sent as ``Authorization: Bot <token>`` when set.
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._bot_token = bot_token
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        """Enter async context manager, create client."""
        headers = {}
        if self._bot_token:
            headers["Authorization"] = f"Bot {self._bot_token}"
        self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform GET request with retry logic.

        Args:
            url: Request URL
            params: Query parameters
            headers: Extra request headers

        Returns:
            httpx.Response on success

        Raises:
            HTTPClientError: On non-retryable errors or after retries exhausted
            RateLimitError: When rate limited and retries exhausted
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        max_retries = self.retry_config.max_retries
        last_status_code: int | None = None

        for attempt in range(max_retries + 1):
            try:
                response = await self._client.get(url, params=params, headers=headers)
            except (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError) as e:
                if attempt < max_retries:
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        "Retryable error %s for %s, attempt %d/%d, backing off %.2fs",
                        type(e).__name__, url, attempt + 1, max_retries + 1, backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise HTTPClientError(
                    f"Request failed after {attempt + 1} attempts: {e}",
                    status_code=last_status_code,
                ) from e

            if self.retry_config.is_retryable_status(response.status_code):
                last_status_code = response.status_code
                if attempt < max_retries:
                    backoff = self.retry_config.calculate_backoff(
                        attempt, retry_after=_parse_retry_after(response),
                    )
                    logger.warning(
                        "Retryable status %d from %s, attempt %d/%d, backing off %.2fs",
                        response.status_code, url, attempt + 1, max_retries + 1, backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue

                error_cls = RateLimitError if response.status_code == 429 else HTTPClientError
                raise error_cls(
                    f"Request failed with status {response.status_code} "
                    f"after {attempt + 1} attempts",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            if response.status_code >= 400:
                raise HTTPClientError(
                    f"Request failed with status {response.status_code}",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            return response

        # Should not reach here, but just in case
        raise HTTPClientError(
            f"Request failed after {max_retries + 1} attempts",
            status_code=last_status_code,
        )
