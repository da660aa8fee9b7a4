"""
Transport layer for the Reddit client.

Provides:
- RetryConfig: which failures are transient and how long to wait
- HTTPClientError / RateLimitError / AuthenticationError: upstream failures
- RequestBudget: sliding-window record of upstream calls
- HTTPClient: httpx.AsyncClient wrapper that retries transient failures

Listing and comment parsing live in reddit_client; nothing here knows
about Reddit payloads.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Network-level failures worth a second attempt. Other transport errors
# (bad URL scheme, proxy misconfiguration) fail at once.
TRANSIENT_EXCEPTIONS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


@dataclass
class RetryConfig:
    """
    Retry policy for upstream calls.

    5xx responses and network-level failures (timeouts, connect, read and
    write errors, dropped connections) are retried up to
    `max_retries` times, waiting `retry_delay` seconds each time. 4xx
    responses, 429 included, fail on the first attempt.
    """

    max_retries: int = 1
    retry_delay: float = 1.0

    def calculate_backoff(self, attempt: int) -> float:
        """Delay before retry number `attempt` (0-indexed). The delay is fixed."""
        return self.retry_delay

    def is_retryable_status(self, status_code: int) -> bool:
        return 500 <= status_code < 600

    def is_retryable_exception(self, exc: Exception) -> bool:
        return isinstance(exc, TRANSIENT_EXCEPTIONS)


class HTTPClientError(Exception):
    """An upstream call failed. Carries the last status and body when known."""

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
    """
    Upstream answered 429, or the local request budget is spent.

    `status_code` is None for the local case. `retry_after` is the
    number of seconds to wait, when known.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        response_body: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, status_code=status_code, response_body=response_body)
        self.retry_after = retry_after


class AuthenticationError(HTTPClientError):
    """The OAuth token exchange failed."""


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given in seconds."""
    if not value:
        return None
    try:
        return max(0.0, float(value.strip()))
    except ValueError:
        return None


class RequestBudget:
    """
    Sliding-window record of upstream calls.

    Keeps the timestamps of the most recent `capacity` calls. The budget
    is exhausted once `capacity` of them fall inside the trailing window.
    Recording is unconditional, so cache hits count against the budget too.
    """

    def __init__(
        self,
        capacity: int = 100,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: deque[float] = deque(maxlen=capacity)

    def record(self) -> None:
        self._timestamps.append(self._clock())

    def in_window(self) -> int:
        """Number of recorded calls inside the trailing window."""
        cutoff = self._clock() - self.window_seconds
        return sum(1 for ts in self._timestamps if ts > cutoff)

    def is_exhausted(self) -> bool:
        return self.in_window() >= self.capacity

    def remaining(self) -> int:
        return max(0, self.capacity - self.in_window())

    def seconds_until_available(self) -> float:
        """Seconds until the oldest in-window call ages out, 0 if not exhausted."""
        if not self.is_exhausted():
            return 0.0
        now = self._clock()
        cutoff = now - self.window_seconds
        oldest = min(ts for ts in self._timestamps if ts > cutoff)
        return max(0.0, oldest + self.window_seconds - now)

    def reset(self) -> None:
        self._timestamps.clear()


class HTTPClient:
    """
    httpx.AsyncClient with retries and status mapping.

    Status handling:
    - 2xx/3xx: returned
    - 429: RateLimitError with the Retry-After hint, never retried
    - other 4xx: HTTPClientError, never retried
    - 5xx: retried per RetryConfig, then HTTPClientError
    - transport errors: network-level ones retried, then HTTPClientError

    Example:
        async with HTTPClient(RetryConfig(max_retries=1)) as client:
            response = await client.get(
                "https://oauth.reddit.com/r/stocks/hot",
                params={"limit": 25},
                headers={"Authorization": f"Bearer {token}"},
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        GET with retries.

        Raises:
            RateLimitError: On a 429 response
            HTTPClientError: On other 4xx, or once retries are used up
        """
        return await self._request_with_retry(
            "GET", url, retry=True, params=params or None, headers=headers or None
        )

    async def post(
        self,
        url: str,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        auth: tuple[str, str] | None = None,
        retry: bool = True,
    ) -> httpx.Response:
        """
        POST a form body.

        Args:
            url: Request URL
            data: Form fields
            headers: Request headers
            auth: Basic auth credentials
            retry: Retry transient failures; the token exchange passes False
        """
        return await self._request_with_retry(
            "POST", url, retry=retry, data=data, headers=headers or None, auth=auth
        )

    def _raise_for_status(self, url: str, response: httpx.Response) -> None:
        status = response.status_code
        if status == 429:
            raise RateLimitError(
                f"Rate limit exceeded for {url}",
                response_body=response.text,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if status >= 400:
            raise HTTPClientError(
                f"Request failed with status {status}",
                status_code=status,
                response_body=response.text,
            )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("HTTPClient must be used as async context manager")
        return await self._client.request(method, url, **kwargs)

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        retry: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        attempts = 1 + (self.retry_config.max_retries if retry else 0)

        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            try:
                response = await self._send(method, url, **kwargs)
            except httpx.TransportError as e:
                if last_attempt or not self.retry_config.is_retryable_exception(e):
                    raise HTTPClientError(
                        f"{method} {url} failed after {attempt + 1} attempts: {e!r}"
                    ) from e
                reason = type(e).__name__
            else:
                if not self.retry_config.is_retryable_status(response.status_code):
                    self._raise_for_status(url, response)
                    return response
                if last_attempt:
                    raise HTTPClientError(
                        f"Request failed with status {response.status_code} "
                        f"after {attempts} attempts",
                        status_code=response.status_code,
                        response_body=response.text,
                    )
                reason = f"status {response.status_code}"

            delay = self.retry_config.calculate_backoff(attempt)
            logger.warning(
                f"{method} {url}: {reason}, retry {attempt + 1}/{attempts - 1} in {delay:.2f}s"
            )
            await asyncio.sleep(delay)

        raise HTTPClientError(f"{method} {url} failed after {attempts} attempts")
