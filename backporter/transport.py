"""
Async HTTP Transport for the GitHub API.

Handles async HTTP communication with automatic retry logic, token
authentication and error handling using httpx async client.
"""

import asyncio
import random
import time
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

import httpx

from backporter.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BackporterError,
    ConflictError,
    GitHubError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from backporter.logging import get_logger, log_http_request, log_http_response

logger = get_logger("http")

GITHUB_API_VERSION = "2022-11-28"


@dataclass
class RetryConfig:
    """Configuration for automatic retry behavior."""

    max_retries: int = 3
    backoff_factor: float = 2.0
    retry_on: list[int] = field(default_factory=lambda: [429, 500, 502, 503])
    respect_retry_after: bool = True
    max_backoff: float = 60.0  # Maximum backoff time in seconds
    jitter: float = 0.1  # Jitter factor (0.1 = ±10%)


class AsyncHTTPTransport:
    """
    Async HTTP transport layer for the GitHub REST and GraphQL APIs.

    Handles:
    - Token authentication and GitHub media type headers
    - Exponential backoff with jitter for retries
    - Retry-After header respect for rate limiting
    - Error response parsing into typed exceptions
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize async HTTP transport.

        Args:
            base_url: Base URL for API requests (e.g., "https://api.github.com")
            token: GitHub token used as bearer credential
            timeout: Request timeout in seconds
            retry_config: Configuration for retry behavior
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": "backporter",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPTransport":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a REST request with automatic retry.

        Args:
            method: HTTP method
            path: API path (e.g., "/repos/owner/repo/pulls/1")
            params: Query parameters
            body: JSON request body (for POST/PATCH)

        Returns:
            Parsed JSON response, or None for empty responses

        Raises:
            GitHubError: On API errors
        """
        async def make_request() -> httpx.Response:
            log_http_request(method, path, body=body)
            return await self._client.request(method, path, params=params, json=body)

        return await self._execute_with_retry(make_request)

    async def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute a GraphQL query or mutation.

        GraphQL reports failures with a 200 status and an ``errors`` list, which
        is raised as a ValidationError.

        Args:
            query: GraphQL document
            variables: Query variables

        Returns:
            The ``data`` member of the response

        Raises:
            GitHubError: On API errors or GraphQL errors
        """
        response = await self.request(
            "POST", "/graphql", body={"query": query, "variables": variables or {}}
        )
        response = response or {}
        errors = response.get("errors")
        if errors:
            message = "; ".join(str(e.get("message", e)) for e in errors)
            raise ValidationError("GRAPHQL_ERROR", message, status_code=200)
        return response.get("data") or {}

    async def _execute_with_retry(
        self, request_fn: Callable[[], Coroutine[Any, Any, httpx.Response]]
    ) -> Any:
        """
        Execute a request with automatic retry on retryable errors.

        Args:
            request_fn: Async function that makes the HTTP request

        Returns:
            Parsed JSON response

        Raises:
            GitHubError: On non-retryable errors or after max retries
        """
        last_error: Exception | None = None

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                started = time.monotonic()
                response = await request_fn()
                elapsed_ms = (time.monotonic() - started) * 1000

                if response.status_code < 400:
                    data = self._parse_body(response)
                    log_http_response(
                        response.status_code, str(response.request.url), data, elapsed_ms
                    )
                    return data

                log_http_response(response.status_code, str(response.request.url), None, elapsed_ms)

                # Parse error response
                error = self._parse_error_response(response)

                # Check if we should retry
                if not self._should_retry(response.status_code, attempt):
                    raise error

                last_error = error

                # Calculate backoff time
                retry_after = response.headers.get("Retry-After")
                wait_time = self._get_backoff_time(attempt, retry_after)
                logger.warning(
                    "GitHub responded %s, retrying in %.1fs (attempt %d of %d)",
                    response.status_code,
                    wait_time,
                    attempt + 1,
                    self.retry_config.max_retries,
                )
                await asyncio.sleep(wait_time)

            except httpx.RequestError as e:
                # Network errors are retryable
                if attempt >= self.retry_config.max_retries:
                    raise ServerError("CONNECTION_ERROR", str(e)) from e

                last_error = e
                wait_time = self._get_backoff_time(attempt, None)
                logger.warning("Request to GitHub failed (%s), retrying in %.1fs", e, wait_time)
                await asyncio.sleep(wait_time)

        # Should not reach here, but just in case
        if last_error:
            if isinstance(last_error, BackporterError):
                raise last_error
            raise ServerError("MAX_RETRIES_EXCEEDED", str(last_error))

        raise ServerError("UNKNOWN_ERROR", "Request failed with no error details")

    def _should_retry(self, status_code: int, attempt: int) -> bool:
        """
        Determine if a request should be retried.

        Args:
            status_code: HTTP status code
            attempt: Current attempt number (0-indexed)

        Returns:
            True if the request should be retried
        """
        if attempt >= self.retry_config.max_retries:
            return False

        return status_code in self.retry_config.retry_on

    def _get_backoff_time(self, attempt: int, retry_after: str | None) -> float:
        """
        Calculate backoff time for retry.

        Uses exponential backoff with jitter, respecting Retry-After header
        if present.

        Args:
            attempt: Current attempt number (0-indexed)
            retry_after: Value of Retry-After header (if present)

        Returns:
            Time to wait in seconds
        """
        if retry_after and self.retry_config.respect_retry_after:
            try:
                return min(float(retry_after), self.retry_config.max_backoff)
            except ValueError:
                pass  # Fall through to exponential backoff

        base_wait = self.retry_config.backoff_factor ** attempt

        jitter_range = base_wait * self.retry_config.jitter
        jitter = random.uniform(-jitter_range, jitter_range)
        wait_time = base_wait + jitter

        return min(wait_time, self.retry_config.max_backoff)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _parse_error_response(self, response: httpx.Response) -> GitHubError:
        """
        Parse an error response into a typed exception.

        GitHub error bodies look like ``{"message": ..., "errors": [...]}``;
        detail messages from ``errors`` are appended to the main message.

        Args:
            response: HTTP response with error status

        Returns:
            Appropriate GitHubError subclass
        """
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        message = data.get("message") or f"HTTP {response.status_code}"
        details = [
            e.get("message") for e in data.get("errors") or [] if isinstance(e, dict) and e.get("message")
        ]
        if details:
            message = f"{message}: {'; '.join(details)}"
        request_id = response.headers.get("X-GitHub-Request-Id")

        status_code = response.status_code

        if status_code == 401:
            return AuthenticationError("UNAUTHORIZED", message, status_code, request_id)
        elif status_code == 403:
            if response.headers.get("X-RateLimit-Remaining") == "0":
                return RateLimitedError(
                    "RATE_LIMITED", message, self._retry_after(response), status_code, request_id
                )
            return AuthorizationError("FORBIDDEN", message, status_code, request_id)
        elif status_code == 404:
            return NotFoundError("NOT_FOUND", message, status_code, request_id)
        elif status_code == 409:
            return ConflictError("CONFLICT", message, status_code, request_id)
        elif status_code == 429:
            return RateLimitedError(
                "RATE_LIMITED", message, self._retry_after(response), status_code, request_id
            )
        elif status_code >= 500:
            return ServerError("SERVER_ERROR", message, status_code, request_id)
        else:
            return ValidationError("VALIDATION_FAILED", message, status_code, request_id)

    @staticmethod
    def _retry_after(response: httpx.Response) -> int:
        try:
            return int(response.headers.get("Retry-After", "60"))
        except ValueError:
            return 60
