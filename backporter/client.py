"""
backporter GitHub client.

Provides the async interface to the parts of the GitHub API that backporting
needs. Passed explicitly to the orchestrator and the dashboard.
"""

import os
from typing import Any

import httpx

from backporter.clients import AsyncCommitsClient, AsyncIssuesClient, AsyncPullsClient
from backporter.exceptions import ConfigurationError
from backporter.transport import AsyncHTTPTransport, RetryConfig


class AsyncGitHubClient:
    """
    Async client for interacting with the GitHub API.

    Aggregates all async resource clients and handles authentication.
    Uses httpx for async HTTP operations.

    Example:
        ```python
        import asyncio
        from backporter import AsyncGitHubClient

        async def main():
            async with AsyncGitHubClient(token="ghp_...") as github:
                pull = await github.pulls.get("owner", "repo", 123)
                print(pull.merged)

        asyncio.run(main())
        ```
    """

    DEFAULT_BASE_URL = "https://api.github.com"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the async GitHub client.

        Args:
            token: GitHub token (GITHUB_TOKEN or a personal access token)
            base_url: Base URL for API requests (default: https://api.github.com)
            timeout: Request timeout in seconds (default: 30.0)
            retry_config: Configuration for retry behavior (optional)
            transport: Optional httpx transport, mainly for tests
        """
        self.base_url = base_url
        self.timeout = timeout

        self._transport = AsyncHTTPTransport(
            base_url=base_url,
            token=token,
            timeout=timeout,
            retry_config=retry_config,
            transport=transport,
        )

        self.pulls = AsyncPullsClient(self._transport)
        self.issues = AsyncIssuesClient(self._transport)
        self.commits = AsyncCommitsClient(self._transport)

    @classmethod
    def from_env(
        cls,
        timeout: float = DEFAULT_TIMEOUT,
        retry_config: RetryConfig | None = None,
    ) -> "AsyncGitHubClient":
        """
        Create an async client from environment variables.

        Environment variables:
            INPUT_GITHUB_TOKEN: The action's github_token input (preferred)
            GITHUB_TOKEN: Token fallback outside of an action step
            GITHUB_API_URL: Base URL for API (optional, default: https://api.github.com)

        Args:
            timeout: Request timeout in seconds (default: 30.0)
            retry_config: Configuration for retry behavior (optional)

        Returns:
            Configured AsyncGitHubClient instance

        Raises:
            ConfigurationError: If no token is set
        """
        token = os.environ.get("INPUT_GITHUB_TOKEN") or os.environ.get("GITHUB_TOKEN")
        base_url = os.environ.get("GITHUB_API_URL") or cls.DEFAULT_BASE_URL

        if not token:
            raise ConfigurationError(
                "Neither INPUT_GITHUB_TOKEN nor GITHUB_TOKEN environment variable is set"
            )

        return cls(
            token=token,
            base_url=base_url,
            timeout=timeout,
            retry_config=retry_config,
        )

    @property
    def transport(self) -> AsyncHTTPTransport:
        """Get the underlying async HTTP transport (for advanced use cases)."""
        return self._transport

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._transport.close()

    async def __aenter__(self) -> "AsyncGitHubClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit - closes the client."""
        await self.close()
