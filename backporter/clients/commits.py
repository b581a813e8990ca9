"""Async Commits resource client."""

from typing import TYPE_CHECKING

from backporter.clients.pulls import parse_pull_request
from backporter.types.pulls import PullRequest

if TYPE_CHECKING:
    from backporter.transport import AsyncHTTPTransport


class AsyncCommitsClient:
    """Async client for commit operations."""

    def __init__(self, transport: "AsyncHTTPTransport") -> None:
        """
        Initialize the async commits client.

        Args:
            transport: Async HTTP transport for making requests
        """
        self.transport = transport

    async def list_associated_pulls(self, owner: str, repo: str, sha: str) -> list[PullRequest]:
        """
        List the pull requests associated with a commit.

        Args:
            owner: Repository owner
            repo: Repository name
            sha: The commit SHA

        Returns:
            Pull requests that contain the commit
        """
        data = await self.transport.request(
            method="GET",
            path=f"/repos/{owner}/{repo}/commits/{sha}/pulls",
        )
        return [parse_pull_request(pull) for pull in data or []]
