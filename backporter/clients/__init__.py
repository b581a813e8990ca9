"""GitHub API resource clients."""

from backporter.clients.commits import AsyncCommitsClient
from backporter.clients.issues import AsyncIssuesClient
from backporter.clients.pulls import AsyncPullsClient

__all__ = [
    "AsyncPullsClient",
    "AsyncIssuesClient",
    "AsyncCommitsClient",
]
