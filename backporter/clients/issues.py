"""Async Issues resource client.

Comments, labels, assignees and milestones of pull requests go through the
issues API as well.
"""

from typing import TYPE_CHECKING, Any

from backporter.types.issues import Issue, IssueComment

if TYPE_CHECKING:
    from backporter.transport import AsyncHTTPTransport

PER_PAGE = 100


class AsyncIssuesClient:
    """Async client for issue operations."""

    def __init__(self, transport: "AsyncHTTPTransport") -> None:
        """
        Initialize the async issues client.

        Args:
            transport: Async HTTP transport for making requests
        """
        self.transport = transport

    async def create_comment(
        self, owner: str, repo: str, issue_number: int, body: str
    ) -> IssueComment:
        """
        Comment on an issue or pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            issue_number: Issue or pull request number
            body: Comment text (markdown)

        Returns:
            The created IssueComment
        """
        data = await self.transport.request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            body={"body": body},
        )
        return IssueComment(
            comment_id=data["id"],
            body=data.get("body", body),
            html_url=data.get("html_url", ""),
        )

    async def add_labels(self, owner: str, repo: str, issue_number: int, labels: list[str]) -> None:
        """Add labels to an issue or pull request."""
        await self.transport.request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/labels",
            body={"labels": labels},
        )

    async def add_assignees(
        self, owner: str, repo: str, issue_number: int, assignees: list[str]
    ) -> None:
        """Add assignees to an issue or pull request."""
        await self.transport.request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/assignees",
            body={"assignees": assignees},
        )

    async def set_milestone(self, owner: str, repo: str, issue_number: int, milestone: int) -> None:
        """Set the milestone of an issue or pull request."""
        await self.transport.request(
            method="PATCH",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}",
            body={"milestone": milestone},
        )

    async def list(self, owner: str, repo: str, state: str = "open") -> list[Issue]:
        """
        List issues of a repository.

        Pull requests, which the issues API also returns, are excluded.

        Args:
            owner: Repository owner
            repo: Repository name
            state: "open", "closed" or "all" (default: "open")

        Returns:
            List of Issue objects
        """
        issues: list[Issue] = []
        page = 1
        while True:
            data = await self.transport.request(
                method="GET",
                path=f"/repos/{owner}/{repo}/issues",
                params={"state": state, "per_page": PER_PAGE, "page": page},
            )
            items = data or []
            issues.extend(self._parse_issue(item) for item in items if "pull_request" not in item)
            if len(items) < PER_PAGE:
                return issues
            page += 1

    async def create(self, owner: str, repo: str, title: str, body: str) -> Issue:
        """
        Create an issue.

        Args:
            owner: Repository owner
            repo: Repository name
            title: Issue title
            body: Issue text (markdown)

        Returns:
            The created Issue
        """
        data = await self.transport.request(
            method="POST",
            path=f"/repos/{owner}/{repo}/issues",
            body={"title": title, "body": body},
        )
        return self._parse_issue(data)

    async def update(self, owner: str, repo: str, issue_number: int, body: str) -> Issue:
        """
        Replace the body of an issue.

        Args:
            owner: Repository owner
            repo: Repository name
            issue_number: The issue number
            body: New issue text

        Returns:
            The updated Issue
        """
        data = await self.transport.request(
            method="PATCH",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}",
            body={"body": body},
        )
        return self._parse_issue(data)

    def _parse_issue(self, data: dict[str, Any]) -> Issue:
        """Parse issue data from API response."""
        return Issue(
            number=data["number"],
            title=data.get("title", ""),
            body=data.get("body"),
            state=data.get("state", "open"),
        )
