"""Async Pull requests resource client."""

from typing import TYPE_CHECKING, Any

from backporter.exceptions import ValidationError
from backporter.logging import get_logger
from backporter.types.pulls import CreatedPullRequest, CreatePullStatus, PullRequest

if TYPE_CHECKING:
    from backporter.transport import AsyncHTTPTransport

logger = get_logger("pulls")

PER_PAGE = 100
# GitHub only lists the first 250 commits of a pull request
MAX_COMMITS = 250

_ALREADY_EXISTS = "A pull request already exists"


def parse_pull_request(data: dict[str, Any]) -> PullRequest:
    """Parse pull request data from API response."""
    milestone = data.get("milestone") or {}
    return PullRequest(
        number=data["number"],
        title=data.get("title", ""),
        body=data.get("body"),
        author=(data.get("user") or {}).get("login", ""),
        head_ref=data.get("head", {}).get("ref", ""),
        head_sha=data.get("head", {}).get("sha", ""),
        base_ref=data.get("base", {}).get("ref", ""),
        base_sha=data.get("base", {}).get("sha", ""),
        state=data.get("state", "open"),
        merged=data.get("merged", data.get("merged_at") is not None),
        merge_commit_sha=data.get("merge_commit_sha"),
        commits=data.get("commits", 0),
        labels=[label["name"] for label in data.get("labels", [])],
        requested_reviewers=[r["login"] for r in data.get("requested_reviewers") or []],
        assignees=[a["login"] for a in data.get("assignees") or []],
        milestone=milestone.get("number"),
        node_id=data.get("node_id", ""),
        html_url=data.get("html_url", ""),
    )


class AsyncPullsClient:
    """Async client for pull request operations."""

    def __init__(self, transport: "AsyncHTTPTransport") -> None:
        """
        Initialize the async pulls client.

        Args:
            transport: Async HTTP transport for making requests
        """
        self.transport = transport

    async def get(self, owner: str, repo: str, pull_number: int) -> PullRequest:
        """
        Get pull request information.

        Args:
            owner: Repository owner
            repo: Repository name
            pull_number: The pull request number

        Returns:
            PullRequest with full details
        """
        data = await self.transport.request(
            method="GET",
            path=f"/repos/{owner}/{repo}/pulls/{pull_number}",
        )
        return parse_pull_request(data)

    async def list_commits(self, owner: str, repo: str, pull_number: int) -> list[str]:
        """
        List the commit SHAs of a pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            pull_number: The pull request number

        Returns:
            Commit SHAs, oldest first
        """
        shas: list[str] = []
        page = 1
        while len(shas) < MAX_COMMITS:
            data = await self.transport.request(
                method="GET",
                path=f"/repos/{owner}/{repo}/pulls/{pull_number}/commits",
                params={"per_page": PER_PAGE, "page": page},
            )
            commits = data or []
            shas.extend(commit["sha"] for commit in commits)
            if len(commits) < PER_PAGE:
                break
            page += 1
        return shas[:MAX_COMMITS]

    async def create(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        body: str,
        head: str,
        base: str,
        draft: bool = False,
    ) -> CreatedPullRequest:
        """
        Create a pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            title: Pull request title
            body: Pull request description
            head: Branch containing changes
            base: Branch to merge into
            draft: Whether to open the pull request as a draft

        Returns:
            CreatedPullRequest; status ALREADY_EXISTS when GitHub reports a pull
            request for this head and base already exists

        Raises:
            GitHubError: On any other API error
        """
        try:
            data = await self.transport.request(
                method="POST",
                path=f"/repos/{owner}/{repo}/pulls",
                body={
                    "title": title,
                    "body": body,
                    "head": head,
                    "base": base,
                    "draft": draft,
                    "maintainer_can_modify": True,
                },
            )
        except ValidationError as e:
            if e.status_code == 422 and _ALREADY_EXISTS in e.message:
                logger.info("Pull request for %s into %s already exists", head, base)
                return CreatedPullRequest(status=CreatePullStatus.ALREADY_EXISTS)
            raise
        return CreatedPullRequest(status=CreatePullStatus.CREATED, pull=parse_pull_request(data))

    async def request_reviewers(
        self, owner: str, repo: str, pull_number: int, reviewers: list[str]
    ) -> None:
        """
        Request reviews from users.

        Args:
            owner: Repository owner
            repo: Repository name
            pull_number: The pull request number
            reviewers: Logins of the reviewers
        """
        await self.transport.request(
            method="POST",
            path=f"/repos/{owner}/{repo}/pulls/{pull_number}/requested_reviewers",
            body={"reviewers": reviewers},
        )

    async def enable_auto_merge(self, pull: PullRequest, merge_method: str) -> None:
        """
        Enable auto-merge for a pull request.

        Args:
            pull: The pull request (its node_id is required)
            merge_method: "merge", "squash" or "rebase"
        """
        await self.transport.graphql(
            """
            mutation($pullRequestId: ID!, $mergeMethod: PullRequestMergeMethod!) {
              enablePullRequestAutoMerge(input: {pullRequestId: $pullRequestId, mergeMethod: $mergeMethod}) {
                pullRequest { autoMergeRequest { enabledAt } }
              }
            }
            """,
            {"pullRequestId": pull.node_id, "mergeMethod": merge_method.upper()},
        )
