"""Detection of how a pull request was merged, and which commits to backport."""

from enum import Enum
from typing import TYPE_CHECKING

from backporter.logging import get_logger
from backporter.types.pulls import PullRequest

if TYPE_CHECKING:
    from backporter.clients.commits import AsyncCommitsClient
    from backporter.git import Git

logger = get_logger()


class MergeStrategy(str, Enum):
    SQUASHED = "squashed"
    REBASED = "rebased"
    MERGECOMMIT = "mergecommit"
    UNKNOWN = "unknown"


async def detect_merge_strategy(
    pull: PullRequest,
    merge_commit_sha: str | None,
    *,
    git: "Git",
    commits_client: "AsyncCommitsClient",
    owner: str,
    repo: str,
) -> MergeStrategy:
    """
    Classify how a pull request was merged.

    The merge commit must have been fetched with a depth of at least
    ``pull.commits + 1``.

    A single commit pull request merged without a merge commit is reported as
    SQUASHED, even though a rebase of one commit looks exactly the same.

    Args:
        pull: The merged pull request
        merge_commit_sha: The sha GitHub reports as merge commit, if any
        git: Git gateway
        commits_client: Client to look up the pull requests of a commit
        owner: Repository owner
        repo: Repository name

    Returns:
        The detected MergeStrategy
    """
    if not merge_commit_sha:
        logger.info("Unable to determine merge strategy: no merge commit sha")
        return MergeStrategy.UNKNOWN

    parents = await git.find_parents(merge_commit_sha)
    if len(parents) > 1:
        logger.info("Merge commit %s has %d parents", merge_commit_sha, len(parents))
        return MergeStrategy.MERGECOMMIT

    if pull.commits == 1:
        return MergeStrategy.SQUASHED

    if not parents:
        return MergeStrategy.UNKNOWN

    first_parent_associated = await _is_associated(
        commits_client, owner, repo, parents[0], pull.number
    )
    merge_commit_associated = await _is_associated(
        commits_client, owner, repo, merge_commit_sha, pull.number
    )

    if first_parent_associated and merge_commit_associated:
        return MergeStrategy.REBASED
    if merge_commit_associated:
        return MergeStrategy.SQUASHED
    return MergeStrategy.UNKNOWN


async def _is_associated(
    commits_client: "AsyncCommitsClient", owner: str, repo: str, sha: str, pull_number: int
) -> bool:
    pulls = await commits_client.list_associated_pulls(owner, repo, sha)
    return any(pull.number == pull_number for pull in pulls)


async def commits_to_cherry_pick(
    strategy: MergeStrategy,
    pull: PullRequest,
    merge_commit_sha: str | None,
    commit_shas: list[str],
    git: "Git",
) -> list[str]:
    """
    Select the commits to cherry-pick for a merge strategy.

    Args:
        strategy: How the pull request was merged
        pull: The merged pull request
        merge_commit_sha: The merge commit sha, required for SQUASHED and REBASED
        commit_shas: The pull request's own commits, oldest first
        git: Git gateway

    Returns:
        Commits to cherry-pick, oldest first
    """
    if strategy is MergeStrategy.SQUASHED and merge_commit_sha:
        return [merge_commit_sha]
    if strategy is MergeStrategy.REBASED and merge_commit_sha:
        return await git.find_commits_in_range(
            f"{merge_commit_sha}~{pull.commits}..{merge_commit_sha}"
        )
    return list(commit_shas)
