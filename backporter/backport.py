"""
Backport orchestration.

For a merged pull request, every target branch is processed in turn:
fetch the target, create the backport branch, cherry-pick, push, open the
backport pull request and copy its metadata. A failing target never stops the
others; its failure is reported in a comment on the original pull request.
"""

from collections.abc import Awaitable
from typing import TYPE_CHECKING

from backporter import comments
from backporter.config import ActionContext, BackportConfig, CherryPickingMode, MergeCommitPolicy
from backporter.dashboard import Dashboard
from backporter.exceptions import GitError, GitHubError
from backporter.git import GitStatus, classify_push_failure
from backporter.logging import get_logger
from backporter.strategy import commits_to_cherry_pick, detect_merge_strategy
from backporter.targets import find_target_branches
from backporter.templates import replace_placeholders
from backporter.types.pulls import CreatePullStatus, PullRequest
from backporter.types.results import (
    BackportResult,
    BackportRun,
    Failure,
    Success,
    SuccessWithConflict,
)

if TYPE_CHECKING:
    from backporter.client import AsyncGitHubClient
    from backporter.git import Git

logger = get_logger()

DOWNSTREAM_REMOTE = "downstream"


def should_enable_auto_merge(config: BackportConfig, labels: list[str]) -> bool:
    """
    Decide whether auto-merge is enabled on a backport pull request.

    The disable label wins over the enable label, which wins over the
    ``enable_auto_merge`` default. Labels must match exactly.

    Args:
        config: The backport configuration
        labels: Labels of the original pull request

    Returns:
        True if auto-merge should be enabled
    """
    if config.auto_merge_disable_label and config.auto_merge_disable_label in labels:
        return False
    if config.auto_merge_enable_label and config.auto_merge_enable_label in labels:
        return True
    return config.enable_auto_merge


class Backport:
    """
    Backports a merged pull request to its target branches.

    Example:
        ```python
        async with AsyncGitHubClient.from_env() as github:
            backport = Backport(github, Git(config.pwd), config, "owner", "repo")
            run = await backport.run(123)
            print(run.outputs())
        ```
    """

    def __init__(
        self,
        github: "AsyncGitHubClient",
        git: "Git",
        config: BackportConfig,
        owner: str,
        repo: str,
        context: ActionContext | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            github: GitHub client
            git: Git gateway for the checked out repository
            config: Backport configuration
            owner: Owner of the repository of the original pull request
            repo: Repository of the original pull request
            context: Workflow run, linked from failure comments (optional)
        """
        self.github = github
        self.git = git
        self.config = config
        self.owner = owner
        self.repo = repo
        self.context = context

        if config.downstream_repo:
            self.target_owner = config.downstream_owner or owner
            self.target_repo = config.downstream_repo
            self.remote = DOWNSTREAM_REMOTE
            self.downstream: str | None = f"{self.target_owner}/{self.target_repo}"
        else:
            self.target_owner = owner
            self.target_repo = repo
            self.remote = "origin"
            self.downstream = None

    async def run(self, pull_number: int) -> BackportRun:
        """
        Backport a pull request to all of its target branches.

        Never raises: unexpected errors are logged, commented on the pull
        request and stored as ``BackportRun.error``.

        Args:
            pull_number: Number of the pull request to backport

        Returns:
            The BackportRun with a result per target branch
        """
        run = BackportRun()
        try:
            await self._run(pull_number, run)
        except Exception as e:
            logger.exception("Backport of #%d failed", pull_number)
            run.error = str(e)
            await self._comment(
                pull_number,
                comments.unexpected_error(str(e), *self._run_link()),
            )
        return run

    async def _run(self, pull_number: int, run: BackportRun) -> None:
        pull = await self.github.pulls.get(self.owner, self.repo, pull_number)

        if not pull.merged:
            logger.info("Pull request #%d is not merged", pull_number)
            await self._comment(pull_number, comments.NOT_MERGED)
            return

        logger.info("Detected labels on pull request: %s", ", ".join(pull.labels))
        targets = find_target_branches(
            pull.labels,
            pull.head_ref,
            label_pattern=self.config.label_pattern,
            target_branches=self.config.target_branches,
        )
        if not targets:
            logger.info("Nothing to backport: no target branches found")
            return
        logger.info("Backporting #%d to %s", pull_number, ", ".join(targets))

        if self.downstream:
            await self.git.add_remote(self.remote, self.target_owner, self.target_repo)

        (await self.git.fetch(f"refs/pull/{pull_number}/head", pull.commits + 1)).raise_for_status()
        commit_shas = await self.github.pulls.list_commits(self.owner, self.repo, pull_number)

        shas = await self._commits_to_backport(pull, commit_shas)

        merge_commits = await self.git.find_merge_commits(shas)
        if merge_commits:
            if self.config.merge_commits is MergeCommitPolicy.FAIL:
                logger.error("Found merge commits: %s", " ".join(merge_commits))
                await self._comment(pull_number, comments.MERGE_COMMITS_FOUND)
                run.error = comments.MERGE_COMMITS_FOUND
                return
            logger.info("Skipping merge commits: %s", " ".join(merge_commits))
            shas = [sha for sha in shas if sha not in merge_commits]

        labels_to_copy = self._labels_to_copy(pull)

        created: list[PullRequest] = []
        for target in targets:
            logger.info("Backporting to target branch '%s'", target)
            try:
                result, new_pull = await self._backport_to(target, pull, shas, labels_to_copy)
            except Exception as e:
                logger.exception("Backport to '%s' failed", target)
                await self._comment(pull_number, str(e))
                result, new_pull = Failure(str(e)), None
            if result is not None:
                run.results[target] = result
            if new_pull is not None:
                created.append(new_pull)
                run.created_pull_numbers.append(new_pull.number)

        if self.config.dashboard and created:
            dashboard = Dashboard(
                self.github,
                self.owner,
                self.repo,
                self.config.downstream_owner,
                self.config.downstream_repo,
            )
            try:
                await dashboard.create_or_update_dashboard(pull, created)
            except GitHubError as e:
                logger.error("Failed to update the Backport Dashboard: %s", e)
                run.error = f"Failed to update the Backport Dashboard: {e.message}"

    async def _commits_to_backport(self, pull: PullRequest, commit_shas: list[str]) -> list[str]:
        if self.config.cherry_picking is CherryPickingMode.PULL_REQUEST_HEAD:
            return commit_shas

        merge_commit_sha = pull.merge_commit_sha
        if merge_commit_sha:
            (await self.git.fetch(merge_commit_sha, pull.commits + 1)).raise_for_status()
        strategy = await detect_merge_strategy(
            pull,
            merge_commit_sha,
            git=self.git,
            commits_client=self.github.commits,
            owner=self.owner,
            repo=self.repo,
        )
        logger.info("Detected merge strategy: %s", strategy.value)
        return await commits_to_cherry_pick(strategy, pull, merge_commit_sha, commit_shas, self.git)

    def _labels_to_copy(self, pull: PullRequest) -> list[str]:
        pattern = self.config.copy_labels_pattern
        if pattern is None:
            return []
        source = self.config.label_pattern
        return [
            label
            for label in pull.labels
            if pattern.search(label) and not (source and source.search(label))
        ]

    async def _backport_to(
        self, target: str, pull: PullRequest, shas: list[str], labels_to_copy: list[str]
    ) -> tuple[BackportResult | None, PullRequest | None]:
        fetch = await self.git.fetch(target, 1, self.remote)
        if fetch.status is GitStatus.REF_NOT_FOUND:
            logger.error("Remote ref '%s' not found", target)
            await self._comment(pull.number, comments.ref_not_found(target))
            return Failure(f"couldn't find remote ref {target}"), None
        fetch.raise_for_status()

        branch = replace_placeholders(self.config.branch_name, pull, target)

        try:
            await self.git.checkout(branch, f"{self.remote}/{target}")
        except GitError as e:
            logger.error("Unable to create branch '%s': %s", branch, e)
            await self._comment(
                pull.number, comments.branch_creation_failed(target, branch, shas, self.remote)
            )
            return Failure(str(e)), None

        try:
            cherry_pick = await self.git.cherry_pick(shas, self.config.conflict_resolution)
        except GitError as e:
            logger.error("Unable to cherry-pick onto '%s': %s", branch, e)
            await self._comment(
                pull.number, comments.cherry_pick_failed(target, branch, shas, self.remote)
            )
            return Failure(str(e)), None

        push = await self.git.push(branch, self.remote)
        if not push.ok:
            # a concurrent run may have pushed the same branch already
            exists = await self.git.fetch(branch, 1, self.remote)
            if exists.status is not GitStatus.OK:
                logger.error("Git push to %s failed with exit code %d", self.remote, push.exit_code)
                run_id, run_url = self._run_link()
                await self._comment(
                    pull.number,
                    comments.push_failed(
                        target, branch, push.exit_code, classify_push_failure(push), run_id, run_url
                    ),
                )
                return Failure(f"git push failed with exit code {push.exit_code}"), None
            logger.info("Branch '%s' already exists on %s", branch, self.remote)

        try:
            created = await self.github.pulls.create(
                self.target_owner,
                self.target_repo,
                title=replace_placeholders(self.config.pull_title, pull, target),
                body=replace_placeholders(self.config.pull_description, pull, target),
                head=branch,
                base=target,
                draft=not cherry_pick.clean,
            )
        except GitHubError as e:
            logger.error("Request to create pull request rejected: %s (status %s)", e, e.status_code)
            await self._comment(pull.number, comments.create_pull_failed(e.status_code))
            return Failure(f"failed to create pull request: {e.message}"), None

        if created.status is CreatePullStatus.ALREADY_EXISTS or created.pull is None:
            logger.info("Backport pull request for '%s' already exists, skipping", target)
            return None, None
        new_pull = created.pull
        logger.info("Created backport pull request #%d", new_pull.number)

        await self._copy_metadata(pull, new_pull, labels_to_copy)

        if cherry_pick.remaining is None:
            await self._comment(pull.number, comments.success(target, new_pull.number, self.downstream))
            return Success(new_pull.number), new_pull

        remaining = cherry_pick.remaining
        await self._comment(
            pull.number,
            comments.success_with_conflicts(
                target, branch, new_pull.number, remaining, self.downstream, self.remote
            ),
        )
        await self._comment(
            new_pull.number,
            comments.conflicts_instructions(branch, remaining, self.remote),
            downstream=True,
        )
        return SuccessWithConflict(new_pull.number, tuple(remaining)), new_pull

    async def _copy_metadata(
        self, pull: PullRequest, new_pull: PullRequest, labels_to_copy: list[str]
    ) -> None:
        owner, repo, number = self.target_owner, self.target_repo, new_pull.number
        config = self.config

        if config.copy_milestone and pull.milestone is not None:
            await self._best_effort(
                "set milestone",
                self.github.issues.set_milestone(owner, repo, number, pull.milestone),
            )

        if config.copy_assignees and pull.assignees:
            await self._best_effort(
                "copy assignees",
                self.github.issues.add_assignees(owner, repo, number, pull.assignees),
            )

        if config.copy_requested_reviewers and pull.requested_reviewers:
            await self._best_effort(
                "request reviewers",
                self.github.pulls.request_reviewers(owner, repo, number, pull.requested_reviewers),
            )

        if config.add_author_as_assignee and pull.author:
            await self._best_effort(
                "add author as assignee",
                self.github.issues.add_assignees(owner, repo, number, [pull.author]),
            )

        labels = list(dict.fromkeys([*labels_to_copy, *config.add_labels]))
        if labels:
            await self._best_effort(
                "add labels", self.github.issues.add_labels(owner, repo, number, labels)
            )

        if should_enable_auto_merge(config, pull.labels):
            await self._best_effort(
                "enable auto-merge",
                self.github.pulls.enable_auto_merge(new_pull, config.auto_merge_method.value),
            )

    async def _best_effort(self, what: str, request: Awaitable[object]) -> None:
        try:
            await request
        except GitHubError as e:
            logger.error("Failed to %s: %s", what, e)

    async def _comment(self, number: int, body: str, downstream: bool = False) -> None:
        owner, repo = (self.target_owner, self.target_repo) if downstream else (self.owner, self.repo)
        try:
            await self.github.issues.create_comment(owner, repo, number, body)
        except GitHubError as e:
            logger.error("Failed to comment on #%d: %s", number, e)

    def _run_link(self) -> tuple[str | None, str | None]:
        if self.context is None:
            return None, None
        return self.context.run_id, self.context.run_url
