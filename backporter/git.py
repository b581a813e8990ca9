"""
Git gateway.

Runs the ``git`` command line tool in the working directory of the action.
Every command reports an explicit GitResult; operations without a useful
result raise GitError instead.
"""

import asyncio
import os
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum

from backporter.config import (
    DEFAULT_COMMITTER_EMAIL,
    DEFAULT_COMMITTER_NAME,
    ConflictResolution,
)
from backporter.exceptions import GitError, GitRefNotFoundError
from backporter.logging import get_logger, log_git_command
from backporter.types.results import CherryPickResult

logger = get_logger("git")

# (exit_code, stdout, stderr)
ProcessOutput = tuple[int, str, str]
Runner = Callable[[list[str], str, Mapping[str, str]], Awaitable[ProcessOutput]]

# Exit status of `git fetch` when the remote does not have the ref
REF_NOT_FOUND_EXIT_CODE = 128
# Exit status of `git cherry-pick` when the commit conflicts
CONFLICT_EXIT_CODE = 1

CONFLICT_COMMIT_MESSAGE = "BACKPORT-CONFLICT"


class GitStatus(str, Enum):
    OK = "ok"
    REF_NOT_FOUND = "ref_not_found"
    FAILED = "failed"


class PushResult(str, Enum):
    """Why a push failed."""

    PERMISSION_DENIED = "permission_denied"
    UNKNOWN_FAILURE = "unknown_failure"


@dataclass
class GitResult:
    """Outcome of a single git invocation."""

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    ref: str | None = None  # set for fetches, where 128 means the ref is missing

    @property
    def status(self) -> GitStatus:
        if self.exit_code == 0:
            return GitStatus.OK
        if self.ref is not None and self.exit_code == REF_NOT_FOUND_EXIT_CODE:
            return GitStatus.REF_NOT_FOUND
        return GitStatus.FAILED

    @property
    def ok(self) -> bool:
        return self.status is GitStatus.OK

    def raise_for_status(self) -> "GitResult":
        """
        Raise if the command failed.

        Returns:
            self, for chaining

        Raises:
            GitRefNotFoundError: If a fetched ref does not exist on the remote
            GitError: On any other non-zero exit
        """
        status = self.status
        if status is GitStatus.REF_NOT_FOUND:
            raise GitRefNotFoundError(self.ref or "", self.command, self.exit_code)
        if status is GitStatus.FAILED:
            raise GitError(
                f"'{self.command}' failed with exit code {self.exit_code}",
                self.command,
                self.exit_code,
            )
        return self


def classify_push_failure(result: GitResult) -> PushResult:
    """Tell a rejected push apart from other push failures."""
    stderr = result.stderr.lower()
    if ("permission to" in stderr and "denied" in stderr) or "403" in stderr:
        return PushResult.PERMISSION_DENIED
    return PushResult.UNKNOWN_FAILURE


async def run_process(args: list[str], cwd: str, env: Mapping[str, str]) -> ProcessOutput:
    """Run ``git`` with the given arguments and capture its output."""
    process = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=cwd,
        env=dict(env),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return (
        process.returncode if process.returncode is not None else -1,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


class Git:
    """
    Gateway to the git command line tool.

    Example:
        ```python
        git = Git("/github/workspace")
        result = await git.fetch("release-1", depth=1)
        if result.status is GitStatus.REF_NOT_FOUND:
            ...
        ```
    """

    def __init__(
        self,
        pwd: str = ".",
        committer_name: str = DEFAULT_COMMITTER_NAME,
        committer_email: str = DEFAULT_COMMITTER_EMAIL,
        runner: Runner | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            pwd: Root of the git repository
            committer_name: GIT_COMMITTER_NAME for every invocation
            committer_email: GIT_COMMITTER_EMAIL for every invocation
            runner: Process runner (default: runs git as a subprocess)
        """
        self.pwd = pwd
        self.committer_name = committer_name
        self.committer_email = committer_email
        self._runner = runner or run_process

    async def _git(self, *args: str, ref: str | None = None) -> GitResult:
        env = {
            **os.environ,
            "GIT_COMMITTER_NAME": self.committer_name,
            "GIT_COMMITTER_EMAIL": self.committer_email,
        }
        exit_code, stdout, stderr = await self._runner(list(args), self.pwd, env)
        log_git_command(list(args), exit_code, stderr if exit_code else None)
        return GitResult(
            command=" ".join(["git", *args]),
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            ref=ref,
        )

    async def fetch(self, ref: str, depth: int, remote: str = "origin") -> GitResult:
        """
        Fetch a ref from a remote.

        Args:
            ref: The sha, branch name, etc. to fetch
            depth: Number of commits of history to fetch
            remote: Remote name (default: "origin")

        Returns:
            GitResult whose status is REF_NOT_FOUND when the remote lacks the ref
        """
        return await self._git("fetch", f"--depth={depth}", remote, ref, ref=ref)

    async def add_remote(self, name: str, owner: str, repo: str) -> None:
        """
        Register a remote for a GitHub repository.

        Does nothing when the remote already points at the repository.

        Raises:
            GitError: If the remote cannot be added
        """
        url = f"https://github.com/{owner}/{repo}.git"
        current = await self._git("remote", "get-url", name)
        if current.ok:
            if current.stdout.strip() == url:
                logger.debug("Remote %s already points at %s", name, url)
                return
            (await self._git("remote", "set-url", name, url)).raise_for_status()
            return
        (await self._git("remote", "add", name, url)).raise_for_status()

    async def find_commits_in_range(self, range_: str) -> list[str]:
        """
        List the commits in a range.

        Args:
            range_: A revision range, e.g. "abc~3..abc"

        Returns:
            Commit SHAs, oldest first

        Raises:
            GitError: If git log fails
        """
        result = (await self._git("log", "--pretty=format:%H", "--reverse", range_)).raise_for_status()
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def find_merge_commits(self, shas: list[str]) -> list[str]:
        """
        Determine which of the given commits are merge commits.

        Args:
            shas: Commits, oldest first

        Returns:
            The merge commits among ``shas``, in their original order

        Raises:
            GitError: If git rev-list fails
        """
        if not shas:
            return []
        result = (
            await self._git("rev-list", "--merges", f"{shas[0]}^..{shas[-1]}")
        ).raise_for_status()
        merges = {line.strip() for line in result.stdout.splitlines() if line.strip()}
        return [sha for sha in shas if sha in merges]

    async def find_parents(self, sha: str) -> list[str]:
        """
        List the parents of a commit.

        Raises:
            GitError: If git rev-list fails
        """
        result = (await self._git("rev-list", "--parents", "-n", "1", sha)).raise_for_status()
        return result.stdout.split()[1:]

    async def checkout(self, branch: str, start: str) -> None:
        """
        Create and switch to a new branch.

        Args:
            branch: Name of the new branch
            start: Start point, e.g. "origin/release-1"

        Raises:
            GitError: If the branch exists already or the start point is unknown
        """
        (await self._git("switch", "-c", branch, start)).raise_for_status()

    async def cherry_pick(
        self, shas: list[str], conflict_resolution: ConflictResolution
    ) -> CherryPickResult:
        """
        Cherry-pick commits onto the current branch.

        With ``fail`` all commits are picked at once and any failure aborts the
        cherry-pick. With ``draft_commit_conflicts`` commits are picked one at a
        time; the first conflict is committed as is and picking stops there.

        Args:
            shas: Commits to cherry-pick, oldest first
            conflict_resolution: How to handle a conflict

        Returns:
            CherryPickResult; ``remaining`` lists the commits that were not
            applied, starting with the conflicting one, or is None

        Raises:
            GitError: If the cherry-pick fails and was aborted
        """
        if conflict_resolution is ConflictResolution.FAIL:
            result = await self._git("cherry-pick", "-x", *shas)
            if not result.ok:
                await self._abort_cherry_pick()
                result.raise_for_status()
            return CherryPickResult()

        for index, sha in enumerate(shas):
            result = await self._git("cherry-pick", "-x", sha)
            if result.exit_code == CONFLICT_EXIT_CODE and not await self._has_unmerged_paths():
                # already applied on the target, nothing to commit
                skip = await self._git("cherry-pick", "--skip")
                if not skip.ok:
                    await self._abort_cherry_pick()
                    result.raise_for_status()
                logger.info("Skipped %s, its changes are already on the branch", sha)
                continue
            if result.exit_code == CONFLICT_EXIT_CODE:
                commit = await self._git("commit", "--all", "-m", CONFLICT_COMMIT_MESSAGE)
                if not commit.ok:
                    await self._abort_cherry_pick()
                    result.raise_for_status()
                logger.info("Committed conflicts of %s, %d commit(s) left", sha, len(shas) - index)
                return CherryPickResult(remaining=shas[index:])
            if not result.ok:
                await self._abort_cherry_pick()
                result.raise_for_status()
        return CherryPickResult()

    async def _has_unmerged_paths(self) -> bool:
        result = await self._git("diff", "--name-only", "--diff-filter=U")
        return bool(result.stdout.strip())

    async def _abort_cherry_pick(self) -> None:
        abort = await self._git("cherry-pick", "--abort")
        if not abort.ok:
            logger.warning("'git cherry-pick --abort' failed with exit code %d", abort.exit_code)

    async def push(self, branch: str, remote: str = "origin") -> GitResult:
        """
        Push a branch and set its upstream.

        Returns:
            GitResult of the push; callers decide how to handle failures
        """
        return await self._git("push", "--set-upstream", remote, branch)
