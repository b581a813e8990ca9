"""
Integration tests for the git gateway against real repositories.

Skipped when git is not installed.
"""

import asyncio
import shutil
import subprocess
from pathlib import Path

import pytest

from backporter.config import ConflictResolution
from backporter.exceptions import GitError
from backporter.git import Git, GitStatus

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def sh(cwd: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return completed.stdout.strip()


def commit(repo: Path, path: str, content: str, message: str) -> str:
    (repo / path).write_text(content, encoding="utf-8")
    sh(repo, "add", path)
    sh(repo, "commit", "-q", "-m", message)
    return sh(repo, "rev-parse", "HEAD")


@pytest.fixture
def repos(tmp_path: Path) -> dict[str, object]:
    """An upstream repository with a release branch and a clone of it."""
    upstream = tmp_path / "upstream"
    upstream.mkdir()
    sh(upstream, "init", "-q", "-b", "main")
    sh(upstream, "config", "user.name", "Test")
    sh(upstream, "config", "user.email", "test@example.com")

    commit(upstream, "a.txt", "1\n", "initial")
    sh(upstream, "branch", "release-1")
    commit(upstream, "a.txt", "2\n", "change a")
    feature = commit(upstream, "b.txt", "feature\n", "add b")
    conflicting = commit(upstream, "a.txt", "3\n", "change a again")
    duplicate = commit(upstream, "c.txt", "same\n", "add c")

    work = tmp_path / "work"
    sh(tmp_path, "clone", "-q", upstream.as_uri(), str(work))
    sh(work, "config", "user.name", "Test")
    sh(work, "config", "user.email", "test@example.com")

    return {"work": work, "feature": feature, "conflicting": conflicting, "duplicate": duplicate}


def test_fetch_existing_and_missing_refs(repos: dict[str, object]) -> None:
    git = Git(str(repos["work"]))

    async def run() -> tuple:
        return await git.fetch("release-1", 1), await git.fetch("does-not-exist", 1)

    found, missing = asyncio.run(run())

    assert found.status is GitStatus.OK
    assert missing.status is GitStatus.REF_NOT_FOUND


def test_backport_clean_commit(repos: dict[str, object]) -> None:
    work = repos["work"]
    git = Git(str(work), "Backport Bot", "bot@example.com")

    async def run() -> object:
        await git.checkout("backport-1-to-release-1", "origin/release-1")
        return await git.cherry_pick([repos["feature"]], ConflictResolution.FAIL)

    result = asyncio.run(run())

    assert result.clean
    assert sh(work, "rev-parse", "--abbrev-ref", "HEAD") == "backport-1-to-release-1"
    assert (work / "b.txt").read_text(encoding="utf-8") == "feature\n"
    message = sh(work, "log", "-1", "--format=%B")
    assert f"(cherry picked from commit {repos['feature']})" in message
    assert sh(work, "log", "-1", "--format=%cn <%ce>") == "Backport Bot <bot@example.com>"


def test_conflict_fails_and_aborts(repos: dict[str, object]) -> None:
    work = repos["work"]
    git = Git(str(work))

    async def run() -> object:
        await git.checkout("backport-1-to-release-1", "origin/release-1")
        return await git.cherry_pick([repos["conflicting"]], ConflictResolution.FAIL)

    with pytest.raises(GitError):
        asyncio.run(run())

    assert sh(work, "status", "--porcelain") == ""


def test_conflict_committed_as_draft(repos: dict[str, object]) -> None:
    work = repos["work"]
    git = Git(str(work))

    async def run() -> object:
        await git.checkout("backport-1-to-release-1", "origin/release-1")
        return await git.cherry_pick(
            [repos["conflicting"], repos["feature"]], ConflictResolution.DRAFT_COMMIT_CONFLICTS
        )

    result = asyncio.run(run())

    assert result.remaining == [repos["conflicting"], repos["feature"]]
    assert sh(work, "log", "-1", "--format=%s") == "BACKPORT-CONFLICT"
    assert "<<<<<<<" in (work / "a.txt").read_text(encoding="utf-8")


def test_conflict_after_clean_commit(repos: dict[str, object]) -> None:
    work = repos["work"]
    git = Git(str(work))

    async def run() -> object:
        await git.checkout("backport-1-to-release-1", "origin/release-1")
        return await git.cherry_pick(
            [repos["feature"], repos["conflicting"]], ConflictResolution.DRAFT_COMMIT_CONFLICTS
        )

    result = asyncio.run(run())

    assert result.remaining == [repos["conflicting"]]
    subjects = sh(work, "log", "--format=%s", "origin/release-1..HEAD").splitlines()
    assert subjects == ["BACKPORT-CONFLICT", "add b"]
    assert (work / "b.txt").read_text(encoding="utf-8") == "feature\n"


def test_already_applied_commit_is_skipped(repos: dict[str, object]) -> None:
    work = repos["work"]
    git = Git(str(work))

    async def run() -> object:
        await git.checkout("backport-1-to-release-1", "origin/release-1")
        commit(work, "c.txt", "same\n", "add c on the release branch")
        return await git.cherry_pick(
            [repos["duplicate"], repos["feature"]], ConflictResolution.DRAFT_COMMIT_CONFLICTS
        )

    result = asyncio.run(run())

    assert result.clean
    subjects = sh(work, "log", "--format=%s", "origin/release-1..HEAD").splitlines()
    assert subjects == ["add b", "add c on the release branch"]
    assert sh(work, "status", "--porcelain") == ""


def test_parents_and_ranges(repos: dict[str, object]) -> None:
    git = Git(str(repos["work"]))
    feature, conflicting = repos["feature"], repos["conflicting"]

    async def run() -> tuple:
        parents = await git.find_parents(conflicting)
        commits = await git.find_commits_in_range(f"{conflicting}~2..{conflicting}")
        merges = await git.find_merge_commits([feature, conflicting])
        return parents, commits, merges

    parents, commits, merges = asyncio.run(run())

    assert parents == [feature]
    assert commits == [feature, conflicting]
    assert merges == []
