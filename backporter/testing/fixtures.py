"""
Pytest fixtures for backporter testing.

Provides common fixtures for testing code that backports pull requests.
"""

from collections.abc import Generator
from typing import Any

import pytest

from backporter.config import BackportConfig
from backporter.testing.mock import MockGit, MockGitHubClient
from backporter.types.issues import Issue
from backporter.types.pulls import PullRequest


# ============================================================================
# Helper Functions
# ============================================================================


def create_mock_pull_request(
    number: int = 123,
    title: str = "My bug fix",
    **kwargs: Any,
) -> PullRequest:
    """
    Create a merged PullRequest with sensible defaults.

    Args:
        number: Pull request number (default: 123)
        title: Pull request title (default: "My bug fix")
        **kwargs: Override any other PullRequest field

    Returns:
        PullRequest instance
    """
    defaults: dict[str, Any] = {
        "number": number,
        "title": title,
        "body": "Fixes #42",
        "author": "octocat",
        "head_ref": "feature/one",
        "head_sha": "head-sha",
        "base_ref": "main",
        "base_sha": "base-sha",
        "state": "closed",
        "merged": True,
        "merge_commit_sha": "merge-sha",
        "commits": 3,
        "labels": ["backport release-1"],
        "requested_reviewers": [],
        "assignees": [],
        "milestone": None,
        "node_id": f"PR_node{number}",
        "html_url": f"https://github.com/owner/repo/pull/{number}",
    }
    defaults.update(kwargs)
    return PullRequest(**defaults)


def create_mock_dashboard_issue(body: str, number: int = 1) -> Issue:
    """Create an open Backport Dashboard issue with the given body."""
    return Issue(number=number, title="Backport Dashboard", body=body, state="open")


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_github() -> Generator[MockGitHubClient, None, None]:
    """
    Provide a MockGitHubClient for testing.

    Example:
        ```python
        def test_my_feature(mock_github):
            mock_github.pulls.configure_get(response=my_pull)
            asyncio.run(my_function(mock_github))
            assert mock_github.was_called("pulls.get")
        ```
    """
    client = MockGitHubClient()
    yield client
    client.reset()


@pytest.fixture
def mock_git() -> Generator[MockGit, None, None]:
    """Provide a MockGit gateway for testing."""
    git = MockGit()
    yield git
    git.reset()


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_pull_request() -> PullRequest:
    """Provide a merged pull request with three commits and a backport label."""
    return create_mock_pull_request()


@pytest.fixture
def backport_config() -> BackportConfig:
    """Provide the default configuration with the dashboard enabled."""
    return BackportConfig(dashboard=True)


# ============================================================================
# Pre-configured Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_github_with_pull(
    mock_github: MockGitHubClient, sample_pull_request: PullRequest
) -> MockGitHubClient:
    """Provide a mock client that serves the sample pull request and its commits."""
    mock_github.pulls.configure_get(
        response=sample_pull_request, pull_number=sample_pull_request.number
    )
    mock_github.pulls.configure_list_commits(response=["sha-1", "sha-2", "sha-3"])
    return mock_github
