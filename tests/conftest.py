"""Shared fixtures for the backporter tests."""

from backporter.testing.fixtures import (  # noqa: F401
    backport_config,
    mock_git,
    mock_github,
    mock_github_with_pull,
    sample_pull_request,
)
