"""
Pytest plugin for backporter testing fixtures.

This module re-exports all fixtures from fixtures.py so they can be
automatically discovered by pytest when this package is installed.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["backporter.testing.conftest"]

Or import the fixtures directly:

    from backporter.testing.fixtures import mock_github, sample_pull_request
"""

# Re-export all fixtures for pytest auto-discovery
from backporter.testing.fixtures import (
    backport_config,
    mock_git,
    mock_github,
    mock_github_with_pull,
    sample_pull_request,
)

__all__ = [
    "mock_github",
    "mock_git",
    "sample_pull_request",
    "backport_config",
    "mock_github_with_pull",
]
