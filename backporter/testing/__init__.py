"""backporter testing utilities.

Provides a mock GitHub client, a mock git gateway and fixtures for testing
code that backports pull requests.
"""

from backporter.testing.fixtures import create_mock_dashboard_issue, create_mock_pull_request
from backporter.testing.mock import MockCall, MockGit, MockGitHubClient, MockResponse

__all__ = [
    # Mocks
    "MockGitHubClient",
    "MockGit",
    "MockCall",
    "MockResponse",
    # Helper functions
    "create_mock_pull_request",
    "create_mock_dashboard_issue",
]
