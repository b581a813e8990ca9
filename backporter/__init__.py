"""backporter - backport merged GitHub pull requests to other branches."""

from backporter.backport import Backport, should_enable_auto_merge
from backporter.client import AsyncGitHubClient
from backporter.config import (
    ActionContext,
    BackportConfig,
    CherryPickingMode,
    ConflictResolution,
    MergeCommitPolicy,
)
from backporter.dashboard import Dashboard, parse_dashboard, render_dashboard
from backporter.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BackporterError,
    ConfigurationError,
    ConflictError,
    GitError,
    GitHubError,
    GitRefNotFoundError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from backporter.git import Git, GitResult, GitStatus
from backporter.logging import configure_logging, get_logger
from backporter.strategy import MergeStrategy, commits_to_cherry_pick, detect_merge_strategy
from backporter.targets import find_target_branches
from backporter.templates import get_mentioned_issue_refs, replace_placeholders
from backporter.transport import AsyncHTTPTransport, RetryConfig

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Orchestration
    "Backport",
    "should_enable_auto_merge",
    "find_target_branches",
    "MergeStrategy",
    "detect_merge_strategy",
    "commits_to_cherry_pick",
    "get_mentioned_issue_refs",
    "replace_placeholders",
    # Dashboard
    "Dashboard",
    "parse_dashboard",
    "render_dashboard",
    # Configuration
    "BackportConfig",
    "ActionContext",
    "MergeCommitPolicy",
    "CherryPickingMode",
    "ConflictResolution",
    # GitHub client
    "AsyncGitHubClient",
    "AsyncHTTPTransport",
    "RetryConfig",
    # Git
    "Git",
    "GitResult",
    "GitStatus",
    # Exceptions
    "BackporterError",
    "ConfigurationError",
    "GitHubError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitedError",
    "ValidationError",
    "ServerError",
    "GitError",
    "GitRefNotFoundError",
    # Logging
    "configure_logging",
    "get_logger",
]
