"""backporter type definitions.

This module exports all data model types used by backporter.
"""

from backporter.types.dashboard import BackportLink, DashboardEntry
from backporter.types.issues import Issue, IssueComment
from backporter.types.pulls import CreatedPullRequest, CreatePullStatus, PullRequest
from backporter.types.results import (
    BackportResult,
    BackportRun,
    CherryPickResult,
    Failure,
    Success,
    SuccessWithConflict,
)

__all__ = [
    # Pull request types
    "PullRequest",
    "CreatePullStatus",
    "CreatedPullRequest",
    # Issue types
    "Issue",
    "IssueComment",
    # Dashboard types
    "BackportLink",
    "DashboardEntry",
    # Run results
    "CherryPickResult",
    "Success",
    "SuccessWithConflict",
    "Failure",
    "BackportResult",
    "BackportRun",
]
