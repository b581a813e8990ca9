"""Pull request-related data models."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class PullRequest:
    """Pull request information, as fetched from GitHub."""

    number: int
    title: str
    body: str | None
    author: str
    head_ref: str
    head_sha: str
    base_ref: str
    base_sha: str
    state: str  # "open", "closed"
    merged: bool
    merge_commit_sha: str | None
    commits: int
    labels: list[str] = field(default_factory=list)
    requested_reviewers: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)
    milestone: int | None = None
    node_id: str = ""
    html_url: str = ""


class CreatePullStatus(str, Enum):
    """Outcome of a pull request creation request."""

    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


@dataclass
class CreatedPullRequest:
    """Result of creating a pull request.

    ``pull`` is only set when ``status`` is ``CREATED``.
    """

    status: CreatePullStatus
    pull: PullRequest | None = None
