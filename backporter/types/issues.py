"""Issue-related data models."""

from dataclasses import dataclass


@dataclass
class Issue:
    """Issue information."""

    number: int
    title: str
    body: str | None
    state: str  # "open", "closed"


@dataclass
class IssueComment:
    """A comment posted on an issue or pull request."""

    comment_id: int
    body: str
    html_url: str = ""
