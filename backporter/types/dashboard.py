"""Backport Dashboard data models."""

from dataclasses import dataclass, field


@dataclass
class BackportLink:
    """A backport pull request listed under a dashboard entry.

    ``repository`` is "owner/repo" when the backport lives in another
    repository than the dashboard, otherwise None.
    """

    branch: str
    number: int
    repository: str | None = None


@dataclass
class DashboardEntry:
    """An original pull request with its backports that are still open."""

    original_number: int
    original_title: str
    backports: list[BackportLink] = field(default_factory=list)
