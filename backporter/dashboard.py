"""
Backport Dashboard.

An issue titled "Backport Dashboard" lists the merged pull requests whose
backports are still open. Its body is the only state that outlives a run:

    <!-- VERSION: 1 -->
    # Backport Dashboard
    ...

    ## #123 Fix the frobnicator
    - `release-1`: #124
    - `release-2`: owner/repo#125

The body is parsed, pruned of closed backports, extended with the backports of
the current run and rendered again. Bodies of an unknown version are never
overwritten.
"""

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from backporter.exceptions import AuthorizationError, NotFoundError
from backporter.logging import get_logger
from backporter.types.dashboard import BackportLink, DashboardEntry
from backporter.types.issues import Issue
from backporter.types.pulls import PullRequest

if TYPE_CHECKING:
    from backporter.client import AsyncGitHubClient

logger = get_logger("dashboard")

DASHBOARD_TITLE = "Backport Dashboard"
VERSION = 1
VERSION_MARKER = f"<!-- VERSION: {VERSION} -->"
HEADER = (
    f"# {DASHBOARD_TITLE}\n\n"
    "This issue lists pull requests that have been backported, "
    "but whose backport pull requests have not been merged or closed yet."
)
NO_ENTRIES = "No active backports."

_VERSION_LINE = re.compile(r"^\s*<!--\s*VERSION:\s*(\d+)\s*-->\s*$")
_ENTRY_LINE = re.compile(r"^\s*##\s+#(\d+)[ \t]+(.*?)\s*$")
_ITEM_LINE = re.compile(
    r"^\s*-\s+`(.+)`\s*:\s*([^\s#/`]+/[^\s#/`]+)?#(\d+)\s*$"
)
_UNESCAPED_BACKTICK = re.compile(r"(?<!\\)`")
# everything str.splitlines() breaks on
_LINE_BREAKS = "\n\r\x0b\x0c\x1c\x1d\x1e\x85\u2028\u2029"
_LINE_BREAK_RUN = re.compile(f"\\s*[{_LINE_BREAKS}]+\\s*")


def parse_dashboard(body: str | None) -> list[DashboardEntry] | None:
    """
    Parse a dashboard body.

    Parsing is lenient: malformed lines are dropped. It never raises.

    Args:
        body: The issue body

    Returns:
        The entries, or None when the body does not start with a supported
        version marker
    """
    if not body:
        return None
    lines = [line.removesuffix("\r") for line in body.split("\n")]
    version = _VERSION_LINE.match(lines[0])
    if version is None or int(version.group(1)) != VERSION:
        return None

    entries: list[DashboardEntry] = []
    current: DashboardEntry | None = None
    for line in lines[1:]:
        entry = _ENTRY_LINE.match(line)
        if entry:
            current = DashboardEntry(
                original_number=int(entry.group(1)),
                original_title=entry.group(2),
            )
            entries.append(current)
            continue

        if line.lstrip().startswith("#"):
            # any other heading ends the current entry
            current = None
            continue

        item = _ITEM_LINE.match(line)
        if item and current is not None:
            current.backports.append(
                BackportLink(
                    branch=_unescape(item.group(1)),
                    number=int(item.group(3)),
                    repository=item.group(2),
                )
            )
    return entries


def render_dashboard(
    entries: Iterable[DashboardEntry],
    downstream_owner: str | None = None,
    downstream_repo: str | None = None,
) -> str:
    """
    Render dashboard entries as an issue body.

    Args:
        entries: The entries to list
        downstream_owner: Owner of the repository the backports live in
        downstream_repo: Repository the backports live in; links without a
            repository of their own are fully qualified (``owner/repo#123``)
            with it when set

    Returns:
        The issue body, starting with the version marker
    """
    default = None
    if downstream_owner and downstream_repo:
        default = f"{downstream_owner}/{downstream_repo}"

    lines = [VERSION_MARKER, HEADER]
    entries = list(entries)
    if not entries:
        lines += ["", NO_ENTRIES]
    for entry in entries:
        lines += ["", f"## #{entry.original_number} {_flatten(entry.original_title)}"]
        for link in entry.backports:
            repository = link.repository or default or ""
            lines.append(f"- `{escape_branch(link.branch)}`: {repository}#{link.number}")
    return "\n".join(lines) + "\n"


def escape_branch(branch: str) -> str:
    """
    Escape backticks in a branch name, leaving escaped ones alone.

    Line breaks are replaced by spaces so that a branch stays on its line.
    """
    return _UNESCAPED_BACKTICK.sub(r"\\`", _LINE_BREAK_RUN.sub(" ", branch))


def _unescape(branch: str) -> str:
    return branch.replace("\\`", "`")


def _flatten(title: str) -> str:
    return _LINE_BREAK_RUN.sub(" ", title).strip()


class Dashboard:
    """
    Maintains the Backport Dashboard issue of a repository.

    Example:
        ```python
        dashboard = Dashboard(github, "owner", "repo")
        await dashboard.create_or_update_dashboard(pull, [backport_pull])
        ```
    """

    def __init__(
        self,
        github: "AsyncGitHubClient",
        owner: str,
        repo: str,
        downstream_owner: str | None = None,
        downstream_repo: str | None = None,
    ) -> None:
        """
        Initialize the dashboard.

        Args:
            github: GitHub client
            owner: Owner of the repository holding the dashboard issue
            repo: Repository holding the dashboard issue
            downstream_owner: Owner of the repository backports are created in
                (default: owner)
            downstream_repo: Repository backports are created in, when it is
                not the same as ``repo``
        """
        self.github = github
        self.owner = owner
        self.repo = repo
        self.downstream_repo = downstream_repo
        self.downstream_owner = (downstream_owner or owner) if downstream_repo else None

    async def create_or_update_dashboard(
        self, pull: PullRequest, backport_pulls: list[PullRequest]
    ) -> None:
        """
        Record the backports of a pull request on the dashboard.

        Backports that are no longer open are removed first, and so are
        entries left without backports.

        Args:
            pull: The original pull request
            backport_pulls: Backport pull requests created for it

        Raises:
            GitHubError: If the dashboard issue cannot be read or written
        """
        logger.info("Updating %s for #%d", DASHBOARD_TITLE, pull.number)
        issue = await self._find_dashboard_issue()

        if issue is None:
            logger.info("No dashboard issue found, creating a new one")
            entries: list[DashboardEntry] = []
        else:
            logger.info("Found dashboard issue #%d", issue.number)
            parsed = parse_dashboard(issue.body)
            if parsed is None:
                logger.warning(
                    "Dashboard issue #%d does not start with %s, leaving it untouched",
                    issue.number,
                    VERSION_MARKER,
                )
                return
            entries = parsed

        entries = await self._prune(entries)
        self._add_backports(entries, pull, backport_pulls)
        body = render_dashboard(entries)

        try:
            if issue is None:
                await self.github.issues.create(self.owner, self.repo, DASHBOARD_TITLE, body)
            elif issue.body != body:
                logger.info("Updating dashboard issue #%d", issue.number)
                await self.github.issues.update(self.owner, self.repo, issue.number, body)
            else:
                logger.info("Dashboard issue #%d is up to date", issue.number)
        except AuthorizationError:
            logger.error(
                "Failed to create or update the dashboard issue. "
                "Please ensure that the 'issues: write' permission is enabled in your workflow."
            )
            raise

    async def _find_dashboard_issue(self) -> Issue | None:
        issues = await self.github.issues.list(self.owner, self.repo, state="open")
        return next((issue for issue in issues if issue.title == DASHBOARD_TITLE), None)

    @property
    def _backport_repository(self) -> str | None:
        if self.downstream_repo:
            return f"{self.downstream_owner}/{self.downstream_repo}"
        return None

    async def _prune(self, entries: list[DashboardEntry]) -> list[DashboardEntry]:
        kept: list[DashboardEntry] = []
        for entry in entries:
            open_links = []
            for link in entry.backports:
                owner, repo = (
                    link.repository.split("/", 1) if link.repository else (self.owner, self.repo)
                )
                try:
                    backport = await self.github.pulls.get(owner, repo, link.number)
                except NotFoundError:
                    logger.info("Backport #%d no longer exists", link.number)
                    continue
                if backport.state == "open":
                    open_links.append(link)
                else:
                    logger.info("Backport #%d is closed or merged", link.number)
            if open_links:
                kept.append(
                    DashboardEntry(entry.original_number, entry.original_title, open_links)
                )
            else:
                logger.info(
                    "All backports of #%d are closed or merged, removing entry", entry.original_number
                )
        return kept

    def _add_backports(
        self, entries: list[DashboardEntry], pull: PullRequest, backport_pulls: list[PullRequest]
    ) -> None:
        if not backport_pulls:
            return
        entry = next((e for e in entries if e.original_number == pull.number), None)
        if entry is None:
            entry = DashboardEntry(pull.number, pull.title)
            entries.append(entry)
        repository = self._backport_repository
        for backport in backport_pulls:
            if any(
                (link.repository, link.number) == (repository, backport.number)
                for link in entry.backports
            ):
                continue
            logger.info("Tracking backport #%d of #%d", backport.number, pull.number)
            entry.backports.append(
                BackportLink(branch=backport.base_ref, number=backport.number, repository=repository)
            )
