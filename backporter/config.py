"""
backporter configuration.

Reads the GitHub Actions inputs (``INPUT_*`` environment variables) and the
workflow context (``GITHUB_*`` environment variables) into dataclasses.
"""

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from backporter.exceptions import ConfigurationError

DEFAULT_LABEL_PATTERN = r"^backport ([^ ]+)$"
DEFAULT_BRANCH_NAME = "backport-${pull_number}-to-${target_branch}"
DEFAULT_PULL_TITLE = "[Backport ${target_branch}] ${pull_title}"
DEFAULT_PULL_DESCRIPTION = "# Description\nBackport of #${pull_number} to `${target_branch}`."
DEFAULT_COMMITTER_NAME = "github-actions[bot]"
DEFAULT_COMMITTER_EMAIL = "github-actions[bot]@users.noreply.github.com"


class MergeCommitPolicy(str, Enum):
    """What to do with merge commits found among the commits to cherry-pick."""

    FAIL = "fail"
    SKIP = "skip"


class CherryPickingMode(str, Enum):
    """Which commits are cherry-picked."""

    AUTO = "auto"
    PULL_REQUEST_HEAD = "pull_request_head"


class ConflictResolution(str, Enum):
    """What to do when a cherry-pick conflicts."""

    FAIL = "fail"
    DRAFT_COMMIT_CONFLICTS = "draft_commit_conflicts"


class AutoMergeMethod(str, Enum):
    MERGE = "merge"
    SQUASH = "squash"
    REBASE = "rebase"


@dataclass
class BackportConfig:
    """Configuration of a backport run."""

    pwd: str = "."
    label_pattern: re.Pattern[str] | None = field(
        default_factory=lambda: re.compile(DEFAULT_LABEL_PATTERN)
    )
    target_branches: str | None = None
    branch_name: str = DEFAULT_BRANCH_NAME
    pull_title: str = DEFAULT_PULL_TITLE
    pull_description: str = DEFAULT_PULL_DESCRIPTION
    copy_labels_pattern: re.Pattern[str] | None = None
    add_labels: list[str] = field(default_factory=list)
    copy_milestone: bool = False
    copy_assignees: bool = False
    copy_requested_reviewers: bool = False
    add_author_as_assignee: bool = False
    merge_commits: MergeCommitPolicy = MergeCommitPolicy.FAIL
    cherry_picking: CherryPickingMode = CherryPickingMode.AUTO
    conflict_resolution: ConflictResolution = ConflictResolution.FAIL
    downstream_owner: str | None = None
    downstream_repo: str | None = None
    source_pr_number: int | None = None
    enable_auto_merge: bool = False
    auto_merge_enable_label: str | None = None
    auto_merge_disable_label: str | None = None
    auto_merge_method: AutoMergeMethod = AutoMergeMethod.MERGE
    dashboard: bool = False
    git_committer_name: str = DEFAULT_COMMITTER_NAME
    git_committer_email: str = DEFAULT_COMMITTER_EMAIL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BackportConfig":
        """
        Create a configuration from GitHub Actions inputs.

        Each action input ``name`` is read from ``INPUT_NAME``. Unset or empty
        inputs fall back to their defaults.

        Args:
            environ: Environment to read (default: os.environ)

        Returns:
            Configured BackportConfig instance

        Raises:
            ConfigurationError: If an input has an invalid value
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str:
            return env.get(f"INPUT_{name.upper()}", "").strip()

        experimental = _parse_experimental(get("experimental"))
        downstream_repo = experimental.get("downstream_repo") or None
        downstream_owner = (experimental.get("downstream_owner") or None) if downstream_repo else None

        label_pattern_input = env.get("INPUT_LABEL_PATTERN")
        if label_pattern_input is None:
            label_pattern = re.compile(DEFAULT_LABEL_PATTERN)
        else:
            label_pattern = _compile_pattern("label_pattern", label_pattern_input.strip())

        source_pr_number = None
        if get("source_pr_number"):
            try:
                source_pr_number = int(get("source_pr_number"))
            except ValueError:
                raise ConfigurationError(
                    f"source_pr_number must be a number, got '{get('source_pr_number')}'"
                ) from None

        return cls(
            pwd=get("github_workspace") or env.get("GITHUB_WORKSPACE") or ".",
            label_pattern=label_pattern,
            target_branches=get("target_branches") or None,
            branch_name=get("branch_name") or DEFAULT_BRANCH_NAME,
            pull_title=get("pull_title") or DEFAULT_PULL_TITLE,
            pull_description=get("pull_description") or DEFAULT_PULL_DESCRIPTION,
            copy_labels_pattern=_compile_pattern("copy_labels_pattern", get("copy_labels_pattern")),
            add_labels=[label.strip() for label in get("add_labels").split(",") if label.strip()],
            copy_milestone=_parse_bool("copy_milestone", get("copy_milestone")),
            copy_assignees=_parse_bool("copy_assignees", get("copy_assignees")),
            copy_requested_reviewers=_parse_bool(
                "copy_requested_reviewers", get("copy_requested_reviewers")
            ),
            add_author_as_assignee=_parse_bool("add_author_as_assignee", get("add_author_as_assignee")),
            merge_commits=_parse_enum(MergeCommitPolicy, "merge_commits", get("merge_commits")),
            cherry_picking=_parse_enum(CherryPickingMode, "cherry_picking", get("cherry_picking")),
            conflict_resolution=_parse_enum(
                ConflictResolution,
                "conflict_resolution",
                str(experimental.get("conflict_resolution") or ""),
            ),
            downstream_owner=downstream_owner,
            downstream_repo=downstream_repo,
            source_pr_number=source_pr_number,
            enable_auto_merge=_parse_bool("enable_auto_merge", get("enable_auto_merge")),
            auto_merge_enable_label=get("auto_merge_enable_label") or None,
            auto_merge_disable_label=get("auto_merge_disable_label") or None,
            auto_merge_method=_parse_enum(AutoMergeMethod, "auto_merge_method", get("auto_merge_method")),
            dashboard=_parse_bool("dashboard", get("dashboard")),
            git_committer_name=get("git_committer_name") or DEFAULT_COMMITTER_NAME,
            git_committer_email=get("git_committer_email") or DEFAULT_COMMITTER_EMAIL,
        )


@dataclass
class ActionContext:
    """The workflow run that triggered the action."""

    owner: str
    repo: str
    pull_number: int | None = None
    server_url: str = "https://github.com"
    run_id: str | None = None

    @property
    def run_url(self) -> str | None:
        if not self.run_id:
            return None
        return f"{self.server_url}/{self.owner}/{self.repo}/actions/runs/{self.run_id}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ActionContext":
        """
        Create a context from the GitHub Actions environment.

        Environment variables:
            GITHUB_REPOSITORY: "owner/repo" (required)
            GITHUB_EVENT_PATH: Path to the event payload (optional)
            GITHUB_SERVER_URL: Server URL (optional, default: https://github.com)
            GITHUB_RUN_ID: Workflow run id (optional)

        Raises:
            ConfigurationError: If GITHUB_REPOSITORY is missing or the event
                payload cannot be read
        """
        env = os.environ if environ is None else environ

        repository = env.get("GITHUB_REPOSITORY", "")
        owner, _, repo = repository.partition("/")
        if not owner or not repo:
            raise ConfigurationError(
                f"GITHUB_REPOSITORY must be set to 'owner/repo', got '{repository}'"
            )

        payload: dict[str, Any] = {}
        event_path = env.get("GITHUB_EVENT_PATH")
        if event_path:
            try:
                with open(event_path, encoding="utf-8") as f:
                    payload = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Unable to read event payload {event_path}: {e}") from e

        repo = (payload.get("repository") or {}).get("name") or repo
        pull = payload.get("pull_request") or payload.get("issue") or {}

        return cls(
            owner=owner,
            repo=repo,
            pull_number=pull.get("number"),
            server_url=env.get("GITHUB_SERVER_URL") or "https://github.com",
            run_id=env.get("GITHUB_RUN_ID") or None,
        )


def _parse_bool(name: str, value: str) -> bool:
    if not value:
        return False
    if value in ("true", "True", "TRUE"):
        return True
    if value in ("false", "False", "FALSE"):
        return False
    raise ConfigurationError(f"Input '{name}' must be 'true' or 'false', got '{value}'")


def _parse_enum(enum_cls: type[Enum], name: str, value: str) -> Any:
    if not value:
        return next(iter(enum_cls))
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(f"'{member.value}'" for member in enum_cls)
        raise ConfigurationError(
            f"Input '{name}' must be one of {allowed}, got '{value}'"
        ) from None


def _compile_pattern(name: str, value: str) -> re.Pattern[str] | None:
    if not value:
        return None
    try:
        return re.compile(value)
    except re.error as e:
        raise ConfigurationError(f"Input '{name}' is not a valid regular expression: {e}") from e


def _parse_experimental(value: str) -> dict[str, Any]:
    if not value:
        return {}
    try:
        experimental = json.loads(value)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Input 'experimental' is not valid JSON: {e}") from e
    if not isinstance(experimental, dict):
        raise ConfigurationError("Input 'experimental' must be a JSON object")
    return experimental
