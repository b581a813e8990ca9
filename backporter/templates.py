"""Placeholder substitution for branch names, titles and descriptions."""

import re

from backporter.types.pulls import PullRequest

# Issue urls and references count only as separate words, i.e. at the start
# or end of a line or surrounded by spaces.
_ISSUE_URL = re.compile(
    r"(?:^|(?<= ))(?:https://)?(?:www\.)?github\.com/"
    r"(?P<org>[^ /\n]+)/(?P<repo>[^ /\n]+)/issues/(?P<number>[0-9]+)/?(?= |$)",
    re.MULTILINE,
)
_ISSUE_REF = re.compile(
    r"(?:^|(?<= ))(?:[^\n #/]+/[^\n #/]+)?#[0-9]+(?= |$)",
    re.MULTILINE,
)

_PLACEHOLDER = re.compile(r"\$\{(\w+)\}")


def get_mentioned_issue_refs(body: str | None) -> list[str]:
    """
    Find the issues mentioned in a text.

    Args:
        body: Text in which to search for mentioned issues

    Returns:
        GitHub issue references, e.g. ``#123`` or ``owner/repo#123``; issue
        urls are converted to ``owner/repo#123``
    """
    if not body:
        return []
    from_urls = [
        f"{match['org']}/{match['repo']}#{match['number']}" for match in _ISSUE_URL.finditer(body)
    ]
    refs = [match.group(0).strip() for match in _ISSUE_REF.finditer(body)]
    return from_urls + refs


def replace_placeholders(template: str, pull: PullRequest, target: str) -> str:
    """
    Substitute every known ``${placeholder}`` in a template.

    Unknown placeholders are left untouched.

    Args:
        template: Template text, e.g. ``backport-${pull_number}-to-${target_branch}``
        pull: The pull request being backported
        target: The target branch

    Returns:
        The evaluated template
    """
    values = {
        "pull_number": str(pull.number),
        "pull_title": pull.title,
        "pull_author": pull.author,
        "pull_description": pull.body or "",
        "target_branch": target,
        "issue_refs": " ".join(get_mentioned_issue_refs(pull.body)),
    }
    # Single pass, so substituted values are never evaluated again
    return _PLACEHOLDER.sub(lambda match: values.get(match.group(1), match.group(0)), template)
