"""Resolution of the branches a pull request is backported to."""

import re
from collections.abc import Iterable

from backporter.logging import get_logger

logger = get_logger()


def find_target_branches(
    labels: Iterable[str],
    head_ref: str,
    *,
    label_pattern: re.Pattern[str] | None = None,
    target_branches: str | None = None,
) -> list[str]:
    """
    Determine the target branches from labels and explicit configuration.

    A label yields a target when ``label_pattern`` matches the whole label and
    captures exactly one non-empty group, e.g. ``backport release-1`` with the
    default pattern ``^backport ([^ ]+)$``. Explicit targets are given as a
    whitespace separated list.

    Args:
        labels: Label names of the pull request
        head_ref: Head branch of the pull request, never a target
        label_pattern: Pattern with one capture group for the target branch
        target_branches: Space-delimited list of target branches

    Returns:
        Target branches without duplicates, label targets first, in the order
        they were found
    """
    found = _targets_from_labels(labels, label_pattern) if label_pattern else []
    if target_branches:
        found.extend(target_branches.split())

    targets: list[str] = []
    for target in found:
        if target == head_ref or target in targets:
            continue
        targets.append(target)
    if len(targets) < len(set(found)):
        logger.info("Excluded the head ref '%s' from the target branches", head_ref)
    return targets


def _targets_from_labels(labels: Iterable[str], pattern: re.Pattern[str]) -> list[str]:
    targets = []
    for label in labels:
        match = pattern.fullmatch(label)
        if match is None:
            continue
        groups = match.groups()
        if len(groups) != 1 or not groups[0]:
            logger.warning(
                "label_pattern '%s' matched \"%s\", but did not capture exactly one branch name. "
                "Please make sure to provide a regex with a single capture group as label_pattern.",
                pattern.pattern,
                label,
            )
            continue
        logger.info("Found target in label: %s", groups[0])
        targets.append(groups[0])
    return targets
