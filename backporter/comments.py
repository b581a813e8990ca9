"""
Comments posted on pull requests.

Every function returns markdown. Failure comments include a bash script that
reproduces the backport locally, so it can be finished by hand.
"""

from backporter.git import PushResult

PAT_DOCS_URL = (
    "https://docs.github.com/en/authentication/keeping-your-account-and-data-secure/"
    "managing-your-personal-access-tokens"
)

NOT_MERGED = "Only merged pull requests can be backported."

MERGE_COMMITS_FOUND = (
    "Backport failed because this pull request contains merge commits. "
    "You can either backport this pull request manually, "
    "or configure the action to skip merge commits."
)


def _bash(*lines: str) -> str:
    return "\n".join(["```bash", *lines, "```"])


def _pull_ref(pull_number: int, downstream: str | None) -> str:
    return f"{downstream}#{pull_number}" if downstream else f"#{pull_number}"


def backport_script(target: str, branch: str, shas: list[str], remote: str = "origin") -> str:
    """Script that creates the backport branch and cherry-picks the commits."""
    return _bash(
        f"git fetch {remote} {target}",
        f"git worktree add -d .worktree/{branch} {remote}/{target}",
        f"cd .worktree/{branch}",
        f"git switch --create {branch}",
        f"git cherry-pick -x {' '.join(shas)}",
    )


def conflict_resolution_script(branch: str, remaining: list[str], remote: str = "origin") -> str:
    """Script that replaces the committed conflicts with a manual cherry-pick."""
    return _bash(
        f"git fetch {remote} {branch}",
        f"git worktree add --checkout .worktree/{branch} {branch}",
        f"cd .worktree/{branch}",
        "git reset --hard HEAD^",
        f"git cherry-pick -x {' '.join(remaining)}",
        "git push --force-with-lease",
    )


def ref_not_found(target: str) -> str:
    return (
        f"Backport failed for `{target}`: couldn't find remote ref `{target}`.\n"
        f"Please ensure that this Github repo has a branch named `{target}`."
    )


def branch_creation_failed(target: str, branch: str, shas: list[str], remote: str = "origin") -> str:
    return (
        f"Backport failed for `{target}`, because it was unable to create a new branch.\n\n"
        "Please cherry-pick the changes locally.\n"
        f"{backport_script(target, branch, shas, remote)}"
    )


def cherry_pick_failed(target: str, branch: str, shas: list[str], remote: str = "origin") -> str:
    return (
        f"Backport failed for `{target}`, because it was unable to cherry-pick the commit(s).\n\n"
        "Please cherry-pick the changes locally and resolve any conflicts.\n"
        f"{backport_script(target, branch, shas, remote)}"
    )


def push_failed(
    target: str,
    branch: str,
    exit_code: int,
    push_result: PushResult = PushResult.UNKNOWN_FAILURE,
    run_id: str | None = None,
    run_url: str | None = None,
) -> str:
    """
    Explain why pushing the backport branch failed.

    Args:
        target: The target branch
        branch: The backport branch that could not be pushed
        exit_code: Exit status of git push
        push_result: Classification of the failure
        run_id: Workflow run id, linked when ``run_url`` is known
        run_url: Workflow run url

    Returns:
        The comment
    """
    introduction = f"Failed to backport this pull request to `{target}`"
    if run_id and run_url:
        introduction += f" in workflow run: [{run_id}]({run_url})"
    attempt = f"Tried to push branch `{branch}`"

    if push_result is PushResult.PERMISSION_DENIED:
        failure = f"{attempt}, but not permitted to push to this repo."
        action = (
            f"You can use a [Personal Access Token]({PAT_DOCS_URL}) (PAT) with `repo` scope "
            "as the `token` input for the [actions/checkout-action](https://github.com/actions/checkout) "
            "step to permit pushing to the repo."
        )
    else:
        failure = f"{attempt}, but git push failed with exit code {exit_code}."
        action = "Please check the logs."

    return f"{introduction}. {failure}\n\n{action}"


def create_pull_failed(status_code: int | None) -> str:
    return (
        "Backport branch created but failed to create PR.\n"
        f"Request to create PR rejected with status {status_code}.\n\n"
        "(see action log for full response)"
    )


def success(target: str, pull_number: int, downstream: str | None = None) -> str:
    return (
        f"Successfully created backport PR for `{target}`:\n"
        f"- {_pull_ref(pull_number, downstream)}"
    )


def success_with_conflicts(
    target: str,
    branch: str,
    pull_number: int,
    remaining: list[str],
    downstream: str | None = None,
    remote: str = "origin",
) -> str:
    return (
        f"Created backport PR for `{target}`:\n"
        f"- {_pull_ref(pull_number, downstream)} with remaining conflicts!\n\n"
        f"{conflicts_instructions(branch, remaining, remote)}"
    )


def conflicts_instructions(branch: str, remaining: list[str], remote: str = "origin") -> str:
    """Instructions posted on a draft backport pull request."""
    return (
        "Please cherry-pick the changes locally and resolve any conflicts.\n"
        f"{conflict_resolution_script(branch, remaining, remote)}"
    )


def unexpected_error(message: str, run_id: str | None = None, run_url: str | None = None) -> str:
    run = f" in workflow run [{run_id}]({run_url})" if run_id and run_url else ""
    return f"Backport failed{run}: {message}\n\nPlease check the logs."
