"""
GitHub Actions entrypoint.

Usage: ``python -m backporter``. Reads the action inputs from the environment,
backports the pull request and writes the step outputs to ``$GITHUB_OUTPUT``.
"""

import asyncio
import logging
import os
import sys

from backporter.backport import Backport
from backporter.client import AsyncGitHubClient
from backporter.config import ActionContext, BackportConfig
from backporter.exceptions import ConfigurationError
from backporter.git import Git
from backporter.logging import configure_logging, get_logger
from backporter.types.results import BackportRun

logger = get_logger()


def write_outputs(run: BackportRun, path: str | None = None) -> None:
    """
    Append the run outputs to the GitHub Actions output file.

    Args:
        run: The finished run
        path: Output file (default: $GITHUB_OUTPUT); outputs are only logged
            when neither is set
    """
    path = path or os.environ.get("GITHUB_OUTPUT")
    outputs = run.outputs()
    for name, value in outputs.items():
        logger.info("Output %s=%s", name, value)
    if not path:
        return
    with open(path, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            f.write(f"{name}={value}\n")


async def backport(config: BackportConfig, context: ActionContext) -> BackportRun:
    pull_number = config.source_pr_number or context.pull_number
    if pull_number is None:
        raise ConfigurationError(
            "No pull request to backport: set source_pr_number or run on a pull_request event"
        )

    git = Git(config.pwd, config.git_committer_name, config.git_committer_email)
    async with AsyncGitHubClient.from_env() as github:
        return await Backport(github, git, config, context.owner, context.repo, context).run(
            pull_number
        )


def main() -> int:
    debug = os.environ.get("RUNNER_DEBUG") == "1"
    configure_logging(
        level=logging.DEBUG if debug else logging.INFO,
        http_level=logging.DEBUG if debug else logging.WARNING,
        format_string="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = BackportConfig.from_env()
        context = ActionContext.from_env()
        run = asyncio.run(backport(config, context))
    except ConfigurationError as e:
        logger.error("%s", e.message)
        return 1

    write_outputs(run)
    if run.error is not None:
        logger.error("Backport failed: %s", run.error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
