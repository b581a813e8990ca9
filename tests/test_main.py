"""Tests for the GitHub Actions entrypoint."""

import asyncio

import pytest

from backporter import __main__ as entrypoint
from backporter.config import ActionContext, BackportConfig
from backporter.exceptions import ConfigurationError
from backporter.types.results import BackportRun, Failure, Success


def test_write_outputs(tmp_path) -> None:
    output = tmp_path / "github_output"
    output.write_text("existing=1\n", encoding="utf-8")
    run = BackportRun(
        results={"release-1": Success(1000), "release-2": Failure("couldn't find remote ref release-2")},
        created_pull_numbers=[1000],
    )

    entrypoint.write_outputs(run, str(output))

    assert output.read_text(encoding="utf-8") == (
        "existing=1\n"
        "was_successful=false\n"
        "was_successful_by_target=release-1=true release-2=false\n"
        "created_pull_numbers=1000\n"
    )


def test_write_outputs_uses_github_output(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    output = tmp_path / "github_output"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output))

    entrypoint.write_outputs(BackportRun())

    assert output.read_text(encoding="utf-8") == (
        "was_successful=true\nwas_successful_by_target=\ncreated_pull_numbers=\n"
    )


def test_write_outputs_without_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)

    entrypoint.write_outputs(BackportRun())


def test_backport_needs_a_pull_request() -> None:
    with pytest.raises(ConfigurationError):
        asyncio.run(entrypoint.backport(BackportConfig(), ActionContext(owner="owner", repo="repo")))


def test_main_reports_configuration_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
    monkeypatch.setattr(entrypoint, "configure_logging", lambda **kwargs: None)

    assert entrypoint.main() == 1
