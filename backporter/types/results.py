"""Backport run results."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CherryPickResult:
    """Outcome of cherry-picking a range of commits.

    ``remaining`` is None when every commit applied cleanly. Otherwise it holds
    the commits that were not applied, starting with the one that conflicted
    and was committed with its conflict markers.
    """

    remaining: list[str] | None = None

    @property
    def clean(self) -> bool:
        return self.remaining is None


@dataclass(frozen=True)
class Success:
    """A backport pull request was created."""

    pull_number: int


@dataclass(frozen=True)
class SuccessWithConflict:
    """A draft backport pull request was created with unresolved conflicts."""

    pull_number: int
    remaining_shas: tuple[str, ...]


@dataclass(frozen=True)
class Failure:
    """The backport to a target failed."""

    reason: str


BackportResult = Success | SuccessWithConflict | Failure


@dataclass
class BackportRun:
    """Everything a single backport run produced."""

    results: dict[str, BackportResult] = field(default_factory=dict)
    created_pull_numbers: list[int] = field(default_factory=list)
    error: str | None = None

    @property
    def was_successful(self) -> bool:
        if self.error is not None:
            return False
        return all(not isinstance(result, Failure) for result in self.results.values())

    @property
    def was_successful_by_target(self) -> dict[str, bool]:
        return {
            target: not isinstance(result, Failure)
            for target, result in self.results.items()
        }

    def outputs(self) -> dict[str, str]:
        """
        Format the run as GitHub Actions step outputs.

        Returns:
            Mapping of output name to value
        """
        by_target = " ".join(
            f"{target}={str(ok).lower()}"
            for target, ok in self.was_successful_by_target.items()
        )
        return {
            "was_successful": str(self.was_successful).lower(),
            "was_successful_by_target": by_target,
            "created_pull_numbers": " ".join(str(n) for n in self.created_pull_numbers),
        }
