from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Literal

from commandrelay.errors import InvalidTransitionError

RunKind = Literal["unresolved", "resolved", "error", "timed_out"]


@dataclass(frozen=True, slots=True)
class UnresolvedRun:
    distinct_id: str
    kind: RunKind = field(default="unresolved", init=False)


@dataclass(frozen=True, slots=True)
class ResolvedRun:
    distinct_id: str
    url: str
    kind: RunKind = field(default="resolved", init=False)


@dataclass(frozen=True, slots=True)
class ErrorRun:
    distinct_id: str
    error: str
    kind: RunKind = field(default="error", init=False)


@dataclass(frozen=True, slots=True)
class TimedOutRun:
    distinct_id: str
    polls: int
    kind: RunKind = field(default="timed_out", init=False)


Run = UnresolvedRun | ResolvedRun | ErrorRun | TimedOutRun


def is_terminal(run: Run) -> bool:
    return not isinstance(run, UnresolvedRun)


def run_to_dict(run: Run) -> dict[str, object]:
    payload: dict[str, object] = {"distinct_id": run.distinct_id, "kind": run.kind}
    if isinstance(run, ResolvedRun):
        payload["url"] = run.url
    elif isinstance(run, ErrorRun):
        payload["error"] = run.error
    elif isinstance(run, TimedOutRun):
        payload["polls"] = run.polls
    return payload


class RunTable:
    """Runs of one episode, slot ``i`` belonging to invocation ``i``."""

    def __init__(self, runs: list[Run]) -> None:
        ids = [run.distinct_id for run in runs]
        if len(set(ids)) != len(ids):
            raise InvalidTransitionError(f"Duplicate distinct ids in run table: {ids}")
        self._runs = list(runs)

    def __len__(self) -> int:
        return len(self._runs)

    def __iter__(self) -> Iterator[Run]:
        return iter(list(self._runs))

    def __getitem__(self, index: int) -> Run:
        return self._runs[index]

    def snapshot(self) -> list[Run]:
        return list(self._runs)

    def unresolved(self) -> list[tuple[int, UnresolvedRun]]:
        return [
            (index, run) for index, run in enumerate(self._runs) if isinstance(run, UnresolvedRun)
        ]

    def has_unresolved(self) -> bool:
        return any(isinstance(run, UnresolvedRun) for run in self._runs)

    def transition(self, index: int, run: Run) -> None:
        current = self._runs[index]
        if is_terminal(current):
            raise InvalidTransitionError(
                f"Run {current.distinct_id} is already {current.kind}; cannot become {run.kind}"
            )
        if not is_terminal(run):
            raise InvalidTransitionError(f"Run {current.distinct_id} can only move to a terminal kind")
        if run.distinct_id != current.distinct_id:
            raise InvalidTransitionError(
                f"Distinct id of slot {index} is {current.distinct_id}, not {run.distinct_id}"
            )
        self._runs[index] = run

    def to_list(self) -> list[dict[str, object]]:
        return [run_to_dict(run) for run in self._runs]
