import pytest

from commandrelay.errors import InvalidTransitionError
from commandrelay.runs import ErrorRun, ResolvedRun, RunTable, TimedOutRun, UnresolvedRun, run_to_dict


def test_transition_moves_unresolved_to_terminal_once() -> None:
    table = RunTable([UnresolvedRun("1-0"), ResolvedRun("1-1", url="https://x")])

    table.transition(0, ResolvedRun("1-0", url="https://run/1"))

    assert table[0] == ResolvedRun("1-0", url="https://run/1")
    assert not table.has_unresolved()
    with pytest.raises(InvalidTransitionError):
        table.transition(0, ErrorRun("1-0", error="late"))


def test_transition_never_returns_to_unresolved() -> None:
    table = RunTable([UnresolvedRun("1-0")])

    with pytest.raises(InvalidTransitionError):
        table.transition(0, UnresolvedRun("1-0"))


def test_transition_keeps_distinct_id() -> None:
    table = RunTable([UnresolvedRun("1-0")])

    with pytest.raises(InvalidTransitionError):
        table.transition(0, ResolvedRun("1-1", url="https://x"))


def test_duplicate_distinct_ids_are_rejected() -> None:
    with pytest.raises(InvalidTransitionError):
        RunTable([UnresolvedRun("1-0"), UnresolvedRun("1-0")])


def test_run_to_dict_only_carries_fields_of_its_kind() -> None:
    assert run_to_dict(UnresolvedRun("1-0")) == {"distinct_id": "1-0", "kind": "unresolved"}
    assert run_to_dict(ErrorRun("1-1", error="boom"))["error"] == "boom"
    assert run_to_dict(TimedOutRun("1-2", polls=3)) == {
        "distinct_id": "1-2",
        "kind": "timed_out",
        "polls": 3,
    }
