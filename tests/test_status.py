import asyncio

import pytest

from commandrelay.errors import DocumentMissingError
from commandrelay.placeholders import result_marker, status_marker
from commandrelay.runs import ErrorRun, ResolvedRun, TimedOutRun, UnresolvedRun
from commandrelay.status import StatusDocumentManager, render_status

from fakes import MemoryDocumentStore


def _published(store: MemoryDocumentStore, manager: StatusDocumentManager) -> int:
    body = manager.render([("do something", "5-0"), ("do a pipeline", "5-1")])
    return asyncio.run(manager.publish(1, body))


def test_render_has_one_row_per_run_with_both_markers() -> None:
    manager = StatusDocumentManager(MemoryDocumentStore())

    body = manager.render([("do something", "5-0"), ("pipe | line", "5-1")])

    lines = body.splitlines()
    assert lines[0] == "Starting jobs..."
    assert lines[2] == "| Command | Status | Results |"
    assert lines[4] == f"| do something | {status_marker('5-0')} | {result_marker('5-0')} |"
    assert lines[5].startswith("| pipe \\| line |")
    assert len(lines) == 6


def test_publish_creates_the_document_once() -> None:
    store = MemoryDocumentStore()
    manager = StatusDocumentManager(store)

    document_id = _published(store, manager)

    assert store.created[0][0] == 1
    assert status_marker("5-0") in store.documents[document_id]


def test_reconcile_replaces_only_terminal_runs() -> None:
    store = MemoryDocumentStore()
    manager = StatusDocumentManager(store)
    document_id = _published(store, manager)

    wrote = asyncio.run(
        manager.reconcile(
            document_id,
            [UnresolvedRun("5-0"), ResolvedRun("5-1", url="https://ci/run/7")],
        )
    )

    body = store.documents[document_id]
    assert wrote is True
    assert status_marker("5-0") in body
    assert "[started](https://ci/run/7)" in body
    assert result_marker("5-1") in body


def test_reconcile_twice_without_changes_writes_once() -> None:
    store = MemoryDocumentStore()
    manager = StatusDocumentManager(store)
    document_id = _published(store, manager)
    runs = [ErrorRun("5-0", error="boom"), ResolvedRun("5-1", url="https://ci/run/7")]

    first = asyncio.run(manager.reconcile(document_id, runs))
    second = asyncio.run(manager.reconcile(document_id, runs))

    assert (first, second) == (True, False)
    assert len(store.updates) == 1


def test_reconcile_leaves_externally_edited_rows_alone() -> None:
    store = MemoryDocumentStore()
    manager = StatusDocumentManager(store)
    document_id = _published(store, manager)
    store.documents[document_id] = store.documents[document_id].replace(
        status_marker("5-0"), "cancelled by hand"
    )

    wrote = asyncio.run(manager.reconcile(document_id, [ResolvedRun("5-0", url="https://x")]))

    assert wrote is False
    assert "cancelled by hand" in store.documents[document_id]
    assert "https://x" not in store.documents[document_id]


def test_reconcile_requires_a_readable_document() -> None:
    store = MemoryDocumentStore()
    manager = StatusDocumentManager(store)

    with pytest.raises(DocumentMissingError):
        asyncio.run(manager.reconcile(404, [ResolvedRun("5-0", url="https://x")]))
    assert store.updates == []


def test_render_status_per_kind() -> None:
    assert render_status(UnresolvedRun("1-0")) is None
    assert render_status(ResolvedRun("1-0", url="https://x")) == "[started](https://x)"
    assert render_status(TimedOutRun("1-0", polls=4)) == "timed out after 4 polls"
    rendered = render_status(ErrorRun("1-0", error="bad\nthing | here"))
    assert rendered == "error: bad thing \\| here"


def test_long_errors_are_truncated() -> None:
    rendered = render_status(ErrorRun("1-0", error="x" * 1000))

    assert rendered is not None
    assert rendered.endswith("...")
    assert len(rendered) < 320
