from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from commandrelay.collaborators import DocumentStore
from commandrelay.errors import DocumentMissingError
from commandrelay.placeholders import replace_marker, result_marker, status_marker
from commandrelay.runs import ErrorRun, ResolvedRun, Run, TimedOutRun

DEFAULT_HEADER = "Starting jobs..."
MAX_ERROR_LENGTH = 300


def _table_cell(text: str) -> str:
    flattened = " ".join(str(text).split())
    return flattened.replace("|", "\\|")


def render_status(run: Run) -> str | None:
    if isinstance(run, ResolvedRun):
        return f"[started]({run.url})"
    if isinstance(run, ErrorRun):
        message = _table_cell(run.error)
        if len(message) > MAX_ERROR_LENGTH:
            message = message[: MAX_ERROR_LENGTH - 3].rstrip() + "..."
        return f"error: {message}"
    if isinstance(run, TimedOutRun):
        return f"timed out after {run.polls} polls"
    return None


class StatusDocumentManager:
    def __init__(
        self,
        store: DocumentStore,
        *,
        header: str = DEFAULT_HEADER,
        event_hook: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.store = store
        self.header = header
        self.event_hook = event_hook

    def _emit(self, event: dict[str, Any]) -> None:
        if self.event_hook is not None:
            self.event_hook(event)

    def render(self, rows: Iterable[tuple[str, str]]) -> str:
        """Render the initial document from ``(display_name, distinct_id)`` rows."""
        lines = [
            self.header,
            "",
            "| Command | Status | Results |",
            "| ------- | ------ | ------- |",
        ]
        for display_name, distinct_id in rows:
            lines.append(
                f"| {_table_cell(display_name)} | {status_marker(distinct_id)} "
                f"| {result_marker(distinct_id)} |"
            )
        return "\n".join(lines).strip()

    async def publish(self, thread_id: int, body: str) -> int:
        document_id = await self.store.create(thread_id, body)
        self._emit({"event": "status_published", "thread_id": thread_id, "document_id": document_id})
        return document_id

    @staticmethod
    def apply(body: str, runs: Iterable[Run]) -> str:
        updated = body
        for run in runs:
            replacement = render_status(run)
            if replacement is None:
                continue
            updated = replace_marker(updated, status_marker(run.distinct_id), replacement)
        return updated

    async def reconcile(self, document_id: int, runs: Iterable[Run]) -> bool:
        """Write terminal runs into the live document.

        Returns True when an update was sent; an unchanged body is not written.
        """
        body = await self.store.read(document_id)
        if not body:
            raise DocumentMissingError(f"Status document {document_id} is missing or empty")
        updated = self.apply(body, runs)
        if updated == body:
            self._emit({"event": "reconcile_skipped", "document_id": document_id})
            return False
        await self.store.update(document_id, updated)
        self._emit({"event": "reconcile_written", "document_id": document_id})
        return True
