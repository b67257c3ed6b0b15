from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime
from typing import Any

from commandrelay.collaborators import CandidateRun, RunLister
from commandrelay.errors import DocumentMissingError, GitHubAPIError
from commandrelay.runs import ResolvedRun, RunTable, TimedOutRun
from commandrelay.status import StatusDocumentManager


def find_candidate(
    distinct_id: str,
    candidates: Iterable[CandidateRun],
    *,
    claimed: set[str] | None = None,
) -> CandidateRun | None:
    """First candidate whose display name contains ``distinct_id``.

    The id must not run on into another digit, so ``7-1`` never claims the run
    named for ``7-10``.
    """
    token = re.compile(rf"{re.escape(distinct_id)}(?!\d)")
    for candidate in candidates:
        if claimed and candidate.url in claimed:
            continue
        if token.search(candidate.display_name):
            return candidate
    return None


class ResolutionPoller:
    """Resolves unresolved runs by polling the run listing at a fixed interval.

    ``max_polls`` of 0 polls until every run is terminal; otherwise remaining
    runs become ``TimedOutRun`` once the bound is reached.
    """

    def __init__(
        self,
        lister: RunLister,
        status: StatusDocumentManager,
        *,
        interval_seconds: float = 5.0,
        max_polls: int = 120,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        event_hook: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.lister = lister
        self.status = status
        self.interval_seconds = max(0.0, float(interval_seconds))
        self.max_polls = max(0, int(max_polls))
        self.sleep = sleep
        self.event_hook = event_hook

    def _emit(self, event: dict[str, Any]) -> None:
        if self.event_hook is not None:
            self.event_hook(event)

    def resolve_tick(
        self,
        table: RunTable,
        candidates: list[CandidateRun],
        claimed: set[str],
    ) -> int:
        resolved = 0
        for index, run in table.unresolved():
            match = find_candidate(run.distinct_id, candidates, claimed=claimed)
            if match is None:
                continue
            claimed.add(match.url)
            table.transition(index, ResolvedRun(distinct_id=run.distinct_id, url=match.url))
            resolved += 1
            self._emit({"event": "run_resolved", "distinct_id": run.distinct_id, "url": match.url})
        return resolved

    async def reconcile(self, document_id: int, table: RunTable) -> bool:
        try:
            return await self.status.reconcile(document_id, table.snapshot())
        except (DocumentMissingError, GitHubAPIError) as exc:
            self._emit(
                {
                    "event": "reconcile_failed",
                    "document_id": document_id,
                    "error": str(exc),
                }
            )
            return False

    async def run(self, table: RunTable, document_id: int, since: datetime) -> int:
        """Poll until no run is unresolved; return the number of ticks."""
        claimed: set[str] = set()
        polls = 0
        while table.has_unresolved():
            if self.max_polls and polls >= self.max_polls:
                for index, run in table.unresolved():
                    table.transition(index, TimedOutRun(distinct_id=run.distinct_id, polls=polls))
                self._emit({"event": "poll_timed_out", "polls": polls})
                await self.reconcile(document_id, table)
                break

            await self.sleep(self.interval_seconds)
            polls += 1
            try:
                candidates = await self.lister.list_runs(since)
            except GitHubAPIError as exc:
                self._emit({"event": "poll_list_failed", "poll": polls, "error": str(exc)})
                continue

            resolved = self.resolve_tick(table, candidates, claimed)
            self._emit(
                {
                    "event": "poll_tick",
                    "poll": polls,
                    "candidates": len(candidates),
                    "resolved": resolved,
                    "remaining": len(table.unresolved()),
                }
            )
            await self.reconcile(document_id, table)
        return polls
