from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from commandrelay.collaborators import DocumentStore, RunLister
from commandrelay.commands import CommandRegistry, match_invocations
from commandrelay.config import RelayConfig
from commandrelay.dispatcher import DispatchSeed, dispatch, distinct_ids_for
from commandrelay.launchers.base import Requester
from commandrelay.poller import ResolutionPoller
from commandrelay.runs import Run, RunTable, run_to_dict
from commandrelay.status import StatusDocumentManager


def _utcnow_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


@dataclass(frozen=True, slots=True)
class TriggerComment:
    issue_number: int
    comment_id: int
    body: str
    requester: Requester


@dataclass(slots=True)
class EpisodeResult:
    comment_id: int
    status_document_id: int
    runs: list[Run]
    polls: int
    started_at: str
    ended_at: str
    elapsed_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "comment_id": self.comment_id,
            "status_document_id": self.status_document_id,
            "runs": [run_to_dict(run) for run in self.runs],
            "polls": self.polls,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "elapsed_seconds": self.elapsed_seconds,
        }


class RelayEngine:
    def __init__(
        self,
        config: RelayConfig,
        registry: CommandRegistry,
        store: DocumentStore,
        lister: RunLister,
        *,
        event_hook: Callable[[dict[str, Any]], None] | None = None,
        poller: ResolutionPoller | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.event_hook = event_hook
        self.status = StatusDocumentManager(
            store,
            header=config.bot.header,
            event_hook=event_hook,
        )
        self.poller = poller or ResolutionPoller(
            lister,
            self.status,
            interval_seconds=config.poll.interval_seconds,
            max_polls=config.poll.max_polls,
            event_hook=event_hook,
        )

    def _emit(self, event: dict[str, Any]) -> None:
        if self.event_hook is not None:
            self.event_hook(event)

    async def handle_comment(self, comment: TriggerComment) -> EpisodeResult | None:
        """Run one episode; None when the comment holds no authorized command."""
        invocations = match_invocations(
            comment.body,
            comment.requester,
            self.registry,
            prefix=self.config.bot.prefix,
        )
        if not invocations:
            self._emit(
                {
                    "event": "episode_no_match",
                    "comment_id": comment.comment_id,
                    "login": comment.requester.login,
                }
            )
            return None

        since = datetime.now(UTC)
        started_at = _utcnow_iso()
        clock = time.monotonic()

        distinct_ids = distinct_ids_for(comment.comment_id, len(invocations))
        body = self.status.render(
            (invocation.definition.name, distinct_id)
            for invocation, distinct_id in zip(invocations, distinct_ids, strict=True)
        )
        document_id = await self.status.publish(comment.issue_number, body)

        table: RunTable = await dispatch(
            invocations,
            DispatchSeed(
                issue_number=comment.issue_number,
                comment_id=comment.comment_id,
                requester=comment.requester,
                status_comment_id=document_id,
            ),
            event_hook=self.event_hook,
        )
        await self.poller.reconcile(document_id, table)
        polls = await self.poller.run(table, document_id, since)

        result = EpisodeResult(
            comment_id=comment.comment_id,
            status_document_id=document_id,
            runs=table.snapshot(),
            polls=polls,
            started_at=started_at,
            ended_at=_utcnow_iso(),
            elapsed_seconds=round(time.monotonic() - clock, 3),
        )
        self._emit(
            {
                "event": "episode_complete",
                "comment_id": comment.comment_id,
                "polls": polls,
                "elapsed_seconds": result.elapsed_seconds,
            }
        )
        return result
