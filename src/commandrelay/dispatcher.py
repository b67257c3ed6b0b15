from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from commandrelay.commands import Invocation
from commandrelay.launchers.base import LaunchContext, Requester
from commandrelay.runs import ErrorRun, Run, RunTable, UnresolvedRun

EventHook = Callable[[dict[str, Any]], None]


@dataclass(frozen=True, slots=True)
class DispatchSeed:
    issue_number: int
    comment_id: int
    requester: Requester
    status_comment_id: int | None = None


def distinct_ids_for(seed: int | str, count: int) -> list[str]:
    return [f"{seed}-{ordinal}" for ordinal in range(count)]


def describe_failure(exc: BaseException) -> str:
    message = str(exc).strip()
    if not message:
        return type(exc).__name__
    return message


async def _invoke(
    invocation: Invocation,
    context: LaunchContext,
    event_hook: EventHook | None,
) -> Run:
    try:
        run = await invocation.definition.handler.launch(context)
    except Exception as exc:
        if event_hook is not None:
            event_hook(
                {
                    "event": "dispatch_failed",
                    "command": invocation.definition.name,
                    "distinct_id": context.distinct_id,
                    "error": describe_failure(exc),
                    "error_type": type(exc).__name__,
                }
            )
        return ErrorRun(distinct_id=context.distinct_id, error=describe_failure(exc))
    if run.distinct_id != context.distinct_id:
        return ErrorRun(
            distinct_id=context.distinct_id,
            error=f"launcher returned run for {run.distinct_id}",
        )
    return run


async def dispatch(
    invocations: list[Invocation],
    seed: DispatchSeed,
    *,
    event_hook: EventHook | None = None,
) -> RunTable:
    """Launch every invocation concurrently.

    Slot ``i`` of the returned table always belongs to ``invocations[i]``;
    a failing handler only turns its own slot into an ``ErrorRun``.
    """
    distinct_ids = distinct_ids_for(seed.comment_id, len(invocations))
    if event_hook is not None:
        event_hook(
            {
                "event": "dispatch_start",
                "count": len(invocations),
                "distinct_ids": distinct_ids,
            }
        )
    contexts = [
        LaunchContext(
            distinct_id=distinct_id,
            issue_number=seed.issue_number,
            comment_id=seed.comment_id,
            status_comment_id=seed.status_comment_id,
            requester=seed.requester,
            line=invocation.line,
            args=invocation.args,
            named_args=dict(invocation.named_args),
        )
        for invocation, distinct_id in zip(invocations, distinct_ids, strict=True)
    ]
    runs = await asyncio.gather(
        *(
            _invoke(invocation, context, event_hook)
            for invocation, context in zip(invocations, contexts, strict=True)
        )
    )
    table = RunTable(list(runs))
    if event_hook is not None:
        event_hook(
            {
                "event": "dispatch_complete",
                "unresolved": sum(1 for run in table if isinstance(run, UnresolvedRun)),
                "runs": table.to_list(),
            }
        )
    return table
