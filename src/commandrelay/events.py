from __future__ import annotations

from typing import Any

from commandrelay.engine import TriggerComment
from commandrelay.errors import RelayError
from commandrelay.launchers.base import Requester

HANDLED_ACTIONS = {"created"}


class EventPayloadError(RelayError):
    """Raised when an issue_comment payload lacks required fields."""


def _require_dict(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key)
    if not isinstance(value, dict):
        raise EventPayloadError(f"issue_comment payload has no '{key}' object")
    return value


def parse_issue_comment_event(payload: dict[str, Any]) -> TriggerComment | None:
    """Build a trigger from a GitHub ``issue_comment`` webhook payload.

    Edits and deletions are ignored so one comment only triggers one episode.
    """
    if str(payload.get("action", "")).lower() not in HANDLED_ACTIONS:
        return None
    comment = _require_dict(payload, "comment")
    issue = _require_dict(payload, "issue")
    user = comment.get("user") if isinstance(comment.get("user"), dict) else {}

    try:
        issue_number = int(issue["number"])
        comment_id = int(comment["id"])
    except (KeyError, TypeError, ValueError) as exc:
        raise EventPayloadError(f"issue_comment payload has no usable ids: {exc}") from exc

    body = comment.get("body")
    return TriggerComment(
        issue_number=issue_number,
        comment_id=comment_id,
        body=body if isinstance(body, str) else "",
        requester=Requester(
            login=str(user.get("login", "")),
            role=str(comment.get("author_association", "NONE")).upper(),
            is_pull_request=isinstance(issue.get("pull_request"), dict),
        ),
    )
