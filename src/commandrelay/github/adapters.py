from __future__ import annotations

from datetime import UTC, datetime

from commandrelay.collaborators import CandidateRun, DocumentStore, RunLister
from commandrelay.github.client import GitHubClient


def github_created_filter(since: datetime) -> str:
    if since.tzinfo is None:
        since = since.replace(tzinfo=UTC)
    stamp = since.astimezone(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return f">={stamp}"


class IssueCommentStore(DocumentStore):
    """Status documents stored as issue comments."""

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    async def create(self, thread_id: int, body: str) -> int:
        payload = await self.client.create_issue_comment(thread_id, body)
        return int(payload["id"])

    async def read(self, document_id: int) -> str | None:
        payload = await self.client.get_issue_comment(document_id)
        if payload is None:
            return None
        body = payload.get("body")
        return body if isinstance(body, str) else None

    async def update(self, document_id: int, body: str) -> None:
        await self.client.update_issue_comment(document_id, body)


class WorkflowRunLister(RunLister):
    """Lists workflow-dispatch runs; other trigger types are filtered by the API."""

    def __init__(self, client: GitHubClient, *, event: str | None = "workflow_dispatch") -> None:
        self.client = client
        self.event = event

    async def list_runs(self, since: datetime) -> list[CandidateRun]:
        runs = await self.client.list_workflow_runs(github_created_filter(since), event=self.event)
        candidates: list[CandidateRun] = []
        for run in runs:
            name = run.get("display_title") or run.get("name") or ""
            url = run.get("html_url")
            if isinstance(name, str) and isinstance(url, str) and url:
                candidates.append(CandidateRun(display_name=name, url=url))
        return candidates
