from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any

import httpx

from commandrelay.errors import GitHubAPIError

GITHUB_API_VERSION = "2022-11-28"


class GitHubClient:
    """Thin async wrapper over the GitHub REST endpoints the relay needs."""

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        token: str | None = None,
        api_url: str = "https://api.github.com",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        event_hook: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.event_hook = event_hook
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    @classmethod
    def from_env(
        cls,
        owner: str,
        repo: str,
        *,
        token_env: str = "GITHUB_TOKEN",
        **kwargs: Any,
    ) -> GitHubClient:
        token = os.getenv(token_env, "").strip() or None
        return cls(owner, repo, token=token, **kwargs)

    def _emit(self, event: dict[str, Any]) -> None:
        if self.event_hook is not None:
            self.event_hook(event)

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json_body)
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"GitHub {method} {path} failed: {exc}") from exc
        if response.status_code >= 400:
            self._emit(
                {
                    "event": "github_api_error",
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                }
            )
            raise GitHubAPIError(
                f"GitHub {method} {path} returned HTTP {response.status_code}: "
                f"{response.text[:300]}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            self._emit(
                {
                    "event": "github_api_error",
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                }
            )
            raise GitHubAPIError(
                f"GitHub {method} {path} returned a body that is not JSON: "
                f"{response.text[:300]}",
                status_code=response.status_code,
            ) from exc

    async def dispatch_workflow(
        self, workflow_id: str, ref: str, inputs: dict[str, str]
    ) -> None:
        await self.request(
            "POST",
            f"{self.repo_path}/actions/workflows/{workflow_id}/dispatches",
            json_body={"ref": ref, "inputs": inputs},
        )

    async def list_workflow_runs(self, created: str, *, event: str | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "created": created,
            "exclude_pull_requests": "true",
            "per_page": 100,
        }
        if event:
            params["event"] = event
        payload = await self.request("GET", f"{self.repo_path}/actions/runs", params=params)
        if not isinstance(payload, dict):
            return []
        runs = payload.get("workflow_runs", [])
        return [run for run in runs if isinstance(run, dict)] if isinstance(runs, list) else []

    async def create_issue_comment(self, issue_number: int, body: str) -> dict[str, Any]:
        payload = await self.request(
            "POST",
            f"{self.repo_path}/issues/{issue_number}/comments",
            json_body={"body": body},
        )
        if not isinstance(payload, dict) or "id" not in payload:
            raise GitHubAPIError("GitHub comment creation returned no comment id")
        return payload

    async def get_issue_comment(self, comment_id: int) -> dict[str, Any] | None:
        try:
            payload = await self.request("GET", f"{self.repo_path}/issues/comments/{comment_id}")
        except GitHubAPIError as exc:
            if exc.status_code == 404:
                return None
            raise
        return payload if isinstance(payload, dict) else None

    async def update_issue_comment(self, comment_id: int, body: str) -> None:
        await self.request(
            "PATCH",
            f"{self.repo_path}/issues/comments/{comment_id}",
            json_body={"body": body},
        )
