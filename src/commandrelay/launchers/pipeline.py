from __future__ import annotations

import base64
import os
from typing import Any

import httpx

from commandrelay.errors import LaunchError
from commandrelay.launchers.base import LaunchContext, Launcher, render_templates
from commandrelay.runs import ResolvedRun, Run


class PipelineClient:
    """Azure DevOps Pipelines "Runs - Run Pipeline" caller."""

    def __init__(
        self,
        organization_url: str,
        *,
        token: str | None = None,
        api_version: str = "7.1",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.organization_url = organization_url.rstrip("/")
        self.api_version = api_version
        headers = {"Accept": "application/json"}
        if token:
            basic = base64.b64encode(f":{token}".encode()).decode("ascii")
            headers["Authorization"] = f"Basic {basic}"
        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    @classmethod
    def from_env(
        cls, organization_url: str, *, token_env: str = "AZURE_DEVOPS_TOKEN", **kwargs: Any
    ) -> PipelineClient:
        token = os.getenv(token_env, "").strip() or None
        return cls(organization_url, token=token, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def run_pipeline(
        self, project: str, pipeline_id: int, template_parameters: dict[str, str]
    ) -> str:
        url = f"{self.organization_url}/{project}/_apis/pipelines/{pipeline_id}/runs"
        body: dict[str, Any] = {}
        if template_parameters:
            body["templateParameters"] = template_parameters
        try:
            response = await self._client.post(
                url, params={"api-version": self.api_version}, json=body
            )
        except httpx.HTTPError as exc:
            raise LaunchError(f"Pipeline {project}/{pipeline_id} request failed: {exc}") from exc
        if response.status_code >= 400:
            raise LaunchError(
                f"Pipeline {project}/{pipeline_id} returned HTTP {response.status_code}: "
                f"{response.text[:300]}",
                status_code=response.status_code,
                retriable=response.status_code >= 500,
            )
        payload = response.json()
        links = payload.get("_links", {}) if isinstance(payload, dict) else {}
        web = links.get("web", {}) if isinstance(links, dict) else {}
        href = web.get("href") if isinstance(web, dict) else None
        if not isinstance(href, str) or not href:
            raise LaunchError(
                f"Pipeline {project}/{pipeline_id} response has no web link",
                retriable=False,
            )
        return href


class PipelineLauncher(Launcher):
    """Synchronous pipeline launch; the run is resolved as soon as it is queued."""

    name = "pipeline"

    def __init__(
        self,
        client: PipelineClient,
        project: str,
        pipeline_id: int,
        *,
        parameters: dict[str, str] | None = None,
    ) -> None:
        self.client = client
        self.project = project
        self.pipeline_id = pipeline_id
        self.parameters = dict(parameters or {})

    async def launch(self, context: LaunchContext) -> Run:
        parameters = render_templates(self.parameters, context)
        try:
            url = await self.client.run_pipeline(self.project, self.pipeline_id, parameters)
        except LaunchError as exc:
            exc.launcher = self.name
            raise
        return ResolvedRun(distinct_id=context.distinct_id, url=url)
