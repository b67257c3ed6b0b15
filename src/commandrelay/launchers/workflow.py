from __future__ import annotations

from commandrelay.errors import GitHubAPIError, LaunchError
from commandrelay.github.client import GitHubClient
from commandrelay.launchers.base import LaunchContext, Launcher, render_templates
from commandrelay.runs import Run, UnresolvedRun


class WorkflowLauncher(Launcher):
    """Fire-and-forget GitHub Actions workflow dispatch.

    The dispatched workflow is expected to put ``inputs.distinct_id`` in its
    ``run-name`` so the poller can find the run afterwards.
    """

    name = "workflow"

    def __init__(
        self,
        client: GitHubClient,
        workflow_id: str,
        *,
        ref: str = "main",
        inputs: dict[str, str] | None = None,
    ) -> None:
        self.client = client
        self.workflow_id = workflow_id
        self.ref = ref
        self.inputs = dict(inputs or {})

    def build_inputs(self, context: LaunchContext) -> dict[str, str]:
        rendered = render_templates(self.inputs, context)
        rendered["distinct_id"] = context.distinct_id
        return rendered

    async def launch(self, context: LaunchContext) -> Run:
        inputs = self.build_inputs(context)
        try:
            await self.client.dispatch_workflow(self.workflow_id, self.ref, inputs)
        except GitHubAPIError as exc:
            raise LaunchError(
                f"Could not dispatch {self.workflow_id}: {exc}",
                launcher=self.name,
                status_code=exc.status_code,
            ) from exc
        return UnresolvedRun(distinct_id=context.distinct_id)
