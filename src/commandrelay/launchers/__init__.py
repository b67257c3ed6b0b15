from commandrelay.launchers.base import LaunchContext, Launcher, Requester, render_templates
from commandrelay.launchers.pipeline import PipelineClient, PipelineLauncher
from commandrelay.launchers.workflow import WorkflowLauncher

__all__ = [
    "LaunchContext",
    "Launcher",
    "PipelineClient",
    "PipelineLauncher",
    "Requester",
    "WorkflowLauncher",
    "render_templates",
]
