from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import click

from commandrelay.commands import (
    CommandDefinition,
    CommandRegistry,
    compile_pattern,
    is_authorized,
)
from commandrelay.config import RelayConfig, load_config, save_config
from commandrelay.engine import EpisodeResult, RelayEngine, TriggerComment
from commandrelay.errors import ConfigError, RelayError
from commandrelay.events import parse_issue_comment_event
from commandrelay.github import GitHubClient, IssueCommentStore, WorkflowRunLister
from commandrelay.launchers import (
    Launcher,
    PipelineClient,
    PipelineLauncher,
    Requester,
    WorkflowLauncher,
)

EventHook = Callable[[dict[str, Any]], None]
ROLE_CHOICES = ["OWNER", "MEMBER", "COLLABORATOR", "CONTRIBUTOR", "NONE"]


async def _close_all(closers: list[Callable[[], Awaitable[None]]]) -> None:
    for close in closers:
        await close()


@dataclass(slots=True)
class Runtime:
    config_path: Path
    config: RelayConfig
    registry: CommandRegistry
    engine: RelayEngine
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    async def aclose(self) -> None:
        await _close_all(self.closers)


def _resolve_config_path(config_value: str) -> Path:
    config_path = Path(config_value)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config_path
    return config_path.resolve()


def _event_printer(quiet: bool) -> EventHook | None:
    if quiet:
        return None

    def _print(event: dict[str, Any]) -> None:
        payload = dict(event)
        payload["at"] = datetime.now(UTC).replace(microsecond=0).isoformat()
        click.echo(json.dumps(payload, ensure_ascii=False, sort_keys=True), err=True)

    return _print


def build_registry(
    config: RelayConfig,
    github: GitHubClient,
    pipelines: PipelineClient | None = None,
) -> CommandRegistry:
    registry = CommandRegistry()
    for command in config.commands:
        command.validate()
        handler: Launcher
        if command.kind == "workflow":
            handler = WorkflowLauncher(
                github,
                command.workflow,
                ref=command.ref or config.github.ref,
                inputs=command.inputs,
            )
        else:
            if pipelines is None:
                raise ConfigError(f"Pipeline command '{command.name}' needs a pipeline client")
            handler = PipelineLauncher(
                pipelines,
                command.project,
                command.pipeline_id,
                parameters=command.parameters,
            )
        try:
            registry.add(
                CommandDefinition(
                    name=command.name,
                    pattern=compile_pattern(command.pattern),
                    handler=handler,
                    allowed_roles=frozenset(role.upper() for role in command.roles),
                    pull_request_only=command.pull_request_only,
                )
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
    return registry


def _load_runtime(config_path: Path, event_hook: EventHook | None) -> Runtime:
    config = load_config(config_path)
    github = GitHubClient.from_env(
        config.github.owner,
        config.github.repo,
        token_env=config.github.token_env,
        api_url=config.github.api_url,
        timeout_seconds=config.github.timeout_seconds,
        event_hook=event_hook,
    )
    closers: list[Callable[[], Awaitable[None]]] = [github.aclose]
    pipelines = None
    if any(command.kind == "pipeline" for command in config.commands):
        pipelines = PipelineClient.from_env(
            config.pipelines.organization_url,
            token_env=config.pipelines.token_env,
            api_version=config.pipelines.api_version,
        )
        closers.append(pipelines.aclose)
    try:
        registry = build_registry(config, github, pipelines)
    except ConfigError:
        asyncio.run(_close_all(closers))
        raise
    engine = RelayEngine(
        config,
        registry,
        IssueCommentStore(github),
        WorkflowRunLister(github),
        event_hook=event_hook,
    )
    return Runtime(
        config_path=config_path,
        config=config,
        registry=registry,
        engine=engine,
        closers=closers,
    )


async def _run_episode(runtime: Runtime, trigger: TriggerComment) -> EpisodeResult | None:
    try:
        return await runtime.engine.handle_comment(trigger)
    finally:
        await runtime.aclose()


def _handle(runtime: Runtime, trigger: TriggerComment) -> None:
    try:
        result = asyncio.run(_run_episode(runtime, trigger))
    except RelayError as exc:
        raise click.ClickException(str(exc)) from exc

    if result is None:
        click.echo("No authorized commands found.")
        return
    click.echo(f"Status comment: {result.status_document_id}")
    click.echo(f"Polls: {result.polls}")
    for run in result.runs:
        detail = getattr(run, "url", None) or getattr(run, "error", None) or ""
        click.echo(f"{run.distinct_id} {run.kind:<10} {detail}".rstrip())


@click.group()
def cli() -> None:
    """Comment-triggered job relay."""


@cli.command("init")
@click.option("--config", "config_value", default="commandrelay.toml", show_default=True)
@click.option("--owner", default=None)
@click.option("--repo", default=None)
def init_command(config_value: str, owner: str | None, repo: str | None) -> None:
    config_path = _resolve_config_path(config_value)
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if owner:
        config.github.owner = owner
    if repo:
        config.github.repo = repo
    save_config(config_path, config)
    click.echo(f"Config: {config_path}")
    click.echo(f"Repository: {config.github.owner}/{config.github.repo}")
    click.echo(f"Commands: {len(config.commands)}")


@cli.command("commands")
@click.option("--role", type=click.Choice(ROLE_CHOICES, case_sensitive=False), default=None)
@click.option("--pull-request", is_flag=True, default=False)
@click.option("--config", "config_value", default="commandrelay.toml", show_default=True)
def commands_command(role: str | None, pull_request: bool, config_value: str) -> None:
    try:
        config = load_config(_resolve_config_path(config_value))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    requester = Requester(login="", role=role or "", is_pull_request=pull_request)
    shown = 0
    for command in config.commands:
        if role and not is_authorized(command.roles, command.pull_request_only, requester):
            continue
        target = command.workflow if command.kind == "workflow" else (
            f"{command.project}/{command.pipeline_id}"
        )
        click.echo(f"{command.name:<24} {command.kind:<8} {target}  /{command.pattern}/")
        shown += 1
    if not shown:
        click.echo("No commands available.")


@cli.command("handle")
@click.argument("body")
@click.option("--issue", "issue_number", type=int, required=True)
@click.option("--comment-id", type=int, required=True)
@click.option("--login", default="", show_default=False)
@click.option("--role", type=click.Choice(ROLE_CHOICES, case_sensitive=False), default="NONE")
@click.option("--pull-request", is_flag=True, default=False)
@click.option("--quiet", is_flag=True, default=False)
@click.option("--config", "config_value", default="commandrelay.toml", show_default=True)
def handle_command(
    body: str,
    issue_number: int,
    comment_id: int,
    login: str,
    role: str,
    pull_request: bool,
    quiet: bool,
    config_value: str,
) -> None:
    if body == "-":
        body = click.get_text_stream("stdin").read()
    try:
        runtime = _load_runtime(_resolve_config_path(config_value), _event_printer(quiet))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    trigger = TriggerComment(
        issue_number=issue_number,
        comment_id=comment_id,
        body=body,
        requester=Requester(login=login, role=role.upper(), is_pull_request=pull_request),
    )
    _handle(runtime, trigger)


@cli.command("event")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--quiet", is_flag=True, default=False)
@click.option("--config", "config_value", default="commandrelay.toml", show_default=True)
def event_command(payload_file: Path, quiet: bool, config_value: str) -> None:
    try:
        payload = json.loads(payload_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid JSON in {payload_file}: {exc}") from exc
    if not isinstance(payload, dict):
        raise click.ClickException(f"{payload_file} does not hold a JSON object")
    try:
        trigger = parse_issue_comment_event(payload)
    except RelayError as exc:
        raise click.ClickException(str(exc)) from exc
    if trigger is None:
        click.echo(f"Ignoring '{payload.get('action')}' action.")
        return
    try:
        runtime = _load_runtime(_resolve_config_path(config_value), _event_printer(quiet))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    _handle(runtime, trigger)
