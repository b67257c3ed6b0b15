from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from commandrelay.errors import ConfigError

CommandKind = Literal["workflow", "pipeline"]
COMMAND_KINDS = ("workflow", "pipeline")
BARE_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(slots=True)
class GitHubConfig:
    owner: str = "my-org"
    repo: str = "my-repo"
    api_url: str = "https://api.github.com"
    token_env: str = "GITHUB_TOKEN"
    ref: str = "main"
    timeout_seconds: float = 30.0


@dataclass(slots=True)
class BotConfig:
    prefix: str = "@bot"
    header: str = "Starting jobs..."


@dataclass(slots=True)
class PollConfig:
    interval_seconds: float = 5.0
    max_polls: int = 120


@dataclass(slots=True)
class PipelinesConfig:
    organization_url: str = "https://dev.azure.com/my-org"
    token_env: str = "AZURE_DEVOPS_TOKEN"
    api_version: str = "7.1"


@dataclass(slots=True)
class CommandConfig:
    name: str
    pattern: str
    kind: CommandKind = "workflow"
    workflow: str = ""
    ref: str = ""
    inputs: dict[str, str] = field(default_factory=dict)
    project: str = ""
    pipeline_id: int = 0
    parameters: dict[str, str] = field(default_factory=dict)
    roles: list[str] = field(default_factory=lambda: ["OWNER", "MEMBER", "COLLABORATOR"])
    pull_request_only: bool = False

    def validate(self) -> None:
        if not self.name.strip():
            raise ConfigError("Command name must not be empty")
        if self.kind not in COMMAND_KINDS:
            raise ConfigError(f"Command '{self.name}' has unknown kind '{self.kind}'")
        try:
            re.compile(self.pattern)
        except re.error as exc:
            raise ConfigError(f"Command '{self.name}' has an invalid pattern: {exc}") from exc
        if self.kind == "workflow" and not self.workflow.strip():
            raise ConfigError(f"Workflow command '{self.name}' needs a workflow file or id")
        if self.kind == "pipeline" and (not self.project.strip() or self.pipeline_id <= 0):
            raise ConfigError(f"Pipeline command '{self.name}' needs a project and pipeline_id")
        if not self.roles:
            raise ConfigError(f"Command '{self.name}' allows no roles")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "pattern": self.pattern,
            "kind": self.kind,
        }
        if self.kind == "workflow":
            payload["workflow"] = self.workflow
            if self.ref:
                payload["ref"] = self.ref
            payload["inputs"] = dict(self.inputs)
        else:
            payload["project"] = self.project
            payload["pipeline_id"] = self.pipeline_id
            payload["parameters"] = dict(self.parameters)
        payload["roles"] = list(self.roles)
        payload["pull_request_only"] = self.pull_request_only
        return payload


def _default_commands() -> list[CommandConfig]:
    return [
        CommandConfig(
            name="do something",
            pattern=r"do something(?:\s+(?P<detail>.+))?$",
            workflow="do-something.yml",
            inputs={"arg": "{args}"},
        ),
        CommandConfig(
            name="do something else",
            pattern=r"do something else$",
            workflow="do-something-else.yml",
            inputs={"arg": "requested by {login}"},
        ),
        CommandConfig(
            name="do a pipeline",
            pattern=r"do a pipeline$",
            kind="pipeline",
            project="my-project",
            pipeline_id=123,
            pull_request_only=True,
        ),
    ]


@dataclass(slots=True)
class RelayConfig:
    github: GitHubConfig = field(default_factory=GitHubConfig)
    bot: BotConfig = field(default_factory=BotConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    pipelines: PipelinesConfig = field(default_factory=PipelinesConfig)
    commands: list[CommandConfig] = field(default_factory=_default_commands)

    @classmethod
    def default(cls) -> RelayConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> RelayConfig:
        try:
            config = cls(
                github=GitHubConfig(**data.get("github", {})),
                bot=BotConfig(**data.get("bot", {})),
                poll=PollConfig(**data.get("poll", {})),
                pipelines=PipelinesConfig(**data.get("pipelines", {})),
                commands=[CommandConfig(**item) for item in data.get("commands", [])],
            )
        except TypeError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
        for command in config.commands:
            command.validate()
        return config

    def to_dict(self) -> dict:
        return {
            "github": {
                "owner": self.github.owner,
                "repo": self.github.repo,
                "api_url": self.github.api_url,
                "token_env": self.github.token_env,
                "ref": self.github.ref,
                "timeout_seconds": self.github.timeout_seconds,
            },
            "bot": {
                "prefix": self.bot.prefix,
                "header": self.bot.header,
            },
            "poll": {
                "interval_seconds": self.poll.interval_seconds,
                "max_polls": self.poll.max_polls,
            },
            "pipelines": {
                "organization_url": self.pipelines.organization_url,
                "token_env": self.pipelines.token_env,
                "api_version": self.pipelines.api_version,
            },
            "commands": [command.to_dict() for command in self.commands],
        }


def _toml_key(key: str) -> str:
    return key if BARE_KEY_PATTERN.match(key) else json.dumps(key, ensure_ascii=False)


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = ", ".join(f"{_toml_key(str(k))} = {_toml_value(v)}" for k, v in value.items())
        return "{ " + items + " }"
    return json.dumps(str(value), ensure_ascii=False)


def dumps_toml(config: RelayConfig) -> str:
    data = config.to_dict()
    lines: list[str] = []
    section_order = ["github", "bot", "poll", "pipelines"]
    for section in section_order:
        lines.append(f"[{section}]")
        for key, value in data[section].items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")
    for command in data["commands"]:
        lines.append("[[commands]]")
        for key, value in command.items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def load_config(path: Path) -> RelayConfig:
    if not path.exists():
        return RelayConfig.default()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc
    return RelayConfig.from_dict(data)


def save_config(path: Path, config: RelayConfig) -> None:
    path.write_text(dumps_toml(config), encoding="utf-8")
