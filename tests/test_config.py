import tomllib
from pathlib import Path

import pytest

from commandrelay import __version__
from commandrelay.config import CommandConfig, RelayConfig, dumps_toml, load_config, save_config
from commandrelay.errors import ConfigError


def test_config_roundtrip(tmp_path: Path) -> None:
    config_path = tmp_path / "commandrelay.toml"
    config = RelayConfig.default()
    config.github.owner = "jakebailey"
    config.github.repo = "workflow-trigger-testing"
    config.poll.interval_seconds = 0.3
    config.poll.max_polls = 0
    config.bot.prefix = "@typescript-bot"
    config.commands.append(
        CommandConfig(
            name="deploy",
            pattern=r"deploy (?P<env>staging|production)$",
            workflow="deploy.yml",
            ref="release",
            inputs={"environment": "{env}", "requested-by": "{login}"},
            roles=["OWNER"],
            pull_request_only=True,
        )
    )

    save_config(config_path, config)
    loaded = load_config(config_path)

    assert loaded.github.owner == "jakebailey"
    assert loaded.github.timeout_seconds == 30.0
    assert loaded.poll.interval_seconds == 0.3
    assert loaded.poll.max_polls == 0
    assert loaded.bot.prefix == "@typescript-bot"
    assert [command.name for command in loaded.commands] == [
        "do something",
        "do something else",
        "do a pipeline",
        "deploy",
    ]
    deploy = loaded.commands[-1]
    assert deploy.pattern == r"deploy (?P<env>staging|production)$"
    assert deploy.inputs == {"environment": "{env}", "requested-by": "{login}"}
    assert deploy.roles == ["OWNER"]
    assert deploy.pull_request_only is True
    assert loaded.commands[2].kind == "pipeline"
    assert loaded.commands[2].pipeline_id == 123


def test_toml_dump_contains_sections_and_commands() -> None:
    rendered = dumps_toml(RelayConfig.default())

    assert "[github]" in rendered
    assert "[poll]" in rendered
    assert "interval_seconds = 5.0" in rendered
    assert rendered.count("[[commands]]") == 3
    tomllib.loads(rendered)


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.toml")

    assert config.bot.prefix == "@bot"
    assert config.poll.max_polls == 120


@pytest.mark.parametrize(
    "command",
    [
        {"name": "x", "pattern": "x", "kind": "shell", "workflow": "x.yml"},
        {"name": "x", "pattern": "(", "workflow": "x.yml"},
        {"name": "x", "pattern": "x"},
        {"name": "x", "pattern": "x", "kind": "pipeline", "project": "p"},
        {"name": "x", "pattern": "x", "workflow": "x.yml", "roles": []},
        {"name": "x", "pattern": "x", "workflow": "x.yml", "colour": "red"},
    ],
)
def test_invalid_commands_are_rejected(command: dict) -> None:
    with pytest.raises(ConfigError):
        RelayConfig.from_dict({"commands": [command]})


def test_unparseable_file_raises_config_error(tmp_path: Path) -> None:
    config_path = tmp_path / "commandrelay.toml"
    config_path.write_text("[github\nowner = ", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(config_path)


def test_package_version_constant_matches_pyproject() -> None:
    project_root = Path(__file__).resolve().parents[1]
    pyproject = tomllib.loads((project_root / "pyproject.toml").read_text(encoding="utf-8"))

    assert __version__ == pyproject["project"]["version"]


@pytest.mark.parametrize("interval", [0.0005, 2.5e-05, 12.0])
def test_poll_interval_survives_save_and_load(tmp_path: Path, interval: float) -> None:
    config_path = tmp_path / "commandrelay.toml"
    config = RelayConfig.default()
    config.poll.interval_seconds = interval

    save_config(config_path, config)

    assert load_config(config_path).poll.interval_seconds == interval
