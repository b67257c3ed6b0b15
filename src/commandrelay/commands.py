from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from commandrelay.launchers.base import Launcher, Requester

DEFAULT_PREFIX = "@bot"
TRUSTED_ROLES = frozenset({"OWNER", "MEMBER", "COLLABORATOR"})


def is_authorized(
    allowed_roles: Iterable[str], pull_request_only: bool, requester: Requester
) -> bool:
    if requester.role.upper() not in {role.upper() for role in allowed_roles}:
        return False
    if pull_request_only and not requester.is_pull_request:
        return False
    return True


@dataclass(frozen=True, slots=True)
class CommandDefinition:
    name: str
    pattern: re.Pattern[str]
    handler: Launcher
    allowed_roles: frozenset[str] = TRUSTED_ROLES
    pull_request_only: bool = False

    def authorizes(self, requester: Requester) -> bool:
        return is_authorized(self.allowed_roles, self.pull_request_only, requester)


@dataclass(frozen=True, slots=True)
class Invocation:
    line: str
    definition: CommandDefinition
    args: tuple[str, ...] = ()
    named_args: dict[str, str] = field(default_factory=dict)


class CommandRegistry:
    """Ordered, append-only set of command definitions."""

    def __init__(self, definitions: Iterable[CommandDefinition] = ()) -> None:
        self._definitions: list[CommandDefinition] = []
        for definition in definitions:
            self.add(definition)

    def add(self, definition: CommandDefinition) -> None:
        if any(item.name == definition.name for item in self._definitions):
            raise ValueError(f"Duplicate command name: {definition.name}")
        self._definitions.append(definition)

    def __iter__(self) -> Iterator[CommandDefinition]:
        return iter(list(self._definitions))

    def __len__(self) -> int:
        return len(self._definitions)

    def visible_to(self, requester: Requester) -> list[CommandDefinition]:
        return [item for item in self._definitions if item.authorizes(requester)]


def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def strip_prefix(raw_line: str, prefix: str = DEFAULT_PREFIX) -> str | None:
    line = raw_line.strip()
    if line[: len(prefix)].lower() != prefix.lower():
        return None
    rest = line[len(prefix) :]
    if rest and not rest[0].isspace():
        return None
    return rest.strip()


def match_invocations(
    body: str,
    requester: Requester,
    registry: CommandRegistry,
    *,
    prefix: str = DEFAULT_PREFIX,
) -> list[Invocation]:
    allowed = registry.visible_to(requester)
    if not allowed:
        return []

    invocations: list[Invocation] = []
    for raw_line in body.splitlines():
        line = strip_prefix(raw_line, prefix)
        if not line:
            continue
        for definition in allowed:
            match = definition.pattern.match(line)
            if match is None:
                continue
            invocations.append(
                Invocation(
                    line=line,
                    definition=definition,
                    args=tuple(value or "" for value in match.groups()),
                    named_args={
                        key: value or "" for key, value in match.groupdict().items()
                    },
                )
            )
    return invocations
