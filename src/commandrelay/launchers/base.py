from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from commandrelay.runs import Run


@dataclass(frozen=True, slots=True)
class Requester:
    login: str
    role: str
    is_pull_request: bool = False


@dataclass(frozen=True, slots=True)
class LaunchContext:
    distinct_id: str
    issue_number: int
    comment_id: int
    status_comment_id: int | None
    requester: Requester
    line: str = ""
    args: tuple[str, ...] = ()
    named_args: dict[str, str] = field(default_factory=dict)

    def template_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "args": " ".join(arg for arg in self.args if arg),
            "line": self.line,
            "distinct_id": self.distinct_id,
            "issue_number": self.issue_number,
            "comment_id": self.comment_id,
            "status_comment_id": self.status_comment_id or "",
            "login": self.requester.login,
        }
        fields.update({key: value or "" for key, value in self.named_args.items()})
        return fields


class Launcher(ABC):
    name: str = "launcher"

    @abstractmethod
    async def launch(self, context: LaunchContext) -> Run:
        """Start one job and return its initial run state."""


def render_templates(templates: dict[str, str], context: LaunchContext) -> dict[str, str]:
    fields = context.template_fields()
    rendered: dict[str, str] = {}
    for key, template in templates.items():
        try:
            rendered[key] = str(template).format(**fields)
        except (KeyError, IndexError) as exc:
            raise ValueError(f"Unknown placeholder {exc} in template for '{key}'") from exc
    return rendered
