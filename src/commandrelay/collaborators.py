from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class CandidateRun:
    display_name: str
    url: str


class DocumentStore(ABC):
    @abstractmethod
    async def create(self, thread_id: int, body: str) -> int:
        """Create the status document on a thread and return its id."""

    @abstractmethod
    async def read(self, document_id: int) -> str | None:
        """Return the current body, or None when the document is gone."""

    @abstractmethod
    async def update(self, document_id: int, body: str) -> None:
        """Replace the whole body."""


class RunLister(ABC):
    @abstractmethod
    async def list_runs(self, since: datetime) -> list[CandidateRun]:
        """Return external runs created at or after ``since``."""
