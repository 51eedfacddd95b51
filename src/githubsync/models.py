from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .diffing import extract_label_names
from .github_rest import format_timestamp, parse_timestamp


@dataclass
class Label:
    """A repository label as returned by ``/repos/{repo}/labels``."""

    name: str
    color: str
    description: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Label:
        return cls(
            name=str(raw.get("name") or ""),
            color=str(raw.get("color") or ""),
            description=raw.get("description"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "color": self.color, "description": self.description}


@dataclass
class Milestone:
    number: int
    title: str
    description: str | None = None
    due_on: datetime | None = None
    state: str = "open"
    open_issues: int = 0

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Milestone:
        return cls(
            number=int(raw.get("number") or 0),
            title=str(raw.get("title") or ""),
            description=raw.get("description"),
            due_on=parse_timestamp(raw.get("due_on")),
            state=str(raw.get("state") or "open"),
            open_issues=int(raw.get("open_issues") or 0),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "due_on": format_timestamp(self.due_on),
        }


@dataclass
class Issue:
    number: int
    title: str
    labels: set[str] = field(default_factory=set)
    milestone: Milestone | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Issue:
        milestone_raw = raw.get("milestone")
        return cls(
            number=int(raw.get("number") or 0),
            title=str(raw.get("title") or ""),
            labels=extract_label_names(raw),
            milestone=Milestone.from_api(milestone_raw) if isinstance(milestone_raw, dict) else None,
        )


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one change a reconciler attempted (or deliberately skipped).

    ``action`` is one of add, update, delete, skip, retain, close or label;
    ``kind`` is label, milestone or issue.
    """

    action: str
    kind: str
    name: str
    status: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is None or 200 <= self.status < 400


__all__ = ["ActionResult", "Issue", "Label", "Milestone"]
