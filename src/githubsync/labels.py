"""Label reconciliation.

Labels are identified by their lowercased name. ``diff_labels`` classifies
the two keyed collections into additions, updates (any exact-case difference
in ``name``, ``color`` or ``description``) and deletion candidates;
``LabelReconciler.apply`` turns that diff into write calls against the
destination repository. Writes are best effort: a failed item is logged and
the remaining items still run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import quote

from .diffing import changed_fields
from .errors import ConfigurationError
from .github_rest import GitHubRestClient, decode_body, is_success
from .keyed import build_keyed
from .logging import StructuredLogger, get_logger
from .models import ActionResult, Label

LABEL_FIELDS = ("name", "color", "description")


class DeleteMode(str, Enum):
    OFF = "off"
    FORCE = "force"
    PRUNE = "prune"

    @classmethod
    def parse(cls, value: Any) -> DeleteMode:
        """Accept CLI/config spellings: booleans, ``None`` and the mode names."""
        if isinstance(value, DeleteMode):
            return value
        if value is None or value is False or value == "":
            return cls.OFF
        if value is True:
            return cls.FORCE
        text = str(value).strip().lower()
        if text in {"off", "false", "no", "none"}:
            return cls.OFF
        if text in {"force", "delete", "true", "yes"}:
            return cls.FORCE
        if text == "prune":
            return cls.PRUNE
        raise ConfigurationError(f"Invalid delete mode {value!r}; expected off, force or prune")


@dataclass
class LabelUpdate:
    current: Label
    desired: Label
    changes: list[str]


@dataclass
class LabelDiff:
    to_add: list[Label] = field(default_factory=list)
    to_update: list[LabelUpdate] = field(default_factory=list)
    to_delete: list[Label] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        """True when nothing needs adding or updating (deletions are opt-in)."""
        return not self.to_add and not self.to_update


def diff_labels(source: Mapping[str, Label], dest: Mapping[str, Label]) -> LabelDiff:
    """Compare two keyed label collections (source -> destination)."""
    diff = LabelDiff()
    diff.to_add = [label for key, label in source.items() if key not in dest]
    for key, current in dest.items():
        desired = source.get(key)
        if desired is None:
            diff.to_delete.append(current)
            continue
        changes = changed_fields(current, desired, LABEL_FIELDS)
        if changes:
            diff.to_update.append(LabelUpdate(current=current, desired=desired, changes=changes))
    return diff


def label_path(repo: str, name: str | None = None) -> str:
    base = f"/repos/{repo}/labels"
    return base if name is None else f"{base}/{quote(name, safe='')}"


def fetch_labels(client: GitHubRestClient, repo: str) -> dict[str, Label]:
    records = client.paginate(label_path(repo), params={"per_page": client.config.per_page})
    return build_keyed((Label.from_api(r) for r in records), "name")


class LabelReconciler:
    """Applies a :class:`LabelDiff` to the destination repository."""

    def __init__(
        self, client: GitHubRestClient, repo: str, logger: StructuredLogger | None = None
    ) -> None:
        self.client = client
        self.repo = repo
        self.logger = logger or get_logger()

    def apply(self, diff: LabelDiff, delete_mode: DeleteMode | str | None = DeleteMode.OFF) -> list[ActionResult]:
        mode = DeleteMode.parse(delete_mode)
        results: list[ActionResult] = []
        for label in diff.to_add:
            results.append(self._add(label))
        for update in diff.to_update:
            results.append(self._update(update))
        for label in diff.to_delete:
            results.append(self._delete(label, mode))
        return results

    def _add(self, label: Label) -> ActionResult:
        r = self.client.post(label_path(self.repo), label.to_payload())
        self.logger.log_action("add", "label", label.name, r.status_code)
        return ActionResult("add", "label", label.name, r.status_code)

    def _update(self, update: LabelUpdate) -> ActionResult:
        name = update.current.name
        r = self.client.patch(label_path(self.repo, name), update.desired.to_payload())
        self.logger.log_action("update", "label", name, r.status_code, changes=update.changes)
        return ActionResult("update", "label", name, r.status_code)

    def _delete(self, label: Label, mode: DeleteMode) -> ActionResult:
        if mode is DeleteMode.OFF:
            self.logger.info(f"Not deleting {label.name}", item=label.name)
            return ActionResult("retain", "label", label.name)
        if mode is DeleteMode.PRUNE and self._in_use(label):
            self.logger.warning(
                f'The "{label.name}" label is in use and won\'t be deleted.', item=label.name
            )
            return ActionResult("skip", "label", label.name)
        r = self.client.delete(label_path(self.repo, label.name))
        self.logger.log_action("delete", "label", label.name, r.status_code)
        return ActionResult("delete", "label", label.name, r.status_code)

    def _in_use(self, label: Label) -> bool:
        """Cheap existence check: is at least one issue tagged with the label?

        An unanswerable check counts as "in use" so prune never deletes blindly.
        """
        r = self.client.get(
            f"/repos/{self.repo}/issues",
            params={"labels": label.name, "per_page": 1},
            raise_for_status=False,
        )
        if not is_success(r):
            self.logger.log_error(
                f"Could not check whether {label.name} is in use", error=str(r.status_code)
            )
            return True
        body = decode_body(r)
        return isinstance(body, list) and len(body) > 0


__all__ = [
    "DeleteMode",
    "LabelDiff",
    "LabelReconciler",
    "LabelUpdate",
    "diff_labels",
    "fetch_labels",
    "label_path",
]
