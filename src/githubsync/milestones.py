"""Milestone reconciliation.

Milestone identity is fuzzy. Two milestones are the same when their titles
match case-insensitively, or, failing that, when both carry the same due date
and the destination has no milestone already using the source's title. A
title match therefore always beats a date match.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .diffing import changed_fields, difference, intersection
from .errors import InternalInconsistencyError
from .github_rest import GitHubRestClient
from .keyed import build_keyed, normalize_key
from .logging import StructuredLogger, get_logger
from .models import ActionResult, Milestone

MILESTONE_FIELDS = ("title", "description", "due_on")
MILESTONE_STATES = ("open", "closed", "all")


def milestones_match(source: Milestone, dest: Milestone, dest_by_title: Mapping[str, Milestone]) -> bool:
    if normalize_key(source.title) == normalize_key(dest.title):
        return True
    if source.due_on is None or dest.due_on is None:
        return False
    return source.due_on == dest.due_on and normalize_key(source.title) not in dest_by_title


def find_milestone(milestone: Milestone, collection: Mapping[str, Milestone]) -> Milestone | None:
    """Look a milestone up by title, then by an equal due date."""
    found = collection.get(normalize_key(milestone.title))
    if found is not None:
        return found
    if milestone.due_on is None:
        return None
    for row in collection.values():
        if row.due_on == milestone.due_on:
            return row
    return None


@dataclass
class MilestoneUpdate:
    current: Milestone
    desired: Milestone
    changes: list[str]


@dataclass
class MilestoneDiff:
    to_add: list[Milestone] = field(default_factory=list)
    to_update: list[MilestoneUpdate] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return not self.to_add and not self.to_update


def diff_milestones(source: Mapping[str, Milestone], dest: Mapping[str, Milestone]) -> MilestoneDiff:
    dest_list = list(dest.values())
    source_list = list(source.values())

    diff = MilestoneDiff()
    diff.to_add = difference(
        source_list, dest_list, lambda s, d: milestones_match(s, d, dest)
    )
    matched = intersection(
        dest_list, source_list, lambda d, s: milestones_match(s, d, dest)
    )
    for current in matched:
        desired = find_milestone(current, source)
        if desired is None:
            raise InternalInconsistencyError(
                f"Milestone {current.title!r} matched during diffing but has no source counterpart"
            )
        changes = changed_fields(current, desired, MILESTONE_FIELDS)
        if changes:
            diff.to_update.append(MilestoneUpdate(current=current, desired=desired, changes=changes))
    return diff


def fetch_milestones(client: GitHubRestClient, repo: str, state: str = "open") -> dict[str, Milestone]:
    records = client.paginate(
        f"/repos/{repo}/milestones",
        params={"state": state, "per_page": client.config.per_page},
    )
    return build_keyed((Milestone.from_api(r) for r in records), "title")


def is_overdue_and_complete(milestone: Milestone, now: datetime) -> bool:
    if milestone.state != "open" or milestone.open_issues > 0 or milestone.due_on is None:
        return False
    return milestone.due_on < now and (now - milestone.due_on).days > 0


class MilestoneReconciler:
    def __init__(
        self, client: GitHubRestClient, repo: str, logger: StructuredLogger | None = None
    ) -> None:
        self.client = client
        self.repo = repo
        self.logger = logger or get_logger()

    def apply(self, diff: MilestoneDiff) -> list[ActionResult]:
        results: list[ActionResult] = []
        for milestone in diff.to_add:
            r = self.client.post(f"/repos/{self.repo}/milestones", milestone.to_payload())
            self.logger.log_action("add", "milestone", milestone.title, r.status_code)
            results.append(ActionResult("add", "milestone", milestone.title, r.status_code))
        for update in diff.to_update:
            current = update.current
            r = self.client.patch(
                f"/repos/{self.repo}/milestones/{current.number}", update.desired.to_payload()
            )
            self.logger.log_action(
                "update", "milestone", current.title, r.status_code, changes=update.changes
            )
            results.append(ActionResult("update", "milestone", current.title, r.status_code))
        return results

    def auto_close(self, dest: Mapping[str, Milestone], now: datetime | None = None) -> list[ActionResult]:
        """Close open destination milestones that are past due with no open issues."""
        now = now or datetime.now(timezone.utc)
        results: list[ActionResult] = []
        for milestone in dest.values():
            if not is_overdue_and_complete(milestone, now):
                continue
            r = self.client.patch(
                f"/repos/{self.repo}/milestones/{milestone.number}", {"state": "closed"}
            )
            self.logger.log_action("close", "milestone", milestone.title, r.status_code)
            results.append(ActionResult("close", "milestone", milestone.title, r.status_code))
        return results


__all__ = [
    "MILESTONE_STATES",
    "MilestoneDiff",
    "MilestoneReconciler",
    "MilestoneUpdate",
    "diff_milestones",
    "fetch_milestones",
    "find_milestone",
    "is_overdue_and_complete",
    "milestones_match",
]
