from __future__ import annotations

from datetime import datetime, timezone

from .errors import ConfigurationError, GitHubAPIError
from .github_rest import GitHubRestClient, is_success
from .labels import label_path
from .logging import StructuredLogger, get_logger
from .milestones import fetch_milestones
from .models import ActionResult, Issue, Milestone

DEFAULT_OVERDUE_LABEL = "Overdue"


def is_overdue(milestone: Milestone, now: datetime) -> bool:
    """Open, past due (strictly) and still holding open issues."""
    if milestone.state != "open" or milestone.open_issues <= 0 or milestone.due_on is None:
        return False
    return milestone.due_on < now


class OverdueLabeler:
    """Tags the open issues of past-due milestones with an "overdue" label."""

    def __init__(
        self, client: GitHubRestClient, repo: str, logger: StructuredLogger | None = None
    ) -> None:
        self.client = client
        self.repo = repo
        self.logger = logger or get_logger()

    def ensure_label(self, label: str) -> None:
        r = self.client.get(label_path(self.repo, label), raise_for_status=False)
        if not is_success(r):
            raise ConfigurationError(f"Could not find label: {label}")

    def run(self, label: str = DEFAULT_OVERDUE_LABEL, now: datetime | None = None) -> list[ActionResult]:
        try:
            self.ensure_label(label)
        except ConfigurationError as exc:
            self.logger.log_error(str(exc), error="missing_label", label=label)
            return []

        now = now or datetime.now(timezone.utc)
        results: list[ActionResult] = []
        for milestone in fetch_milestones(self.client, self.repo, "open").values():
            if not is_overdue(milestone, now):
                continue
            try:
                issues = [
                    Issue.from_api(raw)
                    for raw in self.client.paginate(
                        f"/repos/{self.repo}/issues",
                        params={"milestone": milestone.number, "per_page": self.client.config.per_page},
                    )
                ]
            except GitHubAPIError as exc:
                self.logger.log_error(
                    f"Could not list issues for milestone {milestone.title}", error=str(exc)
                )
                continue
            for issue in issues:
                if label in issue.labels:
                    continue
                results.append(self._tag(issue, label))
        return results

    def _tag(self, issue: Issue, label: str) -> ActionResult:
        name = f"#{issue.number} {issue.title}"
        r = self.client.post(f"/repos/{self.repo}/issues/{issue.number}/labels", [label])
        if is_success(r):
            self.logger.info(f"{name}: {label}", item=name, status=r.status_code)
        else:
            self.logger.log_action("label", "issue", name, r.status_code)
        return ActionResult("label", "issue", name, r.status_code)


__all__ = ["DEFAULT_OVERDUE_LABEL", "OverdueLabeler", "is_overdue"]
