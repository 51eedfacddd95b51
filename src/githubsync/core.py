"""High-level entry points: one ``RepoSync`` per run.

``RepoSync`` owns the single REST client of a run and hands it to the
label/milestone reconcilers and the overdue labeler. Each command fetches
live state, diffs it and applies the result; nothing is cached between
commands or runs.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from datetime import datetime

from .config import SyncConfig
from .errors import ConfigurationError
from .github_rest import ClientConfig, GitHubRestClient
from .labels import DeleteMode, LabelReconciler, diff_labels, fetch_labels
from .logging import StructuredLogger, get_logger
from .milestones import MilestoneReconciler, diff_milestones, fetch_milestones
from .models import ActionResult
from .overdue import DEFAULT_OVERDUE_LABEL, OverdueLabeler
from .retry import RetryConfig

REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


def validate_repo(repo: str | None, option: str) -> str:
    if not repo:
        raise ConfigurationError(f"Missing required option {option}")
    repo = repo.strip()
    if not REPO_PATTERN.match(repo):
        raise ConfigurationError(f"Invalid repository for {option}: {repo!r} (expected owner/repo)")
    return repo


def summarize(results: Iterable[ActionResult]) -> list[tuple[str, int]]:
    """Counts per action plus a failure count, in first-seen order."""
    items = list(results)
    counts = Counter(r.action for r in items)
    rows: list[tuple[str, int]] = [(action, count) for action, count in counts.items()]
    rows.append(("failed", sum(1 for r in items if not r.ok)))
    return rows


class RepoSync:
    def __init__(
        self,
        client: GitHubRestClient,
        *,
        from_repo: str | None = None,
        to_repo: str | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.client = client
        self.from_repo = from_repo
        self.to_repo = to_repo
        self.logger = logger or get_logger()

    @classmethod
    def from_config(
        cls,
        cfg: SyncConfig,
        token: str | None,
        *,
        from_repo: str | None = None,
        to_repo: str | None = None,
        logger: StructuredLogger | None = None,
    ) -> RepoSync:
        client = GitHubRestClient(
            config=ClientConfig(
                token=token,
                base_url=cfg.base_url,
                timeout=cfg.timeout,
                per_page=cfg.per_page,
            ),
            logger=logger,
            retry=RetryConfig(attempts=cfg.retry_attempts, base_sleep=cfg.retry_base_sleep),
        )
        return cls(client, from_repo=from_repo, to_repo=to_repo, logger=logger)

    def _repos(self) -> tuple[str, str]:
        return validate_repo(self.from_repo, "--from"), validate_repo(self.to_repo, "--to")

    def sync_labels(self, delete: DeleteMode | str | bool | None = DeleteMode.OFF) -> list[ActionResult]:
        """Copy labels from the source repository to the destination."""
        mode = DeleteMode.parse(delete)
        source, dest = self._repos()
        with self.logger.timed_operation(
            "sync_labels", f"Synchronizing labels from {source} to {dest}", source=source, destination=dest
        ):
            diff = diff_labels(fetch_labels(self.client, source), fetch_labels(self.client, dest))
            return LabelReconciler(self.client, dest, self.logger).apply(diff, mode)

    def sync_milestones(
        self, state: str = "open", autoclose: bool = False, now: datetime | None = None
    ) -> list[ActionResult]:
        """Copy milestones in ``state`` from the source repository to the destination."""
        source, dest = self._repos()
        with self.logger.timed_operation(
            "sync_milestones",
            f"Synchronizing milestones from {source} to {dest}",
            source=source,
            destination=dest,
        ):
            source_milestones = fetch_milestones(self.client, source, state)
            dest_milestones = fetch_milestones(self.client, dest, "all")
            reconciler = MilestoneReconciler(self.client, dest, self.logger)
            results = reconciler.apply(diff_milestones(source_milestones, dest_milestones))
            if autoclose:
                results.extend(reconciler.auto_close(dest_milestones, now))
            return results

    def label_overdue(self, label: str = DEFAULT_OVERDUE_LABEL, now: datetime | None = None) -> list[ActionResult]:
        """Label open issues of past-due milestones in the source repository."""
        repo = validate_repo(self.from_repo, "--repo")
        with self.logger.timed_operation(
            "label_overdue", f"Marking issues overdue on {repo}", repo=repo
        ):
            return OverdueLabeler(self.client, repo, self.logger).run(label, now)


__all__ = ["RepoSync", "summarize", "validate_repo"]
