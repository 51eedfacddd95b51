"""Centralized retry / backoff helpers.

Provides ``run_with_retries`` which wraps a single API call with exponential
backoff and jitter. Only GitHub rate-limit rejections are retried (primary or
secondary rate limit, abuse detection); every other failure propagates
immediately.

Environment overrides:
  GITHUBSYNC_RETRY_ATTEMPTS (default 3)
  GITHUBSYNC_RETRY_BASE (seconds base, default 0.5)
  GITHUBSYNC_RETRY_MAX_SLEEP (cap in seconds, unset by default)
"""

from __future__ import annotations

import os
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .errors import GitHubAPIError
from .logging import get_logger

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_RE_SECONDS_HINT = re.compile(r"wait\s*(\d+)\s*seconds", re.IGNORECASE)
_JITTER = random.SystemRandom()


def _extract_explicit_backoff(text: str) -> float | None:
    """Extract an explicit backoff (seconds) from an error message.

    Supports patterns like:
      Retry-After: 12
      retry after 12
      wait 30 seconds
    Returns None if no valid positive value found.
    """
    if not text:
        return None
    for pattern in (_RE_RETRY_AFTER, _RE_SECONDS_HINT):
        m = pattern.search(text)
        if m:
            val = float(m.group(1))
            return val if val > 0 else None
    return None


@dataclass
class RetryConfig:
    attempts: int = field(default_factory=lambda: int(os.environ.get("GITHUBSYNC_RETRY_ATTEMPTS", "3")))
    base_sleep: float = field(
        default_factory=lambda: float(os.environ.get("GITHUBSYNC_RETRY_BASE", "0.5"))
    )


def is_transient(output: str) -> bool:
    out_lower = output.lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def _compute_sleep(attempt: int, cfg: RetryConfig, out: str) -> float:
    explicit = _extract_explicit_backoff(out)
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("GITHUBSYNC_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def _should_retry(exc: GitHubAPIError, attempt: int, attempts: int, cfg: RetryConfig) -> bool:
    out = f"{exc} {exc.response_text or ''}"
    if attempt >= attempts or not is_transient(out):
        return False
    sleep_for = _compute_sleep(attempt, cfg, out)
    get_logger().warning(
        f"[retry] rate limited, attempt {attempt}/{attempts}, sleeping {sleep_for:.2f}s",
        attempt=attempt,
        sleep_seconds=round(sleep_for, 2),
    )
    time.sleep(sleep_for)
    return True


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except GitHubAPIError as exc:
            if not _should_retry(exc, attempt, attempts, cfg):
                raise
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "run_with_retries", "is_transient"]
