"""Error taxonomy & redaction helpers.

Every failure raised by githubsync derives from :class:`GitHubSyncError` so
the CLI can print it and turn it into an exit code. The ``code`` attribute is
the process exit code the CLI uses when the error reaches the top level.

Public API:
- GitHubSyncError and its subclasses
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"gh[osu]_[A-Za-z0-9]{20,40}"),  # OAuth / app / user-to-server tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
]

_REDACTION_PLACEHOLDER = "<redacted>"


class GitHubSyncError(Exception):
    """Base exception for all githubsync errors."""

    code: int = 1

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class GitHubAPIError(GitHubSyncError):
    """Raised when the GitHub REST API answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.response_text = response_text
        self.response = response


class RequestError(GitHubSyncError):
    """Raised when a request never produced a response (network, TLS, timeout)."""


class ConfigurationError(GitHubSyncError):
    """Raised when options, config files or remote prerequisites are unusable."""

    code = 2


class InternalInconsistencyError(GitHubSyncError):
    """Raised when the diff and apply phases disagree about a record."""

    code = 70


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Replace GitHub tokens in arbitrary text with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - rate limit wording -> 'github.rate_limit', transient
    - abuse detection -> 'github.abuse', transient
    - transport failures or network wording -> 'network', transient
    - other API errors -> 'github.api' with the status in details
    - fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True)
    if isinstance(exc, RequestError) or any(
        k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")
    ):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if isinstance(exc, GitHubAPIError):
        return ErrorInfo("github.api", redact(msg), name, details={"status": exc.status})
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ConfigurationError",
    "ErrorInfo",
    "GitHubAPIError",
    "GitHubSyncError",
    "InternalInconsistencyError",
    "RequestError",
    "classify_error",
    "redact",
]
