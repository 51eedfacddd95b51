"""Runtime helpers for githubsync CLI orchestration."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from .config import CONFIG_DEFAULT, SyncConfig, load_config
from .errors import GitHubSyncError, redact
from .labels import DeleteMode
from .ux import print_error


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str], SyncConfig] = load_config
) -> SyncConfig:
    """Load the config file (if any) and apply CLI overrides.

    The default config path is optional; an explicitly passed one must exist.
    """
    path = getattr(args, "config", None)
    if path is None:
        cfg = loader(CONFIG_DEFAULT) if Path(CONFIG_DEFAULT).exists() else SyncConfig()
    else:
        cfg = loader(path)
    if getattr(args, "json_logs", False):
        cfg.logging_json_enabled = True
    if getattr(args, "quiet", False):
        cfg.logging_level = "INFO"
    delete = getattr(args, "delete", None)
    if delete is not None:
        cfg.label_delete = DeleteMode.parse(delete)
    status = getattr(args, "status", None)
    if status:
        cfg.milestone_state = status
    if getattr(args, "autoclose", False):
        cfg.milestone_autoclose = True
    label = getattr(args, "label", None)
    if label:
        cfg.overdue_label = label
    return cfg


def exit_code_for(exc: BaseException) -> int:
    code = getattr(exc, "code", None)
    if isinstance(code, int) and 0 < code < 256:
        return code
    return 1


def execute_command(handler: _HandlerCallable) -> int:
    """Run a command handler, printing unhandled errors in red."""
    try:
        result = handler()
    except GitHubSyncError as exc:
        print_error(redact(str(exc)))
        return exit_code_for(exc)
    except Exception as exc:
        print_error(redact(f"{exc.__class__.__name__}: {exc}"))
        return exit_code_for(exc)
    return int(result) if result is not None else 0


__all__ = ["prepare_config", "execute_command", "exit_code_for"]
