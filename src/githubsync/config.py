from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigurationError
from .github_rest import DEFAULT_API_URL
from .labels import DeleteMode
from .milestones import MILESTONE_STATES
from .overdue import DEFAULT_OVERDUE_LABEL

CONFIG_DEFAULT = "githubsync.config.yaml"
DEFAULT_TOKEN_ENV = "GITHUB_API_TOKEN"


@dataclass
class SyncConfig:
    source_file: Path | None = None
    base_url: str = DEFAULT_API_URL
    token_env: str = DEFAULT_TOKEN_ENV
    timeout: float = 30
    per_page: int = 100
    label_delete: DeleteMode = DeleteMode.OFF
    milestone_state: str = "open"
    milestone_autoclose: bool = False
    overdue_label: str = DEFAULT_OVERDUE_LABEL
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "DEBUG"
    # Environment authentication configuration
    env_auth_load_dotenv: bool = True
    env_auth_dotenv_path: str | None = None
    # Retry configuration
    retry_attempts: int = 3
    retry_base_sleep: float = 0.5


def _resolve_env_var(value: Any) -> Any:
    """Resolve ``$NAME`` values from the environment (kept verbatim when unset)."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return cast(dict[str, Any], value)


def _milestone_state(value: Any) -> str:
    state = str(value).lower()
    if state not in MILESTONE_STATES:
        raise ConfigurationError(
            f"Invalid milestone state {value!r}; expected one of {', '.join(MILESTONE_STATES)}"
        )
    return state


def load_config(path: str | Path) -> SyncConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f'Configuration file not found: {p}')
    try:
        raw = yaml.safe_load(p.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f'Configuration root in {p} must be a mapping')
    gh = _section(raw, 'github')
    labels = _section(raw, 'labels')
    milestones = _section(raw, 'milestones')
    overdue = _section(raw, 'overdue')
    logging_config = _section(raw, 'logging')
    env_auth = _section(raw, 'environment')
    retry = _section(raw, 'retry')

    defaults = SyncConfig()
    return SyncConfig(
        source_file=p,
        base_url=str(_resolve_env_var(gh.get('base_url', defaults.base_url))),
        token_env=str(gh.get('token_env', defaults.token_env)),
        timeout=float(gh.get('timeout', defaults.timeout)),
        per_page=int(gh.get('per_page', defaults.per_page)),
        # YAML reads a bare `off` as False; DeleteMode.parse accepts both.
        label_delete=DeleteMode.parse(labels.get('delete', defaults.label_delete)),
        milestone_state=_milestone_state(milestones.get('state', defaults.milestone_state)),
        milestone_autoclose=bool(milestones.get('autoclose', defaults.milestone_autoclose)),
        overdue_label=str(overdue.get('label', defaults.overdue_label)),
        logging_json_enabled=bool(logging_config.get('json_enabled', False)),
        logging_level=str(logging_config.get('level', defaults.logging_level)),
        env_auth_load_dotenv=bool(env_auth.get('load_dotenv', True)),
        env_auth_dotenv_path=env_auth.get('dotenv_path'),
        retry_attempts=int(retry.get('attempts', defaults.retry_attempts)),
        retry_base_sleep=float(retry.get('base_sleep', defaults.retry_base_sleep)),
    )


__all__ = ["CONFIG_DEFAULT", "SyncConfig", "load_config"]
