"""Environment-based authentication for githubsync.

Resolves the API token from an explicit value, then from environment
variables, optionally after loading a ``.env`` file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

ALTERNATIVE_TOKEN_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_API_TOKEN"


class EnvironmentAuthManager:
    """Manages authentication through environment variables and .env files."""

    def __init__(self, config: EnvAuthConfig):
        self.config = config
        self.logger = get_logger()
        self._dotenv_loaded = False
        if config.load_dotenv:
            self._load_dotenv()

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def _load_dotenv(self) -> None:
        """Load the configured .env file, or the first conventional one found."""
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else ['.env', '.env.local']
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                load_dotenv(str(env_path))
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    def get_github_token(self) -> str | None:
        """Get the API token from environment variables."""
        for var in (self.config.github_token_var, *ALTERNATIVE_TOKEN_VARS):
            token = os.getenv(var)
            if token and token.strip():
                self.logger.debug(f"Found GitHub token in {var}")
                return token.strip()
        return None

    def resolve_token(self, explicit: str | None = None) -> str | None:
        """``--token`` wins, then the environment; ``None`` means unauthenticated."""
        if explicit and explicit.strip():
            return explicit.strip()
        token = self.get_github_token()
        if token is None:
            self.logger.warning(
                "No GitHub token found; requests are unauthenticated "
                f"(set {self.config.github_token_var} or pass --token)"
            )
        return token


def create_env_auth_manager(config: EnvAuthConfig | None = None) -> EnvironmentAuthManager:
    """Factory function to create environment authentication manager."""
    if config is None:
        config = EnvAuthConfig()
    return EnvironmentAuthManager(config)


__all__ = [
    "ALTERNATIVE_TOKEN_VARS",
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "create_env_auth_manager",
]
