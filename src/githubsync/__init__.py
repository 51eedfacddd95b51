"""githubsync - copy labels and milestones between GitHub repositories.

High-level public API:

from githubsync import RepoSync, load_config

sync = RepoSync.from_config(load_config('githubsync.config.yaml'), token,
                            from_repo='acme/source', to_repo='acme/dest')
sync.sync_labels(delete='prune')
sync.sync_milestones(state='open', autoclose=True)

The CLI (``githubsync``) delegates to this library.
"""

from __future__ import annotations

from .config import SyncConfig, load_config
from .core import RepoSync
from .labels import DeleteMode

# Keep in sync with pyproject.toml
__version__ = "0.3.0"

__all__ = [
    "DeleteMode",
    "RepoSync",
    "SyncConfig",
    "load_config",
    "__version__",
]
