"""githubsync CLI.

Subcommands:
  labels      -> copy labels from one repository to another
  milestones  -> copy milestones from one repository to another
  overdue     -> label open issues of past-due milestones as overdue
"""

from __future__ import annotations

import argparse
import os
from typing import Any

from .config import SyncConfig
from .core import RepoSync, summarize
from .env_auth import EnvAuthConfig, create_env_auth_manager
from .logging import StructuredLogger, configure_logging
from .milestones import MILESTONE_STATES
from .models import ActionResult
from .runtime import execute_command, prepare_config
from .ux import print_summary_box

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--token",
        help="GitHub access token (falls back to GITHUB_API_TOKEN/GITHUB_TOKEN/GH_TOKEN)",
    )
    common.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Don't output verbose information (env: GITHUBSYNC_QUIET=1)",
    )
    common.add_argument("--config", help="YAML config file (default: githubsync.config.yaml if present)")
    common.add_argument("--json-logs", action="store_true", help="Emit log lines as JSON")
    return common


def _repo_options() -> argparse.ArgumentParser:
    repos = argparse.ArgumentParser(add_help=False)
    repos.add_argument(
        "--from", "-f", dest="from_repo", required=True,
        help="The repo to copy from (owner/repo)",
    )
    repos.add_argument(
        "--to", "-t", dest="to_repo", required=True,
        help="The repo to copy to (owner/repo)",
    )
    return repos


def _build_parser() -> argparse.ArgumentParser:
    """Construct top-level CLI parser with subcommands."""
    p = _FormatterArgumentParser(
        prog="githubsync", description="Synchronize labels and milestones between GitHub repositories"
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )
    common = _common_options()
    repos = _repo_options()

    pl = sub.add_parser(
        "labels", parents=[common, repos], help="Copy the labels from one repo to another"
    )
    pl.add_argument(
        "--delete",
        "-d",
        nargs="?",
        const="force",
        choices=("off", "force", "prune"),
        help="Delete extra labels: force (default when given) or prune (only unused labels)",
    )

    pm = sub.add_parser(
        "milestones", parents=[common, repos], help="Copy the milestones from one repo to another"
    )
    pm.add_argument(
        "--status",
        "-s",
        choices=MILESTONE_STATES,
        help="State of the source milestones to copy (default: open)",
    )
    pm.add_argument(
        "--autoclose",
        action="store_true",
        help="Close past-due destination milestones that have no open issues",
    )

    po = sub.add_parser(
        "overdue", parents=[common], help="Label open issues of past-due milestones as overdue"
    )
    po.add_argument("--repo", "-r", required=True, help="The repo to scan (owner/repo)")
    po.add_argument("--label", "-l", help="Label to apply (default: Overdue)")
    return p


def _resolve_token(cfg: SyncConfig, args: argparse.Namespace) -> str | None:
    manager = create_env_auth_manager(
        EnvAuthConfig(
            load_dotenv=cfg.env_auth_load_dotenv,
            dotenv_path=cfg.env_auth_dotenv_path,
            github_token_var=cfg.token_env,
        )
    )
    return manager.resolve_token(getattr(args, "token", None))


def _report(title: str, results: list[ActionResult], args: argparse.Namespace) -> int:
    if not getattr(args, "quiet", False):
        print_summary_box(title, summarize(results))
    return 0


def _cmd_labels(sync: RepoSync, cfg: SyncConfig, args: argparse.Namespace) -> int:
    return _report("Labels", sync.sync_labels(cfg.label_delete), args)


def _cmd_milestones(sync: RepoSync, cfg: SyncConfig, args: argparse.Namespace) -> int:
    results = sync.sync_milestones(cfg.milestone_state, cfg.milestone_autoclose)
    return _report("Milestones", results, args)


def _cmd_overdue(sync: RepoSync, cfg: SyncConfig, args: argparse.Namespace) -> int:
    return _report("Overdue", sync.label_overdue(cfg.overdue_label), args)


_HANDLERS = {
    "labels": _cmd_labels,
    "milestones": _cmd_milestones,
    "overdue": _cmd_overdue,
}


def _run(args: argparse.Namespace) -> int:
    cfg = prepare_config(args)
    logger: StructuredLogger = configure_logging(
        json_logging=cfg.logging_json_enabled, level=cfg.logging_level
    )
    token = _resolve_token(cfg, args)
    if args.cmd == "overdue":
        sync = RepoSync.from_config(cfg, token, from_repo=args.repo, logger=logger)
    else:
        sync = RepoSync.from_config(
            cfg, token, from_repo=args.from_repo, to_repo=args.to_repo, logger=logger
        )
    return _HANDLERS[args.cmd](sync, cfg, args)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("GITHUBSYNC_QUIET") == "1":
        args.quiet = True
    if not args.json_logs and os.environ.get("GITHUBSYNC_LOG_JSON") == "1":
        args.json_logs = True
    return execute_command(lambda: _run(args))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
