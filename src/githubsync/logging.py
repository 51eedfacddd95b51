"""Structured logging for githubsync (text by default, JSON on request)."""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

HTTP_OK_MIN = 200
HTTP_ERROR_MIN = 400


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in ("operation", "method", "path", "status", "action", "kind", "item", "error"):
            if hasattr(record, attr):
                entry[attr] = getattr(record, attr)
        reserved = set(entry.keys()) | {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
            "exc_info",
            "exc_text",
            "stack_info",
        }
        for k, v in record.__dict__.items():
            if k not in reserved and not k.startswith("_") and k not in entry:
                entry[k] = v
        return json.dumps(entry, default=str)


class StructuredLogger:
    def __init__(
        self, name: str = "githubsync", json_logging: bool = False, level: str = "DEBUG"
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper(), logging.DEBUG))
        for h in list(self._logger.handlers):
            self._logger.removeHandler(h)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            JSONFormatter()
            if json_logging
            else logging.Formatter("[%(asctime)s] %(levelname)s %(message)s", "%Y-%m-%d %H:%M:%S")
        )
        self._logger.addHandler(handler)
        self._logger.propagate = False

    @property
    def level(self) -> int:
        return self._logger.level

    # ---- HTTP traffic -------------------------------------------------
    def log_request(self, method: str, path: str) -> None:
        self._logger.debug(f"{method} {path}", extra={"method": method, "path": path})

    def log_response(self, method: str, path: str, status: int) -> None:
        extra = {"method": method, "path": path, "status": status}
        if status >= HTTP_ERROR_MIN:
            self._logger.error(f"{method} {path} {status}", extra=extra)
        else:
            self._logger.debug(f"{method} {path} {status}", extra=extra)

    def log_request_error(self, method: str, path: str, error: str) -> None:
        self._logger.error(
            f"{method} {path} failed: {error}",
            extra={"method": method, "path": path, "error": error},
        )

    # ---- reconciliation -----------------------------------------------
    def log_action(
        self, action: str, kind: str, name: str, status: int | None = None, **kw: Any
    ) -> None:
        """Log one applied change; statuses of 400 and above are logged as errors."""
        extra: dict[str, Any] = {"action": action, "kind": kind, "item": name, **kw}
        msg = f"{action.capitalize()} {kind} {name}"
        if status is None:
            self._logger.info(msg, extra=extra)
            return
        extra["status"] = status
        msg = f"{msg} {status}"
        if HTTP_OK_MIN <= status < HTTP_ERROR_MIN:
            self._logger.info(msg, extra=extra)
        else:
            self._logger.error(msg, extra=extra)

    def log_performance(self, operation: str, duration_ms: float, **kw: Any) -> None:
        extra = {"operation": operation, "duration_ms": round(duration_ms, 2), **kw}
        self._logger.info(f"Done: {operation} completed in {duration_ms:.2f}ms", extra=extra)

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        extra = dict(kw)
        if error:
            extra["error"] = error
        self._logger.error(message, extra=extra)

    def debug(self, message: str, **kw: Any) -> None:
        self._logger.debug(message, extra=kw)

    def info(self, message: str, **kw: Any) -> None:
        self._logger.info(message, extra=kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._logger.warning(message, extra=kw)

    def error(self, message: str, **kw: Any) -> None:
        self._logger.error(message, extra=kw)

    @contextmanager
    def timed_operation(self, operation: str, message: str | None = None, **kw: Any) -> Iterator[None]:
        start = time.perf_counter()
        self._logger.info(message or operation, extra={"operation": f"{operation}_start", **kw})
        try:
            yield
            self.log_performance(operation, (time.perf_counter() - start) * 1000, **kw)
        except Exception as exc:
            self.log_error(f"operation {operation} failed", error=str(exc), **kw)
            raise


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger()
    return _GLOBAL


def configure_logging(json_logging: bool = False, level: str = "DEBUG") -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level)
    return _GLOBAL


__all__ = ["JSONFormatter", "StructuredLogger", "configure_logging", "get_logger"]
