"""Pytest configuration for githubsync tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install, and provides fake `requests` sessions:
``ScriptedSession`` replays queued responses, ``FakeGitHub`` keeps a tiny
in-memory model of the label/milestone/issue endpoints.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from githubsync.github_rest import ClientConfig, GitHubRestClient  # noqa: E402
from githubsync.logging import StructuredLogger  # noqa: E402
from githubsync.retry import RetryConfig  # noqa: E402

BASE = "https://api.github.com"


@dataclass
class FakeResponse:
    status_code: int
    payload: Any = None
    links: dict[str, dict[str, str]] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    @property
    def text(self) -> str:
        if self.payload is None:
            return ""
        if isinstance(self.payload, (dict, list)):
            return json.dumps(self.payload)
        return str(self.payload)


class ScriptedSession:
    def __init__(self, responses: list[Any]):
        self._responses = list(responses)
        self.request_log: list[tuple[str, str, dict[str, Any]]] = []

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> FakeResponse:
        self.request_log.append((method, url, {"headers": headers, "json": json, "params": params}))
        if not self._responses:
            raise AssertionError("No response queued for request")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeGitHub:
    """In-memory stand-in for the REST endpoints githubsync talks to."""

    def __init__(self) -> None:
        self.labels: dict[str, list[dict[str, Any]]] = {}
        self.milestones: dict[str, list[dict[str, Any]]] = {}
        self.issues: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, dict[str, Any] | None, Any]] = []
        # (method, path) -> status code, or a full canned response
        self.fail: dict[tuple[str, str], int | FakeResponse] = {}

    # ---- inspection helpers ----------------------------------------------
    def writes(self) -> list[tuple[str, str, Any]]:
        return [(m, p, body) for m, p, _, body in self.calls if m != "GET"]

    def calls_for(self, method: str) -> list[tuple[str, str, dict[str, Any] | None, Any]]:
        return [c for c in self.calls if c[0] == method]

    # ---- requests.Session protocol ---------------------------------------
    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        json: Any | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> FakeResponse:
        path = urlsplit(url).path
        self.calls.append((method, path, params, json))
        if (method, path) in self.fail:
            failure = self.fail[(method, path)]
            if isinstance(failure, FakeResponse):
                return failure
            return FakeResponse(failure, {"message": "boom"})
        parts = [unquote(p) for p in path.strip("/").split("/")]
        repo = f"{parts[1]}/{parts[2]}"
        resource = parts[3]
        rest = parts[4:]
        handler = getattr(self, f"_{resource}")
        return handler(method, repo, rest, params or {}, json)

    def _labels(self, method: str, repo: str, rest: list[str], params: dict[str, Any], body: Any) -> FakeResponse:
        labels = self.labels.setdefault(repo, [])
        if method == "GET" and not rest:
            return FakeResponse(200, [dict(label) for label in labels])
        if method == "POST":
            labels.append(dict(body))
            return FakeResponse(201, body)
        matches = [label for label in labels if label["name"] == rest[0]]
        if not matches:
            return FakeResponse(404, {"message": "Not Found"})
        label = matches[0]
        if method == "GET":
            return FakeResponse(200, dict(label))
        if method == "PATCH":
            label.update(body)
            return FakeResponse(200, dict(label))
        labels.remove(label)
        return FakeResponse(204)

    def _milestones(self, method: str, repo: str, rest: list[str], params: dict[str, Any], body: Any) -> FakeResponse:
        milestones = self.milestones.setdefault(repo, [])
        if method == "GET":
            state = params.get("state", "open")
            return FakeResponse(
                200, [dict(m) for m in milestones if state == "all" or m.get("state", "open") == state]
            )
        if method == "POST":
            number = max((m["number"] for m in milestones), default=0) + 1
            created = {"number": number, "state": "open", "open_issues": 0, **body}
            milestones.append(created)
            return FakeResponse(201, created)
        matches = [m for m in milestones if str(m["number"]) == rest[0]]
        if not matches:
            return FakeResponse(404, {"message": "Not Found"})
        matches[0].update(body)
        return FakeResponse(200, dict(matches[0]))

    def _issues(self, method: str, repo: str, rest: list[str], params: dict[str, Any], body: Any) -> FakeResponse:
        issues = self.issues.setdefault(repo, [])
        if method == "GET":
            found = list(issues)
            if "labels" in params:
                found = [i for i in found if params["labels"] in {lbl["name"] for lbl in i["labels"]}]
            if "milestone" in params:
                found = [
                    i for i in found if (i.get("milestone") or {}).get("number") == params["milestone"]
                ]
            if "per_page" in params:
                found = found[: int(params["per_page"])]
            return FakeResponse(200, found)
        issue = next(i for i in issues if str(i["number"]) == rest[0])
        issue["labels"].extend({"name": name} for name in body)
        return FakeResponse(200, issue["labels"])


@pytest.fixture(autouse=True)
def _reset_global_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    # the module-level logger binds to whatever sys.stdout was when it was built
    monkeypatch.setattr("githubsync.logging._GLOBAL", None)


class _CurrentStdout:
    """Stream that forwards to whatever ``sys.stdout`` is at write time.

    pytest swaps the capsys stream between the setup and call phases, so a
    handler bound during fixture setup would otherwise write to a closed file.
    """

    def write(self, data: str) -> int:
        return sys.stdout.write(data)

    def flush(self) -> None:
        sys.stdout.flush()


@pytest.fixture
def logger(capsys: pytest.CaptureFixture[str]) -> StructuredLogger:
    # depends on capsys so the handler writes to the captured stdout
    log = StructuredLogger(name="githubsync-test", level="DEBUG")
    for handler in log._logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            handler.setStream(_CurrentStdout())  # type: ignore[arg-type]
    return log


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def client(github: FakeGitHub, logger: StructuredLogger) -> GitHubRestClient:
    return GitHubRestClient(
        config=ClientConfig(token="tkn"),
        session=github,  # type: ignore[arg-type]
        logger=logger,
        retry=RetryConfig(attempts=1, base_sleep=0),
    )
