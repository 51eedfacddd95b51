from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import requests

from .errors import GitHubAPIError, RequestError, classify_error
from .logging import StructuredLogger, get_logger
from .retry import RetryConfig, is_transient, run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "githubsync-rest/0.3.0"
ACCEPT = "application/vnd.github+json"
HTTP_ERROR_STATUS = 400
HTTP_SUCCESS_MIN = 200
RATE_LIMIT_STATUSES = (403, 429)

DATE_FIELDS = ("created_at", "updated_at", "closed_at", "due_on", "milestone_due_on")
NESTED_MILESTONE_DATE_FIELDS = ("created_at", "updated_at", "due_on")


@dataclass(frozen=True)
class ClientConfig:
    """Immutable connection settings shared by every call of one run."""

    token: str | None = None
    base_url: str = DEFAULT_API_URL
    timeout: float = 30
    per_page: int = 100
    user_agent: str = USER_AGENT

    def headers(self) -> dict[str, str]:
        headers = {
            "Accept": ACCEPT,
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


def parse_timestamp(value: Any) -> datetime | None:
    """Convert an ISO-8601 string to an aware datetime; empty values become ``None``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def normalize_record(record: Any) -> Any:
    """Replace the date-like fields of an API record with datetimes."""
    if not isinstance(record, dict):
        return record
    out = dict(record)
    for key in DATE_FIELDS:
        if key in out:
            out[key] = parse_timestamp(out[key])
    milestone = out.get("milestone")
    if isinstance(milestone, dict):
        nested = dict(milestone)
        for key in NESTED_MILESTONE_DATE_FIELDS:
            if key in nested:
                nested[key] = parse_timestamp(nested[key])
        out["milestone"] = nested
    return out


def is_success(response: requests.Response) -> bool:
    return HTTP_SUCCESS_MIN <= response.status_code < HTTP_ERROR_STATUS


def decode_body(response: requests.Response) -> Any:
    if not response.text:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def error_message(response: requests.Response) -> str:
    body = decode_body(response)
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return str(body["message"])
    return response.text or ""


@dataclass
class GitHubRestClient:
    """Small GitHub REST client: one session, explicit headers, logged calls."""

    config: ClientConfig = field(default_factory=ClientConfig)
    session: requests.Session | None = None
    logger: StructuredLogger | None = None
    retry: RetryConfig | None = None
    _session: requests.Session = field(init=False, repr=False)
    _log: StructuredLogger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._log = self.logger or get_logger()

    # ---- REST helpers -------------------------------------------------
    def url_for(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _display_path(self, url: str) -> str:
        base = self.config.base_url.rstrip("/")
        return url[len(base):] if url.startswith(base) else url

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
        raise_for_status: bool = True,
    ) -> requests.Response:
        """Send one request.

        With ``raise_for_status`` (the default) a non-success status raises
        :class:`GitHubAPIError`; otherwise the response is returned for the
        caller to branch on, including a rate-limit rejection that outlived
        its retries. Transport failures always raise
        :class:`RequestError`.
        """
        url = self.url_for(path)
        shown = self._display_path(url)
        headers = self.config.headers()

        def _run() -> requests.Response:
            self._log.log_request(method, shown)
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=headers,
                    timeout=self.config.timeout,
                )
            except requests.RequestException as exc:
                info = classify_error(exc)
                self._log.log_request_error(method, shown, info.message or info.original_type)
                raise RequestError(f"GitHub API {method} {shown} failed: {info.message}") from exc
            self._log.log_response(method, shown, response.status_code)
            self._raise_if_rate_limited(method, shown, response)
            return response

        try:
            response = run_with_retries(_run, cfg=self.retry)
        except GitHubAPIError as exc:
            # retries exhausted: hand the last rejection back to status-checking callers
            if raise_for_status or exc.response is None:
                raise
            response = exc.response
        if raise_for_status and not is_success(response):
            raise GitHubAPIError(
                f"GitHub API {method} {shown} failed with {response.status_code}: "
                f"{error_message(response)}",
                status=response.status_code,
                response_text=response.text,
            )
        return response

    def _raise_if_rate_limited(self, method: str, shown: str, response: requests.Response) -> None:
        if response.status_code not in RATE_LIMIT_STATUSES:
            return
        retry_after = response.headers.get("Retry-After")
        message = error_message(response)
        if retry_after is None and not is_transient(message):
            return
        hint = f" Retry-After: {retry_after}" if retry_after else ""
        raise GitHubAPIError(
            f"GitHub API {method} {shown} rate limited ({response.status_code}): "
            f"{message or 'rate limit'}{hint}",
            status=response.status_code,
            response_text=response.text,
            response=response,
        )

    def get(self, path: str, *, params: dict[str, Any] | None = None, raise_for_status: bool = True) -> requests.Response:
        return self.request("GET", path, params=params, raise_for_status=raise_for_status)

    def post(self, path: str, json_body: Any) -> requests.Response:
        return self.request("POST", path, json_body=json_body, raise_for_status=False)

    def patch(self, path: str, json_body: Any) -> requests.Response:
        return self.request("PATCH", path, json_body=json_body, raise_for_status=False)

    def delete(self, path: str) -> requests.Response:
        return self.request("DELETE", path, raise_for_status=False)

    def paginate(self, path: str, *, params: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        """Lazily yield normalized records, following ``rel="next"`` links.

        One request is issued per page and only once the previous page has
        been consumed, so a caller that stops early never fetches the rest.
        """
        next_url: str | None = path
        page_params: dict[str, Any] | None = dict(params or {})
        while next_url:
            response = self.request("GET", next_url, params=page_params)
            body = decode_body(response)
            if isinstance(body, dict) and "items" in body:
                body = body["items"]
            if isinstance(body, list):
                for record in body:
                    yield normalize_record(record)
            next_url = (response.links or {}).get("next", {}).get("url")
            # the next link already carries the query string
            page_params = None


__all__ = [
    "ClientConfig",
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
    "RequestError",
    "decode_body",
    "error_message",
    "format_timestamp",
    "is_success",
    "normalize_record",
    "parse_timestamp",
]
