"""Tests for UX helpers module."""

from __future__ import annotations

import io

import pytest

from githubsync.core import summarize
from githubsync.models import ActionResult
from githubsync.ux import Colors, colorize, print_error, print_summary_box


def _tty() -> io.StringIO:
    stream = io.StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]
    return stream


def test_colorize_with_tty_support(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm-256color")

    result = colorize("test", Colors.RED, bold=True, stream=_tty())

    assert result == f"{Colors.BOLD}{Colors.RED}test{Colors.RESET}"


def test_colorize_respects_no_color(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")

    assert colorize("test", Colors.RED, stream=_tty()) == "test"


def test_colorize_plain_for_non_tty() -> None:
    assert colorize("test", Colors.GREEN, stream=io.StringIO()) == "test"


def test_print_error_is_red_on_terminals(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.setenv("TERM", "xterm")
    stream = _tty()

    print_error("Could not find label: Overdue", stream=stream)

    assert stream.getvalue() == f"{Colors.BOLD}{Colors.RED}Could not find label: Overdue{Colors.RESET}\n"


def test_print_summary_box_lists_counts() -> None:
    results = [
        ActionResult("add", "label", "a", 201),
        ActionResult("add", "label", "b", 422),
        ActionResult("retain", "label", "c"),
    ]
    stream = io.StringIO()

    print_summary_box("Labels", summarize(results), stream=stream)

    out = stream.getvalue()
    assert "Labels" in out
    assert "  add     2" in out
    assert "  retain  1" in out
    assert "  failed  1" in out


def test_summarize_counts_failures_last() -> None:
    rows = summarize([ActionResult("update", "label", "x", 200), ActionResult("delete", "label", "y", 204)])

    assert rows == [("update", 1), ("delete", 1), ("failed", 0)]
