"""Generic set routines over a matching predicate.

The reconcilers express "which records exist on both sides" as a predicate
``matches(left, right) -> bool`` and compose it with :func:`difference` and
:func:`intersection`. Both routines keep the order of the left-hand input.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypedDict, TypeVar

L = TypeVar("L")
R = TypeVar("R")


class _LabelDict(TypedDict, total=False):
    name: str


class _IssueDict(TypedDict, total=False):
    labels: list[_LabelDict]


def difference(
    left: Iterable[L], right: Sequence[R], matches: Callable[[L, R], bool]
) -> list[L]:
    """Items of ``left`` that match no item of ``right``."""
    return [item for item in left if not any(matches(item, other) for other in right)]


def intersection(
    left: Iterable[L], right: Sequence[R], matches: Callable[[L, R], bool]
) -> list[L]:
    """Items of ``left`` that match at least one item of ``right``."""
    return [item for item in left if any(matches(item, other) for other in right)]


def changed_fields(current: Any, desired: Any, fields: Iterable[str]) -> list[str]:
    """Names of ``fields`` whose values differ between two records (exact comparison)."""
    return [name for name in fields if getattr(current, name) != getattr(desired, name)]


def extract_label_names(issue: dict[str, Any] | _IssueDict) -> set[str]:
    names: set[str] = set()
    labels_any = issue.get("labels")
    if isinstance(labels_any, list):
        for entry in labels_any:
            if isinstance(entry, dict):
                name_val = entry.get("name")
                if isinstance(name_val, str):
                    names.add(name_val)
            elif isinstance(entry, str):
                names.add(entry)
    return names


__all__ = [
    "changed_fields",
    "difference",
    "extract_label_names",
    "intersection",
]
