from __future__ import annotations

from collections.abc import Iterable
from typing import Any, TypeVar

T = TypeVar("T")


def normalize_key(value: Any) -> str:
    return str(value or "").lower()


def _field(record: Any, key: str) -> Any:
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key, None)


def build_keyed(records: Iterable[T], key: str) -> dict[str, T]:
    """Index records by the lowercased value of ``key``.

    Works for API dicts and model objects alike. Insertion order follows the
    input; when two records normalize to the same key the later one wins.
    """
    keyed: dict[str, T] = {}
    for record in records:
        keyed[normalize_key(_field(record, key))] = record
    return keyed


__all__ = ["build_keyed", "normalize_key"]
