"""Dotted-path lookup over decoded JSON documents.

Paths look like ``data.book.title`` or ``items[0].chapters[2].text``: the
path is split on ``.``; each segment names a key and may carry one or more
bracketed integer indices.  A bare numeric segment (``items.0``) also
indexes into a list.

Lookups distinguish a value that is *absent* from one that is present but
``None``: :data:`MISSING` is returned as soon as an intermediate segment
does not exist, is not a container, or an index is out of range.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any, Final

_SEGMENT = re.compile(r"^(?P<key>[^\[\]]*)(?P<indices>(?:\[\d+\])*)$", re.ASCII)
_INDEX = re.compile(r"\[(\d+)\]", re.ASCII)
_DIGITS = re.compile(r"\d+", re.ASCII)


class _Missing:
    """Sentinel type for "path not present"."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()


def _step_key(current: Any, key: str) -> Any:
    if isinstance(current, dict):
        return current.get(key, MISSING)
    if isinstance(current, list) and _DIGITS.fullmatch(key):
        return _step_index(current, int(key))
    return MISSING


def _step_index(current: Any, index: int) -> Any:
    if not isinstance(current, list) or index >= len(current):
        return MISSING
    return current[index]


def resolve_path(document: Any, path: str) -> Any:
    """Return the value at *path* inside *document*, or :data:`MISSING`.

    >>> resolve_path({"a": {"b": [{"c": 5}]}}, "a.b[0].c")
    5
    >>> resolve_path({}, "x.y")
    MISSING
    """
    if not path or document is None:
        return MISSING

    current = document
    for segment in path.split("."):
        match = _SEGMENT.match(segment)
        if match is None:
            return MISSING

        key = match.group("key")
        if key:
            current = _step_key(current, key)
            if current is MISSING:
                return MISSING

        for raw_index in _INDEX.findall(match.group("indices")):
            current = _step_index(current, int(raw_index))
            if current is MISSING:
                return MISSING

        if not key and not match.group("indices"):
            # Empty segment, e.g. "a..b".
            return MISSING

    return current


def is_blank(value: Any) -> bool:
    """``True`` for values that do not count as a usable field."""
    return value is MISSING or value is None or value == ""


def find_first(document: Any, paths: Iterable[str]) -> Any:
    """Resolve *paths* in order and return the first non-blank value.

    Returns :data:`MISSING` when every candidate is absent, ``None`` or the
    empty string.
    """
    for path in paths:
        value = resolve_path(document, path)
        if not is_blank(value):
            return value
    return MISSING


def candidate_paths(override: str | None, defaults: Sequence[str]) -> list[str]:
    """Put a caller-supplied *override* path in front of *defaults*."""
    if override:
        return [override, *defaults]
    return list(defaults)
