"""Heuristic title / author extraction for plain-text novels.

Text files rarely carry structured metadata, but Chinese web-novel dumps
follow a handful of conventions: the title in book-title brackets
(``《斗破苍穹》``), explicit ``书名：`` / ``标题：`` / ``作者：`` label lines,
or a bare first line directly followed by a ``第一章`` chapter heading.
Each field is matched against an ordered pattern list; the first match
wins.  When nothing matches, the title falls back to the source file name
and the author to the :data:`UNKNOWN_AUTHOR` sentinel.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import unquote, urlsplit

UNKNOWN_TITLE = "未知小说"
UNKNOWN_AUTHOR = "未知作者"

MAX_TITLE_LENGTH = 50
_TRUNCATED_TITLE_LENGTH = 47
_ELLIPSIS = "..."

_TITLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^.*?《(.+?)》", re.MULTILINE),
    re.compile(r"^.*?书名[：:][ \t]*(.+?)$", re.MULTILINE),
    re.compile(r"^.*?标题[：:][ \t]*(.+?)$", re.MULTILINE),
    re.compile(r"^\s*(?:title|book\s*name)\s*[：:][ \t]*(.+?)$", re.MULTILINE | re.IGNORECASE),
    # First line is the title when the next line opens a chapter.
    re.compile(r"^(.+?)\n.*第.*?章", re.MULTILINE),
]

_AUTHOR_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"作者[：:][ \t]*(.+?)$", re.MULTILINE),
    re.compile(r"^\s*author\s*[：:][ \t]*(.+?)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"\bwritten\s+by\s+(.+?)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"著[ \t]*(.+?)$", re.MULTILINE),
    re.compile(r"编写[：:][ \t]*(.+?)$", re.MULTILINE),
]

_EXTENSION = re.compile(r"\.[^/.]+$")


@dataclass(frozen=True)
class NovelMetadata:
    """Best-effort title and author."""

    title: str
    author: str


def source_basename(source: str) -> str:
    """Return the last path segment of a URL or file path, percent-decoded."""
    path = urlsplit(source).path if "://" in source else source
    name = PurePosixPath(path.replace("\\", "/")).name
    return unquote(name)


def default_title(source: str) -> str:
    """Derive a title from *source* by stripping the file extension."""
    stem = _EXTENSION.sub("", source_basename(source)).strip()
    return stem or UNKNOWN_TITLE


def _first_match(patterns: list[re.Pattern[str]], content: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(content)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def truncate_title(title: str) -> str:
    if len(title) > MAX_TITLE_LENGTH:
        return title[:_TRUNCATED_TITLE_LENGTH] + _ELLIPSIS
    return title


def extract_novel_info(content: str, source: str) -> NovelMetadata:
    """Infer a title and author for *content* fetched from *source*.

    Args:
        content: Decoded novel text.
        source: The URL or file name the text came from.

    Returns:
        A :class:`NovelMetadata`; the author is never empty.
    """
    title = _first_match(_TITLE_PATTERNS, content) or default_title(source)
    author = _first_match(_AUTHOR_PATTERNS, content) or UNKNOWN_AUTHOR
    return NovelMetadata(title=truncate_title(title), author=author)
