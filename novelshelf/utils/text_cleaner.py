"""Detection and removal of garbled characters in decoded novel text.

Encoding mismatches leave recognisable debris in otherwise readable text:

1. **Control characters** -- C0 controls (other than tab / newline /
   carriage return), DEL and the C1 block ``U+0080``-``U+009F``, usually
   bytes of a multi-byte sequence decoded as Latin-1.
2. **Garbled signatures** -- the replacement character ``U+FFFD`` and a
   couple of Latin letters (``Ʈ``, ``Ů``) that show up when GBK bytes are
   read as a Western code page.
3. **锟斤拷** -- the classic result of UTF-8 replacement characters being
   re-encoded and then decoded as GBK.
4. **Private-use / non-character code points** that no font renders.
5. **Noise runs** -- anything outside CJK, kana, hangul, ASCII, common
   CJK and general punctuation, and whitespace.

Detection grades text as ``low`` / ``medium`` / ``high``; cleaning runs all
stages and reports how many characters were removed versus replaced by a
space.  Whitespace and line structure are never touched, and cleaning is
idempotent: cleaning already-cleaned text changes nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger(logger_name=__name__)


class Severity(str, Enum):  # noqa: UP042
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Pattern category labels reported by detection.
GARBLED_SIGNATURE = "garbled_signature"
NOISE_RUN = "noise_run"
CONTROL_CHARACTERS = "control_characters"
PRIVATE_USE = "private_use"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_SIGNATURE_CHARS = re.compile(r"[\ufffd\u01ae\u016e\x80-\x9f]")
_REPLACEMENT_RUN = re.compile(r"\ufffd+")
_STRAY_LETTERS = re.compile(r"[\u01ae\u016e]")
_MOJIBAKE_TRIGRAM = "\u951f\u65a4\u62f7"
_PRIVATE_USE = re.compile(r"[\ue000-\uf8ff\ufff0-\uffff\U000f0000-\U0010ffff]")

_ALLOWED = (
    r"\u4e00-\u9fff\u3400-\u4dbf"  # CJK unified ideographs + extension A
    r"\u3000-\u303f"  # CJK symbols and punctuation
    r"\u3040-\u30ff"  # hiragana / katakana
    r"\uac00-\ud7af"  # hangul syllables
    r"\uff00-\uffef"  # half-width / full-width forms
    r"\u2010-\u206f\u00b7"  # general punctuation (quotes, dashes, ellipsis), middle dot
    r"\x20-\x7e"  # printable ASCII
    r"\s"
)
_NOISE = re.compile(rf"[^{_ALLOWED}]+")
_NOISE_DETECT = re.compile(rf"[^{_ALLOWED}]{{5,}}")

# Runs longer than this are deleted; shorter runs collapse to one space.
NOISE_RUN_LIMIT = 5


@dataclass(frozen=True)
class CleaningResult:
    cleaned_text: str
    removed_chars: int = 0
    replaced_chars: int = 0


@dataclass(frozen=True)
class GarbledDetection:
    has_garbled: bool
    severity: Severity
    patterns: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AutoCleanResult:
    text: str
    was_cleaned: bool
    severity: Severity
    patterns: list[str] = field(default_factory=list)
    removed_chars: int = 0
    replaced_chars: int = 0


def detect_garbled_text(text: str) -> GarbledDetection:
    """Classify how damaged *text* looks.

    ``high`` means garbled signatures or control characters are present;
    ``medium`` means only noise runs or private-use code points were found;
    ``low`` means nothing suspicious.
    """
    patterns: list[str] = []
    severity = Severity.LOW

    if _SIGNATURE_CHARS.search(text) or _MOJIBAKE_TRIGRAM in text:
        patterns.append(GARBLED_SIGNATURE)
        severity = Severity.HIGH

    if _NOISE_DETECT.search(text):
        patterns.append(NOISE_RUN)
        if severity is not Severity.HIGH:
            severity = Severity.MEDIUM

    if _CONTROL_CHARS.search(text):
        patterns.append(CONTROL_CHARACTERS)
        severity = Severity.HIGH

    if _PRIVATE_USE.search(text):
        patterns.append(PRIVATE_USE)
        if severity is not Severity.HIGH:
            severity = Severity.MEDIUM

    return GarbledDetection(has_garbled=bool(patterns), severity=severity, patterns=patterns)


def clean_garbled_text(
    text: str,
    remove_control_chars: bool = True,
    replace_unknown_chars: bool = True,
    sweep_noise: bool = True,
) -> CleaningResult:
    """Strip garbled characters from *text*.

    Args:
        text: Decoded text to clean.
        remove_control_chars: Drop C0/C1 control characters and DEL.
        replace_unknown_chars: Replace ``U+FFFD`` runs with a space and drop
            the other signature characters, ``锟斤拷`` and private-use code
            points.
        sweep_noise: Delete noise runs longer than :data:`NOISE_RUN_LIMIT`,
            collapse shorter ones to a single space.

    Returns:
        A :class:`CleaningResult` with removed / replaced character counts.
    """
    cleaned = text
    removed = 0
    replaced = 0

    if remove_control_chars:
        cleaned, count = _CONTROL_CHARS.subn("", cleaned)
        removed += count

    if replace_unknown_chars:
        def _replace_run(match: re.Match[str]) -> str:
            nonlocal replaced
            replaced += len(match.group(0))
            return " "

        cleaned = _REPLACEMENT_RUN.sub(_replace_run, cleaned)

        cleaned, count = _STRAY_LETTERS.subn("", cleaned)
        removed += count

        cleaned, count = _PRIVATE_USE.subn("", cleaned)
        removed += count

    if sweep_noise:
        def _sweep(match: re.Match[str]) -> str:
            nonlocal removed, replaced
            run = match.group(0)
            if len(run) > NOISE_RUN_LIMIT:
                removed += len(run)
                return ""
            replaced += len(run)
            return " "

        cleaned = _NOISE.sub(_sweep, cleaned)

    if replace_unknown_chars:
        # Runs last: any earlier deletion, or removing a trigram itself,
        # can splice a new one together ("锟锟斤拷斤拷").
        while _MOJIBAKE_TRIGRAM in cleaned:
            count = cleaned.count(_MOJIBAKE_TRIGRAM)
            cleaned = cleaned.replace(_MOJIBAKE_TRIGRAM, "")
            removed += count * len(_MOJIBAKE_TRIGRAM)

    return CleaningResult(cleaned_text=cleaned, removed_chars=removed, replaced_chars=replaced)


def smart_clean(text: str) -> CleaningResult:
    """Run every cleaning stage over *text*."""
    return clean_garbled_text(text)


def auto_clean(text: str) -> AutoCleanResult:
    """Detect first; clean only when the text is not graded ``low``."""
    detection = detect_garbled_text(text)
    if detection.severity is Severity.LOW:
        return AutoCleanResult(text=text, was_cleaned=False, severity=Severity.LOW)

    result = smart_clean(text)
    logger.info(
        "garbled_text_cleaned",
        severity=detection.severity.value,
        patterns=detection.patterns,
        removed=result.removed_chars,
        replaced=result.replaced_chars,
    )
    return AutoCleanResult(
        text=result.cleaned_text,
        was_cleaned=True,
        severity=detection.severity,
        patterns=detection.patterns,
        removed_chars=result.removed_chars,
        replaced_chars=result.replaced_chars,
    )


def clean_text(text: str) -> str:
    """Convenience wrapper returning only the cleaned string."""
    return smart_clean(text).cleaned_text
