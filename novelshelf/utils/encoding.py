"""Byte-to-text decoding with a fixed fallback chain.

Downloaded and uploaded novels are overwhelmingly UTF-8 or GBK-family
encoded Chinese text.  Rather than running a charset detector, decoding
tries a short, ordered chain and keeps the first strict success:

1. ``utf-8``   -- strict; any invalid sequence fails fast.
2. ``gb18030`` -- strict; the superset of GBK / GB2312.
3. ``latin-1`` -- maps every byte to a code point, so it cannot fail.
   Used only as a last resort; the result may be mojibake but is never
   truncated.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from novelshelf.utils.errors import DecodeError

logger = structlog.get_logger(logger_name=__name__)

FALLBACK_ENCODINGS: tuple[str, ...] = ("utf-8", "gb18030", "latin-1")


@dataclass(frozen=True)
class DecodedText:
    """Decoded text plus the codec that produced it."""

    text: str
    encoding: str


def decode_bytes(data: bytes, encodings: tuple[str, ...] = FALLBACK_ENCODINGS) -> DecodedText:
    """Decode *data* with the first encoding in *encodings* that accepts it.

    Raises :class:`DecodeError` only if every codec rejects the input, which
    cannot happen with the default chain (``latin-1`` accepts any byte).
    """
    for encoding in encodings:
        try:
            text = bytes(data).decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug("decode_attempt_failed", encoding=encoding, size=len(data))
            continue
        if encoding != encodings[0]:
            logger.info("decode_fallback_used", encoding=encoding, size=len(data))
        return DecodedText(text=text, encoding=encoding)

    raise DecodeError(
        message=f"None of {', '.join(encodings)} could decode {len(data)} bytes",
        provider_name="decoder",
    )
