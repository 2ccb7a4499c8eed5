"""Human-readable formatting helpers."""

from __future__ import annotations

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_file_size(num_bytes: int) -> str:
    """Format a byte count with binary (1024) units and up to two decimals.

    >>> format_file_size(0)
    '0 B'
    >>> format_file_size(1536)
    '1.5 KB'
    """
    if num_bytes <= 0:
        return "0 B"

    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and num_bytes >= 1024 ** (exponent + 1):
        exponent += 1

    value = num_bytes / (1024**exponent)
    # Two decimals, then drop trailing zeros ("1.50" -> "1.5", "2.00" -> "2").
    rendered = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{rendered} {_SIZE_UNITS[exponent]}"
