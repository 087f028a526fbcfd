"""Parsing of heart-count button labels.

Labels are free text such as ``"❤️ 150"``, ``"1.5k"`` or ``"2M"``. Everything
except ASCII digits, the ``k``/``m`` magnitude suffixes and the decimal point
is discarded before parsing. Unparseable input yields ``None`` rather than
raising, so callers can drop non-matches silently.
"""

from __future__ import annotations

import math
import re
from typing import Any

_STRIP_PATTERN = re.compile(r"[^0-9kKmM.]")

# Leading numeric prefixes, mirroring a lenient prefix parse ("1.5.2" -> 1.5)
_FLOAT_PREFIX = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_INT_PREFIX = re.compile(r"\d+")

SUFFIX_MULTIPLIERS: dict[str, int] = {
    "k": 1_000,
    "m": 1_000_000,
}


def clean_label(label: Any) -> str:
    """
    Reduce a raw label to the characters that can form a heart count.

    Args:
        label: Raw label (any type, converted with ``str``)

    Returns:
        Lowercased string of digits, ``k``, ``m`` and ``.``; empty if none
    """
    if label is None:
        return ""
    return _STRIP_PATTERN.sub("", str(label)).strip().lower()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_label(label: Any) -> int | None:
    """
    Convert a button label into an integer heart count.

    Suffix ``k`` multiplies by 1,000 and ``m`` by 1,000,000; the product is
    rounded half up. Without a suffix the leading integer is used.

    Args:
        label: Raw label text, possibly with emoji and whitespace

    Returns:
        Parsed non-negative integer, or None if the label is not a number

    Examples:
        >>> parse_label("1.5k")
        1500
        >>> parse_label("❤️42")
        42
        >>> parse_label("abc") is None
        True
    """
    cleaned = clean_label(label)
    if not cleaned:
        return None

    suffix = cleaned[-1]
    multiplier = SUFFIX_MULTIPLIERS.get(suffix)
    if multiplier is not None:
        match = _FLOAT_PREFIX.match(cleaned[:-1])
        if match is None:
            return None
        number = float(match.group())
        if not math.isfinite(number):
            return None
        return _round_half_up(number * multiplier)

    match = _INT_PREFIX.match(cleaned)
    if match is None:
        return None
    try:
        return int(match.group())
    except ValueError:
        # digit run beyond the interpreter's int conversion limit
        return None
