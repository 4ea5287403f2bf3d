# File: daogen/enums.py
"""
daogen - Enum Constraint Extractor
====================================
Parses MySQL ``enum('A','B')`` / ``set('x','y')`` column type strings into the
ordered tuple of allowed values.

The parser walks the value list character by character, so quoted values may
contain commas, parentheses and escaped quotes (``''`` or ``\\'``).
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from daogen.errors import SynthesisError

logger: logging.Logger = logging.getLogger("daogen.enums")

_ENUM_PREFIX_RE: re.Pattern[str] = re.compile(r"^\s*(enum|set)\s*\(", re.IGNORECASE)

_QUOTE: str = "'"
_BACKSLASH: str = "\\"


def enum_family(full_type: Optional[str]) -> Optional[str]:
    """Return ``"enum"`` / ``"set"`` for constrained types, else ``None``."""
    if not full_type:
        return None
    match: Optional[re.Match[str]] = _ENUM_PREFIX_RE.match(full_type)
    if match is None:
        return None
    return match.group(1).lower()


def is_enum_type(full_type: Optional[str]) -> bool:
    return enum_family(full_type) is not None


def extract_enum_values(full_type: Optional[str]) -> Tuple[str, ...]:
    """
    Return the allowed values of an ``enum(...)`` or ``set(...)`` type.

    Args:
        full_type: Full column type, e.g. ``"enum('A','B','C')"``.

    Returns:
        Values in declared order, ``()`` for any other type.

    Raises:
        SynthesisError: If the value list is malformed (unterminated quote
            or missing closing parenthesis).
    """
    if not full_type:
        return ()
    match: Optional[re.Match[str]] = _ENUM_PREFIX_RE.match(full_type)
    if match is None:
        return ()

    text: str = full_type
    pos: int = match.end()
    length: int = len(text)
    values: List[str] = []

    while pos < length:
        ch: str = text[pos]

        if ch.isspace() or ch == ",":
            pos += 1
            continue

        if ch == ")":
            logger.debug("Parsed %d value(s) from %s", len(values), full_type)
            return tuple(values)

        if ch == _QUOTE:
            value, pos = _read_quoted(text, pos + 1)
            values.append(value)
            continue

        # Unquoted token, read up to the next delimiter
        end: int = pos
        while end < length and text[end] not in ",)":
            end += 1
        values.append(text[pos:end].strip())
        pos = end

    raise SynthesisError(f"Missing closing parenthesis in type {full_type!r}")


def _read_quoted(text: str, pos: int) -> Tuple[str, int]:
    """Read a single-quoted value starting after its opening quote."""
    buf: List[str] = []
    length: int = len(text)
    while pos < length:
        ch: str = text[pos]
        if ch == _BACKSLASH and pos + 1 < length:
            buf.append(text[pos + 1])
            pos += 2
            continue
        if ch == _QUOTE:
            if pos + 1 < length and text[pos + 1] == _QUOTE:
                buf.append(_QUOTE)
                pos += 2
                continue
            return "".join(buf), pos + 1
        buf.append(ch)
        pos += 1
    raise SynthesisError(f"Unterminated quoted value in type {text!r}")


__all__: List[str] = [
    "enum_family",
    "is_enum_type",
    "extract_enum_values",
]
