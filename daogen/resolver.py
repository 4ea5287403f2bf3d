# File: daogen/resolver.py
"""
daogen - Type Resolver
========================
Pure mapping from introspected column metadata to the target representation:

    (native type, nullability, disambiguation hint) → TypeDescriptor

plus default-value normalization and the typed Python literal that generated
code uses for default substitution.  Nothing in this module touches the
database or the file system.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from daogen.enums import enum_family, extract_enum_values
from daogen.models import (
    BaseKind,
    ColumnDescriptor,
    DisambiguationHint,
    ResolvedColumn,
    TypeDescriptor,
    TypeKind,
)
from daogen.utils import column_to_field_name, wrap_in_quotes

logger: logging.Logger = logging.getLogger("daogen.resolver")

# ---------------------------------------------------------------------------
# Native type families
# ---------------------------------------------------------------------------

INTEGER_TYPES: FrozenSet[str] = frozenset({
    "int", "integer", "smallint", "mediumint", "bigint", "year",
})
BOOLEAN_AMBIGUOUS_TYPES: FrozenSet[str] = frozenset({"tinyint"})
BOOLEAN_TYPES: FrozenSet[str] = frozenset({"bool", "boolean"})
FLOAT_TYPES: FrozenSet[str] = frozenset({
    "float", "double", "decimal", "numeric", "real", "double precision",
})
TIMESTAMP_TYPES: FrozenSet[str] = frozenset({"date", "datetime", "timestamp"})
ENUM_TYPES: FrozenSet[str] = frozenset({"enum"})

_BIT_ONE_RE: re.Pattern[str] = re.compile(r"^\s*bit\s*\(\s*1\s*\)", re.IGNORECASE)
_SQL_EXPRESSION_DEFAULT_RE: re.Pattern[str] = re.compile(
    r"^\s*(current_timestamp|now|localtime|localtimestamp)\s*(\(\s*\d*\s*\))?\s*$",
    re.IGNORECASE,
)
_BIT_LITERAL_RE: re.Pattern[str] = re.compile(r"^b'([01]+)'$", re.IGNORECASE)


def is_boolean_ambiguous(native_type: str) -> bool:
    """True for native types whose target kind depends on stored data."""
    return native_type.strip().lower() in BOOLEAN_AMBIGUOUS_TYPES


# ---------------------------------------------------------------------------
# Type resolution
# ---------------------------------------------------------------------------


def resolve_type(
    native_type: str,
    nullable: bool,
    hint: DisambiguationHint = DisambiguationHint.NONE,
    full_type: str = "",
) -> TypeDescriptor:
    """
    Resolve a native column type to a ``TypeDescriptor``.

    ``tinyint`` resolves to bool only with a ``boolean`` hint; without a
    hint it is treated as an integer.  Types outside every known family
    fall through to string.
    """
    native: str = native_type.strip().lower()
    kind: TypeKind = TypeKind.NULLABLE if nullable else TypeKind.PLAIN
    base: BaseKind

    if native in BOOLEAN_AMBIGUOUS_TYPES:
        base = BaseKind.BOOL if hint == DisambiguationHint.BOOLEAN else BaseKind.INT
    elif native in INTEGER_TYPES:
        base = BaseKind.INT
    elif native in BOOLEAN_TYPES:
        base = BaseKind.BOOL
    elif native == "bit":
        base = BaseKind.BOOL if _BIT_ONE_RE.match(full_type or "bit(1)") else BaseKind.INT
    elif native in FLOAT_TYPES:
        base = BaseKind.FLOAT
    elif native in TIMESTAMP_TYPES:
        base = BaseKind.TIMESTAMP
    elif native in ENUM_TYPES:
        base = BaseKind.STRING_ENUM
    else:
        base = BaseKind.STRING

    return TypeDescriptor(kind=kind, base_kind=base)


def normalize_default(default: Optional[str], nullable: bool) -> Optional[str]:
    """
    Reduce a raw column default to a literal default, or ``None``.

    - ``NULL`` in any case means no default.
    - ``0`` on a nullable column means no default.
    - SQL expressions (``CURRENT_TIMESTAMP``, ``now()``) are not literals.
    """
    if default is None:
        return None
    if default.strip().upper() == "NULL":
        return None
    if nullable and default.strip() == "0":
        return None
    if _SQL_EXPRESSION_DEFAULT_RE.match(default):
        return None
    # MariaDB reports string defaults quoted
    if len(default) >= 2 and default[0] == "'" and default[-1] == "'":
        return default[1:-1].replace("''", "'")
    return default


def is_expression_default(default: Optional[str]) -> bool:
    """True for a server-side expression default such as ``CURRENT_TIMESTAMP``."""
    return default is not None and bool(_SQL_EXPRESSION_DEFAULT_RE.match(default))


def datetime_literal(value: datetime) -> str:
    """Render ``value`` as a ``datetime(...)`` constructor call."""
    parts: List[int] = [value.year, value.month, value.day]
    if value.hour or value.minute or value.second:
        parts.extend([value.hour, value.minute, value.second])
    return "datetime(" + ", ".join(str(p) for p in parts) + ")"


def default_literal(default: Optional[str], type_descriptor: TypeDescriptor) -> Optional[str]:
    """
    Render a normalized default as a Python literal for the target type.

    Returns ``None`` when the value cannot be represented, which generated
    code treats as "no default".
    """
    if default is None:
        return None

    base: BaseKind = type_descriptor.base_kind
    raw: str = default.strip()
    try:
        if base == BaseKind.INT:
            bit_match: Optional[re.Match[str]] = _BIT_LITERAL_RE.match(raw)
            if bit_match:
                return str(int(bit_match.group(1), 2))
            return str(int(float(raw)))
        if base == BaseKind.FLOAT:
            return repr(float(raw))
        if base == BaseKind.BOOL:
            bit_match = _BIT_LITERAL_RE.match(raw)
            number: int = int(bit_match.group(1), 2) if bit_match else int(float(raw))
            return "True" if number else "False"
        if base == BaseKind.TIMESTAMP:
            return datetime_literal(datetime.fromisoformat(raw))
    except ValueError:
        logger.warning(
            "Default %r is not a valid %s literal, ignoring it.",
            default,
            base.value,
        )
        return None
    return wrap_in_quotes(default)


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------


def resolve_column(
    column: ColumnDescriptor,
    hint: DisambiguationHint = DisambiguationHint.NONE,
) -> ResolvedColumn:
    """
    Resolve one introspected column.

    A primary-key column that would resolve to bool is re-classified as
    int, so key lookups and last-insert-id capture stay numeric.
    """
    type_descriptor: TypeDescriptor = resolve_type(
        column.native_type,
        column.nullable,
        hint,
        column.full_type,
    )
    if column.is_primary and type_descriptor.base_kind == BaseKind.BOOL:
        logger.debug(
            "Primary key column '%s' resolved to bool, using int instead.",
            column.name,
        )
        type_descriptor = type_descriptor.with_base_kind(BaseKind.INT)

    allowed: Tuple[str, ...] = ()
    if enum_family(column.full_type) is not None:
        allowed = extract_enum_values(column.full_type)

    return ResolvedColumn(
        column=column,
        type_descriptor=type_descriptor,
        field_name=column_to_field_name(column.name),
        default=normalize_default(column.default, column.nullable),
        allowed_values=allowed,
        server_default=is_expression_default(column.default),
    )


def resolve_columns(
    described: Sequence[Tuple[ColumnDescriptor, DisambiguationHint]],
) -> List[ResolvedColumn]:
    """Resolve every introspected column, preserving declared order."""
    resolved: List[ResolvedColumn] = [resolve_column(col, hint) for col, hint in described]
    counts: Dict[BaseKind, int] = {}
    for col in resolved:
        counts[col.type_descriptor.base_kind] = counts.get(col.type_descriptor.base_kind, 0) + 1
    logger.debug(
        "Resolved %d column(s): %s",
        len(resolved),
        ", ".join(f"{k.value}={v}" for k, v in counts.items()),
    )
    return resolved


__all__: List[str] = [
    "INTEGER_TYPES",
    "BOOLEAN_AMBIGUOUS_TYPES",
    "BOOLEAN_TYPES",
    "FLOAT_TYPES",
    "TIMESTAMP_TYPES",
    "ENUM_TYPES",
    "is_boolean_ambiguous",
    "resolve_type",
    "normalize_default",
    "is_expression_default",
    "datetime_literal",
    "default_literal",
    "resolve_column",
    "resolve_columns",
]
