# File: daogen/keys.py
"""
daogen - Primary Key Analyzer
===============================
Derives key cardinality, representative example literals and the default
ordering clause from a table's resolved columns.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from daogen.models import (
    BaseKind,
    ExampleValues,
    KeyColumn,
    PrimaryKeySpec,
    ResolvedColumn,
)

logger: logging.Logger = logging.getLogger("daogen.keys")

# Literal used in generated examples and tests for each key type
EXAMPLE_KEY_LITERALS: Dict[BaseKind, str] = {
    BaseKind.INT: "12345",
    BaseKind.FLOAT: "12345.0",
    BaseKind.BOOL: "True",
    BaseKind.STRING: '"12345"',
    BaseKind.STRING_ENUM: '"12345"',
    BaseKind.TIMESTAMP: "datetime(2000, 1, 1)",
}

EXAMPLE_STRING_LITERAL: str = '"example"'

_STRING_KINDS = (BaseKind.STRING, BaseKind.STRING_ENUM)


def analyze_primary_key(columns: Sequence[ResolvedColumn]) -> PrimaryKeySpec:
    """
    Collect the primary-key columns in declared order.

    Returns an empty spec for tables without a key; the template engine
    then emits only the bulk read, query and exec operations.
    """
    key_columns: List[KeyColumn] = []
    for col in columns:
        if not col.is_primary:
            continue
        key_columns.append(
            KeyColumn(
                name=col.name,
                field_name=col.field_name,
                type_descriptor=col.type_descriptor,
                example=example_literal(col),
            )
        )

    order_clause: str = f"{key_columns[0].name} DESC" if key_columns else ""
    spec: PrimaryKeySpec = PrimaryKeySpec(
        columns=tuple(key_columns),
        order_clause=order_clause,
    )
    logger.debug("Primary key analysed: %r", spec)
    return spec


def example_literal(column: ResolvedColumn) -> str:
    """Return the example literal for a key column of any type."""
    if column.has_enum_constraint and column.type_descriptor.base_kind in _STRING_KINDS:
        first: str = column.allowed_values[0]
        return '"' + first.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return EXAMPLE_KEY_LITERALS[column.type_descriptor.base_kind]


def _pick_example_column(columns: Sequence[ResolvedColumn]) -> Optional[ResolvedColumn]:
    for index, col in enumerate(columns):
        if index > 1 and col.type_descriptor.base_kind in _STRING_KINDS:
            return col
    for col in columns:
        if not col.is_primary and col.type_descriptor.base_kind in _STRING_KINDS:
            return col
    return None


def build_example_values(
    columns: Sequence[ResolvedColumn],
    key: PrimaryKeySpec,
) -> ExampleValues:
    """
    Pick the literals used to seed generated examples and test skeletons.

    The example column is the first string column after the second declared
    column, falling back to the first non-key string column.
    """
    chosen: Optional[ResolvedColumn] = _pick_example_column(columns)
    literal: str = EXAMPLE_STRING_LITERAL
    if chosen is not None and chosen.has_enum_constraint:
        literal = example_literal(chosen)

    return ExampleValues(
        id_literals=tuple(k.example for k in key.columns),
        column=chosen.name if chosen is not None else "",
        column_field=chosen.field_name if chosen is not None else "",
        column_literal=literal,
        order_clause=key.order_clause,
    )


__all__: List[str] = [
    "EXAMPLE_KEY_LITERALS",
    "EXAMPLE_STRING_LITERAL",
    "analyze_primary_key",
    "example_literal",
    "build_example_values",
]
