# File: daogen/introspection.py
"""
daogen - Schema Introspector
==============================
Reads column metadata for a table through a ``SchemaSource`` and, where the
declared type alone is ambiguous, samples live data to pick a target type.

``SQLAlchemySchemaSource`` implements the source on MySQL's
``information_schema`` with ``sqlalchemy.text`` queries; tests substitute an
in-memory source with the same three methods.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Set, Tuple

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from daogen.errors import IntrospectionFailure, SchemaNotFound
from daogen.models import (
    BooleanDetection,
    ColumnDescriptor,
    DisambiguationHint,
    GenerationConfig,
    GenerationContext,
    KeyRole,
)
from daogen.resolver import is_boolean_ambiguous
from daogen.utils import Timer, quote_sql_identifier

logger: logging.Logger = logging.getLogger("daogen.introspection")

ColumnRow = Mapping[str, Any]

_DECLARED_BOOL_RE: re.Pattern[str] = re.compile(r"^\s*tinyint\s*\(\s*1\s*\)", re.IGNORECASE)

_BOOLEAN_VALUES: Set[str] = {"0", "1"}

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS_SQL: str = (
    "SELECT column_name AS name, is_nullable AS is_nullable, "
    "column_key AS column_key, data_type AS data_type, "
    "column_type AS column_type, column_default AS column_default, "
    "extra AS extra "
    "FROM information_schema.columns "
    "WHERE table_schema = :database AND table_name = :table "
    "ORDER BY ordinal_position"
)

_TABLES_SQL: str = (
    "SELECT table_name AS name FROM information_schema.tables "
    "WHERE table_schema = :database AND table_type = 'BASE TABLE' "
    "ORDER BY table_name"
)

# Three distinct non-NULL values are enough to prove a column is not boolean
_DISTINCT_SAMPLE_LIMIT: int = 3


# ---------------------------------------------------------------------------
# Schema source interface
# ---------------------------------------------------------------------------


class SchemaSource(Protocol):
    """Read-only access to table metadata and stored values."""

    def list_columns(self, database: str, table: str) -> Sequence[ColumnRow]:
        """
        Return one row per column in ordinal order.

        Each row carries ``name``, ``is_nullable`` (``"YES"``/``"NO"``),
        ``column_key``, ``data_type``, ``column_type``, ``column_default``
        and ``extra``.
        """
        ...

    def distinct_values(self, database: str, table: str, column: str) -> List[Optional[str]]:
        """Return distinct stored values of ``column``, stringified."""
        ...

    def list_tables(self, database: str) -> List[str]:
        ...


def build_url(config: GenerationConfig) -> URL:
    """Build the SQLAlchemy URL for the introspection connection."""
    password: str = config.password.get_secret_value() or os.environ.get(
        config.password_env, ""
    )
    return URL.create(
        drivername=config.driver,
        username=config.username,
        password=password or None,
        host=config.host,
        port=config.port,
        database=config.database,
        query={"charset": config.charset},
    )


def build_engine(config: GenerationConfig) -> Engine:
    """Create the single engine used for a whole generation run."""
    engine: Engine = create_engine(build_url(config), pool_pre_ping=True)
    logger.debug(
        "Created engine for %s@%s:%d/%s",
        config.username,
        config.host,
        config.port,
        config.database,
    )
    return engine


class SQLAlchemySchemaSource:
    """``SchemaSource`` backed by MySQL's ``information_schema``."""

    def __init__(self, engine: Engine) -> None:
        self._engine: Engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def list_columns(self, database: str, table: str) -> List[Dict[str, Any]]:
        try:
            with self._engine.connect() as conn:
                result = conn.execute(
                    text(_COLUMNS_SQL), {"database": database, "table": table}
                )
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as exc:
            raise IntrospectionFailure(
                f"Column metadata query failed: {exc}", table=table
            ) from exc

    def distinct_values(self, database: str, table: str, column: str) -> List[Optional[str]]:
        quoted_col: str = quote_sql_identifier(column)
        sql: str = (
            f"SELECT DISTINCT {quoted_col} FROM "
            f"{quote_sql_identifier(database)}.{quote_sql_identifier(table)} "
            f"WHERE {quoted_col} IS NOT NULL LIMIT {_DISTINCT_SAMPLE_LIMIT}"
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(text(sql)).all()
        except SQLAlchemyError as exc:
            raise IntrospectionFailure(
                f"Sampling column '{column}' failed: {exc}", table=table
            ) from exc
        return [None if row[0] is None else str(row[0]) for row in rows]

    def list_tables(self, database: str) -> List[str]:
        try:
            with self._engine.connect() as conn:
                result = conn.execute(text(_TABLES_SQL), {"database": database})
                return [str(row[0]) for row in result]
        except SQLAlchemyError as exc:
            raise IntrospectionFailure(
                f"Listing tables of '{database}' failed: {exc}"
            ) from exc


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def row_to_descriptor(row: ColumnRow) -> ColumnDescriptor:
    """Convert one metadata row to an immutable ``ColumnDescriptor``."""
    key: str = (_text_or_none(row.get("column_key")) or "").upper()
    return ColumnDescriptor(
        name=_text_or_none(row["name"]) or "",
        nullable=(_text_or_none(row.get("is_nullable")) or "").upper() == "YES",
        key_role=KeyRole.PRIMARY if key == "PRI" else KeyRole.NONE,
        native_type=_text_or_none(row["data_type"]) or "",
        full_type=_text_or_none(row.get("column_type")) or "",
        default=_text_or_none(row.get("column_default")),
        extra=_text_or_none(row.get("extra")) or None,
    )


def is_boolean_sample(values: Sequence[Optional[str]]) -> bool:
    """
    True when every observed non-NULL value is 0 or 1 (vacuously for none).

    NULL never counts against a boolean: ``distinct_values`` samples with
    ``WHERE col IS NOT NULL``, so a nullable flag column holding NULLs next to
    0 and 1 still resolves to ``bool`` (``Optional[bool]`` once nullability
    is applied).
    """
    return all(v in _BOOLEAN_VALUES for v in values if v is not None)


def disambiguate(
    ctx: GenerationContext,
    table: str,
    column: ColumnDescriptor,
) -> DisambiguationHint:
    """Pick a hint for a boolean-ambiguous column, ``NONE`` for any other."""
    if not is_boolean_ambiguous(column.native_type):
        return DisambiguationHint.NONE

    if ctx.config.boolean_detection == BooleanDetection.DECLARED:
        if _DECLARED_BOOL_RE.match(column.full_type):
            return DisambiguationHint.BOOLEAN
        return DisambiguationHint.INTEGER

    values: List[Optional[str]] = ctx.schema_source.distinct_values(
        ctx.config.database, table, column.name
    )
    hint: DisambiguationHint = (
        DisambiguationHint.BOOLEAN if is_boolean_sample(values) else DisambiguationHint.INTEGER
    )
    logger.debug(
        "Sampled %s.%s: %s → %s", table, column.name, values, hint.value
    )
    return hint


def introspect_table(
    ctx: GenerationContext,
    table: str,
) -> List[Tuple[ColumnDescriptor, DisambiguationHint]]:
    """
    Read the columns of ``table`` with their disambiguation hints.

    Raises:
        SchemaNotFound: The source returned no columns.
        IntrospectionFailure: The source could not be queried.
    """
    database: str = ctx.config.database
    with Timer(f"introspect {table}"):
        rows: Sequence[ColumnRow] = ctx.schema_source.list_columns(database, table)
        if not rows:
            raise SchemaNotFound(table, database)

        seen: Set[str] = set()
        described: List[Tuple[ColumnDescriptor, DisambiguationHint]] = []
        for row in rows:
            column: ColumnDescriptor = row_to_descriptor(row)
            if column.name in seen:
                logger.debug("Duplicate metadata row for %s.%s ignored.", table, column.name)
                continue
            seen.add(column.name)
            described.append((column, disambiguate(ctx, table, column)))

    logger.info("Introspected %s.%s: %d column(s).", database, table, len(described))
    return described


def list_tables(ctx: GenerationContext) -> List[str]:
    """Return every base table of the configured database."""
    tables: List[str] = ctx.schema_source.list_tables(ctx.config.database)
    logger.info("Found %d table(s) in %s.", len(tables), ctx.config.database)
    return tables


__all__: List[str] = [
    "ColumnRow",
    "SchemaSource",
    "SQLAlchemySchemaSource",
    "build_url",
    "build_engine",
    "row_to_descriptor",
    "is_boolean_sample",
    "disambiguate",
    "introspect_table",
    "list_tables",
]
