"""
tests/conftest.py
Shared fixtures for the daogen test suite.

No database is needed: ``FakeSchemaSource`` answers the three
``SchemaSource`` queries from in-memory rows shaped like MySQL's
``information_schema.columns``.  Real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixture.
"""

from __future__ import annotations

import copy
import pathlib
import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from daogen.generator import DAOGenerator
from daogen.models import EntitySpec, GenerationConfig, GenerationContext


# ---------------------------------------------------------------------------
# In-memory schema source
# ---------------------------------------------------------------------------


def column_row(
    name: str,
    data_type: str,
    column_type: Optional[str] = None,
    *,
    nullable: bool = False,
    key: str = "",
    default: Optional[str] = None,
    extra: str = "",
) -> Dict[str, Any]:
    """One ``information_schema.columns`` row as the schema source returns it."""
    return {
        "name": name,
        "is_nullable": "YES" if nullable else "NO",
        "column_key": key,
        "data_type": data_type,
        "column_type": column_type or data_type,
        "column_default": default,
        "extra": extra,
    }


class FakeSchemaSource:
    """``SchemaSource`` backed by dictionaries; records every query."""

    def __init__(
        self,
        tables: Dict[str, List[Dict[str, Any]]],
        samples: Optional[Dict[Tuple[str, str], List[Optional[str]]]] = None,
    ) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = tables
        self.samples: Dict[Tuple[str, str], List[Optional[str]]] = samples or {}
        self.column_queries: List[str] = []
        self.sample_queries: List[Tuple[str, str]] = []

    def list_columns(self, database: str, table: str) -> Sequence[Dict[str, Any]]:
        self.column_queries.append(table)
        return self.tables.get(table, [])

    def distinct_values(self, database: str, table: str, column: str) -> List[Optional[str]]:
        self.sample_queries.append((table, column))
        return self.samples.get((table, column), [])

    def list_tables(self, database: str) -> List[str]:
        return sorted(name for name, rows in self.tables.items() if rows)


# ---------------------------------------------------------------------------
# Reference schema
# ---------------------------------------------------------------------------

SHOP_TABLES: Dict[str, List[Dict[str, Any]]] = {
    "users": [
        column_row("id", "int", "int(11)", key="PRI", extra="auto_increment"),
        column_row("name", "varchar", "varchar(64)"),
        column_row("email", "varchar", "varchar(128)", nullable=True),
        column_row("status", "enum", "enum('A','B','C')", default="A"),
        column_row("active", "tinyint", "tinyint(1)", default="1"),
        column_row("created_at", "datetime", default="CURRENT_TIMESTAMP"),
        column_row("deleted_at", "datetime", nullable=True),
        column_row("score", "double", nullable=True, default="NULL"),
    ],
    "order_items": [
        column_row("order_id", "int", "int(11)", key="PRI"),
        column_row("item_id", "int", "int(11)", key="PRI"),
        column_row("qty", "int", "int(11)", default="1"),
        column_row("note", "text", nullable=True),
    ],
    "codes": [
        column_row("code", "varchar", "varchar(16)", key="PRI"),
        column_row("label", "varchar", "varchar(32)"),
    ],
    "logs": [
        column_row("message", "text"),
        column_row("level", "tinyint", "tinyint(4)"),
    ],
    "flags": [
        column_row("flag_id", "tinyint", "tinyint(1)", key="PRI"),
        column_row("enabled", "tinyint", "tinyint(1)", nullable=True),
    ],
    "empty_table": [],
}

SHOP_SAMPLES: Dict[Tuple[str, str], List[Optional[str]]] = {
    ("users", "active"): ["0", "1"],
    ("logs", "level"): ["0", "1", "5"],
    ("flags", "flag_id"): ["0", "1"],
    ("flags", "enabled"): [],
}


@pytest.fixture()
def schema_source() -> FakeSchemaSource:
    """A fresh in-memory source over the reference shop schema."""
    return FakeSchemaSource(copy.deepcopy(SHOP_TABLES), copy.deepcopy(SHOP_SAMPLES))


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "generated"


@pytest.fixture()
def make_config(output_dir: pathlib.Path) -> Callable[..., GenerationConfig]:
    """Factory for a valid config writing below ``output_dir`` without black."""

    def _make(**overrides: Any) -> GenerationConfig:
        data: Dict[str, Any] = {
            "database": "shop",
            "host": "localhost",
            "tables": ["users"],
            "output_dir": str(output_dir),
            "format_code": False,
        }
        data.update(overrides)
        return GenerationConfig(**data)

    return _make


@pytest.fixture()
def config(make_config: Callable[..., GenerationConfig]) -> GenerationConfig:
    return make_config()


@pytest.fixture()
def unique_config(make_config: Callable[..., GenerationConfig]) -> GenerationConfig:
    """Config with package names unique to this test, so generated code can be imported."""
    suffix: str = uuid.uuid4().hex[:10]
    return make_config(models_package=f"models_{suffix}", runtime_package=f"dbrt_{suffix}")


@pytest.fixture()
def generator(config: GenerationConfig, schema_source: FakeSchemaSource) -> DAOGenerator:
    return DAOGenerator(config, schema_source=schema_source)


@pytest.fixture()
def build_entity(
    config: GenerationConfig,
    schema_source: FakeSchemaSource,
) -> Callable[[str], EntitySpec]:
    """Factory turning a reference table name into a validated ``EntitySpec``."""
    gen: DAOGenerator = DAOGenerator(config, schema_source=schema_source)

    def _build(table: str) -> EntitySpec:
        ctx: GenerationContext = GenerationContext(config=config, schema_source=schema_source)
        return gen.build_entity(ctx, table)

    return _build


@pytest.fixture()
def make_source() -> Callable[..., FakeSchemaSource]:
    """The ``FakeSchemaSource`` class, for tests that need a custom schema."""
    return FakeSchemaSource


@pytest.fixture()
def make_row() -> Callable[..., Dict[str, Any]]:
    """The ``column_row`` helper."""
    return column_row
