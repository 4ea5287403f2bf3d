# File: daogen/templates.py
"""
daogen - Code Template Engine
===============================
Transforms an ``EntitySpec`` into the Python source of a table's data-access
package, and renders the shared runtime package every table package imports.

Per table (``<models_package>/<table>/``):
    1. ``crud.py``      entity dataclass + save / delete / read operations
    2. ``__init__.py``  re-exports of the CRUD surface
    3. ``dao.py``       hand-written query stub (created once)
    4. ``bo.py``        business-logic stub (created once)
    5. ``test_<table>.py`` pytest skeleton (created once)
    6. ``examples.py``  usage examples (created once)

Shared (``<runtime_package>/``): ``connection.py``, ``validation.py``,
``nulltime.py`` and the package ``__init__.py`` files.

All string assembly uses the ``List[str]`` + ``"\\n".join()`` pattern, and the
field list, ``COLUMNS`` tuple, SELECT list and row scan are all produced from
the same ordered column sequence.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from daogen.models import (
    ArtifactKind,
    BaseKind,
    EntitySpec,
    GeneratedArtifact,
    GenerationConfig,
    ResolvedColumn,
    TypeDescriptor,
)
from daogen.resolver import default_literal
from daogen.utils import (
    build_import_block,
    format_tuple_literal,
    quote_sql_identifier,
    table_to_class_name,
    table_to_module_name,
    wrap_in_quotes,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("daogen.templates")

# ---------------------------------------------------------------------------
# Type tables
# ---------------------------------------------------------------------------

# Zero value of a plain (NOT NULL) field
_ZERO_LITERALS: Dict[BaseKind, str] = {
    BaseKind.INT: "0",
    BaseKind.FLOAT: "0.0",
    BaseKind.BOOL: "False",
    BaseKind.STRING: '""',
    BaseKind.STRING_ENUM: '""',
    BaseKind.TIMESTAMP: "datetime.min",
}

# Converter applied to a raw row value, by base kind
_CONVERTERS: Dict[BaseKind, str] = {
    BaseKind.INT: "int",
    BaseKind.FLOAT: "float",
    BaseKind.BOOL: "bool",
    BaseKind.STRING: "as_str",
    BaseKind.STRING_ENUM: "as_str",
    BaseKind.TIMESTAMP: "as_datetime",
}

# Conversion of ``lastrowid`` onto a single key field
_INSERT_ID_CONVERTERS: Dict[BaseKind, str] = {
    BaseKind.INT: "int",
    BaseKind.FLOAT: "float",
    BaseKind.STRING: "str",
    BaseKind.STRING_ENUM: "str",
}

_GENERATED_NOTE: str = "Generated by daogen. Regenerated on every run, do not edit."
_CREATED_ONCE_NOTE: str = "Generated once by daogen and never overwritten. Edit freely."


def scan_expression(type_descriptor: TypeDescriptor, ref: str) -> str:
    """Expression converting raw row value ``ref`` into the field's type."""
    if type_descriptor.is_wrapped:
        return f"NullTime.scan({ref})"
    converter: str = _CONVERTERS[type_descriptor.base_kind]
    if type_descriptor.is_nullable:
        return f"coerce_optional({converter}, {ref})"
    return f"{converter}({ref})"


def field_declaration(col: ResolvedColumn) -> str:
    """Dataclass field line (without indentation) with its zero default."""
    td: TypeDescriptor = col.type_descriptor
    if td.is_wrapped:
        return f"{col.field_name}: NullTime = field(default_factory=NullTime)"
    if td.is_nullable:
        return f"{col.field_name}: {td.python_type_hint} = None"
    return f"{col.field_name}: {td.python_type_hint} = {_ZERO_LITERALS[td.base_kind]}"


def column_meta_literal(col: ResolvedColumn) -> str:
    """``ColumnMeta(...)`` constructor call describing one column."""
    default: Optional[str] = default_literal(col.default, col.type_descriptor)
    parts: List[str] = [
        f"name={wrap_in_quotes(col.name)}",
        f"field={wrap_in_quotes(col.field_name)}",
        f"column_type={wrap_in_quotes(col.column.full_type or col.column.native_type)}",
        f"key={wrap_in_quotes(col.column.key_label)}",
        f"extra={wrap_in_quotes(col.column.extra or '')}",
        f"default={default if default is not None else 'None'}",
        f"nullable={col.type_descriptor.is_nullable}",
        f"allowed={format_tuple_literal(col.allowed_values) if col.allowed_values else '()'}",
    ]
    if col.server_default:
        parts.append("server_default=True")
    return "ColumnMeta(" + ", ".join(parts) + ")"


def _needs_datetime(entity: EntitySpec) -> bool:
    for col in entity.columns:
        if col.type_descriptor.base_kind != BaseKind.TIMESTAMP:
            continue
        if not col.type_descriptor.is_wrapped:
            return True
        if default_literal(col.default, col.type_descriptor) is not None:
            return True
    return any(k.example.startswith("datetime(") for k in entity.primary_key.columns)


class EntityTemplate:
    """
    Stateless code-generation engine.

    Each ``render_*`` method returns a complete file content string;
    ``entity_artifacts`` / ``shared_artifacts`` wrap them into
    ``GeneratedArtifact`` objects tagged with their kind.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._indent: str = " " * config.indent_size
        self._double_indent: str = self._indent * 2
        self._triple_indent: str = self._indent * 3
        self._runtime: str = config.runtime_package
        self._models: str = config.models_package
        logger.debug(
            "EntityTemplate initialised (models=%s, runtime=%s).",
            self._models,
            self._runtime,
        )

    # -----------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------

    def package_dir(self, entity: EntitySpec) -> str:
        return f"{self._models}/{table_to_module_name(entity.table)}"

    def module_path(self, entity: EntitySpec) -> str:
        """Dotted import path of the table package."""
        return f"{self._models}.{table_to_module_name(entity.table)}"

    # ===================================================================
    # 1. CRUD module
    # ===================================================================

    def render_crud(self, entity: EntitySpec) -> str:
        """Generate ``crud.py``: constants, entity dataclass and operations."""
        lines: List[str] = []
        class_name: str = table_to_class_name(entity.table)
        has_key: bool = entity.primary_key.has_key
        columns: List[ResolvedColumn] = list(entity.columns)

        validation_names: Set[str] = {"ColumnMeta"}
        if has_key:
            validation_names.add("validate_field")
        if entity.primary_key.cardinality == 1:
            validation_names.add("is_empty")
        for col in columns:
            td: TypeDescriptor = col.type_descriptor
            if td.is_wrapped:
                continue
            converter: str = _CONVERTERS[td.base_kind]
            if converter.startswith("as_"):
                validation_names.add(converter)
            if td.is_nullable:
                validation_names.add("coerce_optional")

        imports: Dict[str, Set[str]] = {
            "dataclasses": {"dataclass"},
            "typing": {"Any", "Dict", "List", "Optional", "Tuple"},
            "sqlalchemy": {"text"},
            "sqlalchemy.engine": {"CursorResult", "Row"},
            self._runtime: {"connection"},
            f"{self._runtime}.validation": validation_names,
        }
        if entity.uses_nulltime:
            imports["dataclasses"].add("field")
            imports[f"{self._runtime}.nulltime"] = {"NullTime"}
        if _needs_datetime(entity):
            imports["datetime"] = {"datetime"}

        # --- File header ---
        lines.append('"""')
        lines.append(f"CRUD operations for table: {entity.table}")
        lines.append("")
        lines.append(_GENERATED_NOTE)
        lines.append('"""')
        lines.append("")
        lines.append("from __future__ import annotations")
        lines.append("")
        lines.append(build_import_block(imports))
        lines.append("")
        lines.append(f"TABLE_NAME: str = {wrap_in_quotes(entity.table)}")
        lines.append(
            f"QUOTED_TABLE: str = {wrap_in_quotes(quote_sql_identifier(entity.table))}"
        )
        lines.append("")
        lines.append("COLUMNS: Tuple[ColumnMeta, ...] = (")
        for col in columns:
            lines.append(f"{self._indent}{column_meta_literal(col)},")
        lines.append(")")
        lines.append("")
        select_list: str = ", ".join(quote_sql_identifier(c.name) for c in columns)
        lines.append(f"SELECT_COLUMNS: str = {wrap_in_quotes(select_list)}")
        lines.append("")
        lines.append("")

        # --- Entity dataclass ---
        lines.append("@dataclass")
        lines.append(f"class {class_name}:")
        lines.append(f'{self._indent}"""One row of the \'{entity.table}\' table."""')
        lines.append("")
        for col in columns:
            lines.append(f"{self._indent}{field_declaration(col)}")

        if has_key:
            lines.append("")
            lines.extend(self._render_save(entity))
            lines.append("")
            lines.extend(self._render_delete(entity))

        lines.append("")
        lines.append("")
        lines.extend(self._render_from_row(entity, class_name))

        if has_key:
            lines.append("")
            lines.append("")
            lines.extend(self._render_read_by_id(entity, class_name))

        lines.append("")
        lines.append("")
        lines.extend(self._render_bulk_reads(class_name))
        lines.append("")

        content: str = "\n".join(lines)
        logger.debug(
            "Generated CRUD module for '%s': %d lines.",
            entity.table,
            content.count("\n") + 1,
        )
        return content

    def _render_save(self, entity: EntitySpec) -> List[str]:
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        columns: List[ResolvedColumn] = list(entity.columns)
        lines: List[str] = []

        column_list: str = ", ".join(quote_sql_identifier(c.name) for c in columns)
        value_list: str = ", ".join(f":{c.field_name}" for c in columns)
        if entity.non_key_columns:
            update_list: str = ", ".join(
                f"{quote_sql_identifier(c.name)} = :{c.field_name}"
                for c in entity.non_key_columns
            )
        else:
            # Every column is part of the key: a no-op update keeps the statement valid
            quoted: str = quote_sql_identifier(columns[0].name)
            update_list = f"{quoted} = {quoted}"
        insert_sql: str = f"INSERT INTO {quote_sql_identifier(entity.table)} ({column_list}) "
        values_sql: str = f"VALUES ({value_list}) "
        update_sql: str = f"ON DUPLICATE KEY UPDATE {update_list}"

        lines.append(f"{i1}def save(self) -> CursorResult:")
        lines.append(f'{i2}"""')
        lines.append(f"{i2}Insert this row, or update its non-key columns when the key exists.")
        lines.append("")
        lines.append(f"{i2}Every value is validated first: enum-constrained columns raise")
        lines.append(f"{i2}``InvalidEnumValue`` before anything is written.")
        lines.append(f'{i2}"""')
        lines.append(f"{i2}params: Dict[str, Any] = {{")
        for index, col in enumerate(columns):
            value: str = f"validate_field(self.{col.field_name}, COLUMNS[{index}])"
            if col.type_descriptor.is_wrapped:
                value += ".value()"
            lines.append(f'{i3}"{col.field_name}": {value},')
        lines.append(f"{i2}}}")
        if any(c.server_default for c in columns):
            # Column lists depend on which expression defaults are left to the server
            lines.append(f"{i2}written: List[ColumnMeta] = [")
            lines.append(f"{i3}c for c in COLUMNS if not c.defers_to_server(params[c.field])")
            lines.append(f"{i2}]")
            lines.append(f"{i2}params = {{c.field: params[c.field] for c in written}}")
            lines.append(f"{i2}updates: List[str] = [")
            lines.append(f'{i3}f"{{c.quoted}} = :{{c.field}}" for c in written if not c.is_primary')
            lines.append(f'{i2}] or [f"{{COLUMNS[0].quoted}} = {{COLUMNS[0].quoted}}"]')
            lines.append(f"{i2}sql: str = (")
            lines.append(
                f'{i3}f"INSERT INTO {{QUOTED_TABLE}} ({{\', \'.join(c.quoted for c in written)}}) "'
            )
            lines.append(
                f'{i3}f"VALUES ({{\', \'.join(\':\' + c.field for c in written)}}) "'
            )
            lines.append(f'{i3}f"ON DUPLICATE KEY UPDATE {{\', \'.join(updates)}}"')
            lines.append(f"{i2})")
        else:
            lines.append(f"{i2}sql: str = (")
            lines.append(f"{i3}{wrap_in_quotes(insert_sql)}")
            lines.append(f"{i3}{wrap_in_quotes(values_sql)}")
            lines.append(f"{i3}{wrap_in_quotes(update_sql)}")
            lines.append(f"{i2})")

        key_converter: Optional[str] = None
        if entity.primary_key.cardinality == 1:
            key = entity.primary_key.columns[0]
            key_converter = _INSERT_ID_CONVERTERS.get(key.type_descriptor.base_kind)
            lines.append(f"{i2}key_was_empty: bool = is_empty(self.{key.field_name})")

        lines.append(f"{i2}with connection.get_engine().begin() as conn:")
        lines.append(f"{i3}result: CursorResult = conn.execute(text(sql), params)")
        if key_converter is not None:
            key = entity.primary_key.columns[0]
            lines.append(f"{i3}if key_was_empty and result.lastrowid:")
            lines.append(
                f"{i3}{self._indent}self.{key.field_name} = {key_converter}(result.lastrowid)"
            )
        lines.append(f"{i2}return result")
        return lines

    def _render_delete(self, entity: EntitySpec) -> List[str]:
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        predicate: str = " AND ".join(
            f"{quote_sql_identifier(k.name)} = :{k.field_name}"
            for k in entity.primary_key.columns
        )
        sql: str = f"DELETE FROM {quote_sql_identifier(entity.table)} WHERE {predicate}"
        binds: str = ", ".join(
            f'"{k.field_name}": self.{k.field_name}' for k in entity.primary_key.columns
        )
        return [
            f"{i1}def delete(self) -> CursorResult:",
            f'{i2}"""Delete this row by its primary key."""',
            f"{i2}with connection.get_engine().begin() as conn:",
            f"{i3}return conn.execute(",
            f"{i3}{self._indent}text({wrap_in_quotes(sql)}),",
            f"{i3}{self._indent}{{{binds}}},",
            f"{i3})",
        ]

    def _render_from_row(self, entity: EntitySpec, class_name: str) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        lines: List[str] = [
            f"def _from_row(row: Row) -> {class_name}:",
            f"{i1}return {class_name}(",
        ]
        for index, col in enumerate(entity.columns):
            expr: str = scan_expression(col.type_descriptor, f"row[{index}]")
            lines.append(f"{i2}{col.field_name}={expr},")
        lines.append(f"{i1})")
        return lines

    def _render_read_by_id(self, entity: EntitySpec, class_name: str) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        keys = entity.primary_key.columns
        signature: str = ", ".join(
            f"{k.field_name}: {k.type_descriptor.python_type_hint}" for k in keys
        )
        predicate: str = " AND ".join(
            f"{quote_sql_identifier(k.name)} = :{k.field_name}" for k in keys
        )
        kwargs: str = ", ".join(f"{k.field_name}={k.field_name}" for k in keys)
        where: str = f" WHERE {predicate}"
        return [
            f"def read_by_id({signature}) -> Optional[{class_name}]:",
            f'{i1}"""Return the row with the given key, or ``None``."""',
            f"{i1}return read_one_by_query(",
            f'{i2}f"SELECT {{SELECT_COLUMNS}} FROM {{QUOTED_TABLE}}"',
            f"{i2}{wrap_in_quotes(where)},",
            f"{i2}{kwargs},",
            f"{i1})",
        ]

    def _render_bulk_reads(self, class_name: str) -> List[str]:
        i1, i2 = self._indent, self._double_indent
        return [
            f"def read_all(order: str = \"\") -> List[{class_name}]:",
            f'{i1}"""Return every row. ``order`` is appended verbatim as ORDER BY."""',
            f'{i1}query: str = f"SELECT {{SELECT_COLUMNS}} FROM {{QUOTED_TABLE}}"',
            f"{i1}if order:",
            f'{i2}query += f" ORDER BY {{order}}"',
            f"{i1}return read_by_query(query)",
            "",
            "",
            f"def read_by_query(query: str, /, **params: Any) -> List[{class_name}]:",
            f'{i1}"""',
            f"{i1}Run a SELECT returning this table's columns in declared order.",
            "",
            f"{i1}Bind values are passed as keyword arguments (``:name`` placeholders).",
            f'{i1}"""',
            f"{i1}with connection.get_engine().connect() as conn:",
            f"{i2}rows: List[Row] = list(conn.execute(text(query), params).all())",
            f"{i1}return [_from_row(row) for row in rows]",
            "",
            "",
            f"def read_one_by_query(query: str, /, **params: Any) -> Optional[{class_name}]:",
            f'{i1}"""Like ``read_by_query`` but consumes at most one row."""',
            f"{i1}with connection.get_engine().connect() as conn:",
            f"{i2}row: Optional[Row] = conn.execute(text(query), params).first()",
            f"{i1}if row is None:",
            f"{i2}return None",
            f"{i1}return _from_row(row)",
            "",
            "",
            "def exec_(query: str, /, **params: Any) -> CursorResult:",
            f'{i1}"""Execute a raw statement inside a transaction."""',
            f"{i1}with connection.get_engine().begin() as conn:",
            f"{i2}return conn.execute(text(query), params)",
        ]

    # ===================================================================
    # 2. Table package __init__
    # ===================================================================

    def crud_exports(self, entity: EntitySpec) -> List[str]:
        names: List[str] = [
            "TABLE_NAME",
            "COLUMNS",
            "SELECT_COLUMNS",
            table_to_class_name(entity.table),
        ]
        if entity.primary_key.has_key:
            names.append("read_by_id")
        names.extend(["read_all", "read_by_query", "read_one_by_query", "exec_"])
        return names

    def render_package_init(self, entity: EntitySpec) -> str:
        """Generate the table package ``__init__.py`` re-exporting the CRUD surface."""
        names: List[str] = self.crud_exports(entity)
        lines: List[str] = [
            '"""',
            f"Data access package for table: {entity.table}",
            "",
            _GENERATED_NOTE,
            '"""',
            "",
            "from .crud import (",
        ]
        lines.extend(f"{self._indent}{n}," for n in names)
        lines.append(")")
        lines.append("")
        lines.append("__all__ = [")
        lines.extend(f'{self._indent}"{n}",' for n in names)
        lines.append("]")
        lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 3. Created-once stubs: dao, bo, test skeleton, examples
    # ===================================================================

    def render_dao(self, entity: EntitySpec) -> str:
        """Generate ``dao.py``, the home of hand-written queries."""
        class_name: str = table_to_class_name(entity.table)
        i1, i2 = self._indent, self._double_indent
        lines: List[str] = [
            '"""',
            f"Custom data-access functions for table: {entity.table}",
            "",
            _CREATED_ONCE_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "from typing import List",
            "",
            f"from .crud import QUOTED_TABLE, SELECT_COLUMNS, {class_name}, read_by_query",
            "",
        ]
        column: str = entity.examples.column
        if column:
            field_name: str = entity.examples.column_field
            where: str = f" WHERE {quote_sql_identifier(column)} = :value"
            lines.extend([
                "",
                f"def read_by_{field_name.rstrip('_')}(value: str) -> List[{class_name}]:",
                f'{i1}"""Return every row whose `{column}` equals ``value``."""',
                f"{i1}return read_by_query(",
                f'{i2}f"SELECT {{SELECT_COLUMNS}} FROM {{QUOTED_TABLE}}"',
                f"{i2}{wrap_in_quotes(where)},",
                f"{i2}value=value,",
                f"{i1})",
                "",
            ])
        else:
            lines.extend([
                "",
                f"def read_first(limit: int = 1) -> List[{class_name}]:",
                f'{i1}"""Return the first ``limit`` rows in storage order."""',
                f"{i1}return read_by_query(",
                f'{i2}f"SELECT {{SELECT_COLUMNS}} FROM {{QUOTED_TABLE}} LIMIT :limit",',
                f"{i2}limit=limit,",
                f"{i1})",
                "",
            ])
        return "\n".join(lines)

    def render_bo(self, entity: EntitySpec) -> str:
        """Generate ``bo.py``, a business-object wrapper around the entity."""
        class_name: str = table_to_class_name(entity.table)
        bo_name: str = class_name[: -len("Obj")] + "BO"
        i1, i2 = self._indent, self._double_indent
        lines: List[str] = [
            '"""',
            f"Business logic for table: {entity.table}",
            "",
            _CREATED_ONCE_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "from typing import Optional",
            "",
        ]
        if entity.primary_key.has_key:
            lines.append("from sqlalchemy.engine import CursorResult")
            lines.append("")
        lines.extend([
            f"from .crud import {class_name}",
            "",
            "",
            f"class {bo_name}:",
            f'{i1}"""Wraps a ``{class_name}`` with domain rules."""',
            "",
            f"{i1}def __init__(self, obj: Optional[{class_name}] = None) -> None:",
            f"{i2}self.obj: {class_name} = obj if obj is not None else {class_name}()",
            "",
            f"{i1}def validate(self) -> None:",
            f'{i2}"""Raise ``ValueError`` when the wrapped row breaks a domain rule."""',
        ])
        if entity.primary_key.has_key:
            lines.extend([
                "",
                f"{i1}def save(self) -> CursorResult:",
                f"{i2}self.validate()",
                f"{i2}return self.obj.save()",
            ])
        lines.append("")
        return "\n".join(lines)

    def render_test(self, entity: EntitySpec) -> str:
        """Generate the pytest skeleton for a table package."""
        class_name: str = table_to_class_name(entity.table)
        i1 = self._indent
        order: str = entity.examples.order_clause
        lines: List[str] = [
            '"""',
            f"Tests for table: {entity.table}",
            "",
            "Run against a live database by setting DAOGEN_LIVE_DB=1.",
            _CREATED_ONCE_NOTE,
            '"""',
            "",
            "import os",
            "",
            "import pytest",
            "",
            f"from {self.module_path(entity)} import crud",
            "",
            "pytestmark = pytest.mark.skipif(",
            f'{i1}not os.environ.get("DAOGEN_LIVE_DB"), reason="needs a live database"',
            ")",
            "",
            "",
            "def test_read_all() -> None:",
            f"{i1}rows = crud.read_all({wrap_in_quotes(order)})",
            f"{i1}assert isinstance(rows, list)",
            f"{i1}assert all(isinstance(r, crud.{class_name}) for r in rows)",
        ]
        if entity.primary_key.has_key:
            args: str = ", ".join(entity.examples.id_literals)
            lines.extend([
                "",
                "",
                "def test_read_by_id() -> None:",
                f"{i1}row = crud.read_by_id({args})",
                f"{i1}assert row is None or isinstance(row, crud.{class_name})",
            ])
        lines.extend([
            "",
            "",
            "def test_read_one_by_query() -> None:",
            f"{i1}row = crud.read_one_by_query(",
            f'{i1}{i1}f"SELECT {{crud.SELECT_COLUMNS}} FROM {{crud.QUOTED_TABLE}} LIMIT 1"',
            f"{i1})",
            f"{i1}assert row is None or isinstance(row, crud.{class_name})",
            "",
        ])
        if _needs_datetime(entity):
            lines.insert(lines.index("import os") + 1, "from datetime import datetime")
        return "\n".join(lines)

    def render_examples(self, entity: EntitySpec) -> str:
        """Generate ``examples.py`` seeded from the table's example values."""
        class_name: str = table_to_class_name(entity.table)
        i1, i2 = self._indent, self._double_indent
        examples = entity.examples
        names: List[str] = ["QUOTED_TABLE", "SELECT_COLUMNS", class_name, "read_all"]
        if entity.primary_key.has_key:
            names.append("read_by_id")
        if examples.column:
            names.extend(["read_by_query", "read_one_by_query"])

        lines: List[str] = [
            '"""',
            f"Usage examples for table: {entity.table}",
            "",
            _CREATED_ONCE_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
        ]
        if _needs_datetime(entity):
            lines.append("from datetime import datetime")
            lines.append("")
        lines.append(f"from .crud import {', '.join(sorted(names))}")
        lines.append("")
        lines.extend([
            "",
            "def example_read_all() -> None:",
            f"{i1}for row in read_all({wrap_in_quotes(examples.order_clause)}):",
            f"{i2}print(row)",
        ])
        if entity.primary_key.has_key:
            lines.extend([
                "",
                "",
                "def example_read_by_id() -> None:",
                f"{i1}row = read_by_id({', '.join(examples.id_literals)})",
                f"{i1}if row is None:",
                f'{i2}print("not found")',
                f"{i2}return",
                f"{i1}print(row)",
                "",
                "",
                "def example_save() -> None:",
                f"{i1}row = {class_name}()",
            ])
            if examples.column_field:
                lines.append(f"{i1}row.{examples.column_field} = {examples.column_literal}")
            lines.extend([
                f"{i1}result = row.save()",
                f"{i1}print(result.rowcount, row)",
                "",
                "",
                "def example_delete() -> None:",
                f"{i1}row = read_by_id({', '.join(examples.id_literals)})",
                f"{i1}if row is not None:",
                f"{i2}row.delete()",
            ])
        if examples.column:
            order_sql: str = f" ORDER BY {examples.order_clause}" if examples.order_clause else ""
            where: str = f" WHERE {quote_sql_identifier(examples.column)} = :value{order_sql}"
            lines.extend([
                "",
                "",
                "def example_read_by_query() -> None:",
                f"{i1}rows = read_by_query(",
                f'{i2}f"SELECT {{SELECT_COLUMNS}} FROM {{QUOTED_TABLE}}"',
                f"{i2}{wrap_in_quotes(where)},",
                f"{i2}value={examples.column_literal},",
                f"{i1})",
                f"{i1}print(len(rows))",
                "",
                "",
                "def example_read_one_by_query() -> None:",
                f"{i1}row = read_one_by_query(",
                f'{i2}f"SELECT {{SELECT_COLUMNS}} FROM {{QUOTED_TABLE}}"',
                f"{i2}{wrap_in_quotes(where)},",
                f"{i2}value={examples.column_literal},",
                f"{i1})",
                f"{i1}print(row)",
            ])
        lines.append("")
        return "\n".join(lines)

    # ===================================================================
    # 4. Shared runtime package
    # ===================================================================

    def render_package_docstring(self, title: str) -> str:
        """``__init__.py`` carrying only a docstring."""
        return "\n".join(['"""', title, "", _CREATED_ONCE_NOTE, '"""', ""])

    def render_connection(self) -> str:
        """Generate ``connection.py``: lazy engine with ping-and-reopen."""
        cfg: GenerationConfig = self._config
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        lines: List[str] = [
            '"""',
            "Shared database engine for every generated table package.",
            "",
            f"The password is read from the {cfg.password_env} environment variable.",
            _GENERATED_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "import logging",
            "import os",
            "from typing import Optional",
            "",
            "from sqlalchemy import create_engine",
            "from sqlalchemy.engine import URL, Engine",
            "from sqlalchemy.exc import DBAPIError",
            "",
            "logger: logging.Logger = logging.getLogger(__name__)",
            "",
            f"DRIVER: str = {wrap_in_quotes(cfg.driver)}",
            f"HOST: str = {wrap_in_quotes(cfg.host)}",
            f"PORT: int = {cfg.port}",
            f"DATABASE: str = {wrap_in_quotes(cfg.database)}",
            f"USERNAME: str = {wrap_in_quotes(cfg.username)}",
            f"CHARSET: str = {wrap_in_quotes(cfg.charset)}",
            f"PASSWORD_ENV: str = {wrap_in_quotes(cfg.password_env)}",
            "",
            "_engine: Optional[Engine] = None",
            "",
            "",
            "def database_url() -> URL:",
            f"{i1}return URL.create(",
            f"{i2}drivername=DRIVER,",
            f"{i2}username=USERNAME,",
            f"{i2}password=os.environ.get(PASSWORD_ENV) or None,",
            f"{i2}host=HOST,",
            f"{i2}port=PORT,",
            f"{i2}database=DATABASE,",
            f'{i2}query={{"charset": CHARSET}},',
            f"{i1})",
            "",
            "",
            "def get_engine() -> Engine:",
            f'{i1}"""',
            f"{i1}Return the shared engine, creating it on first use.",
            "",
            f"{i1}An existing engine is pinged first by checking out a connection, which",
            f"{i1}runs the pool's pre-ping and replaces stale pooled connections. When the",
            f"{i1}checkout still fails the engine is disposed and recreated.",
            f'{i1}"""',
            f"{i1}global _engine",
            f"{i1}if _engine is not None:",
            f"{i2}try:",
            f"{i3}with _engine.connect():",
            f"{i3}{i1}return _engine",
            f"{i2}except DBAPIError:",
            f'{i3}logger.warning("Database connection lost, reconnecting.")',
            f"{i3}_engine.dispose()",
            f"{i1}_engine = create_engine(database_url(), pool_pre_ping=True)",
            f"{i1}return _engine",
            "",
            "",
            "def dispose_engine() -> None:",
            f'{i1}"""Close every pooled connection."""',
            f"{i1}global _engine",
            f"{i1}if _engine is not None:",
            f"{i2}_engine.dispose()",
            f"{i2}_engine = None",
            "",
        ]
        return "\n".join(lines)

    def render_nulltime(self) -> str:
        """Generate ``nulltime.py``: the nullable timestamp wrapper."""
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        lines: List[str] = [
            '"""',
            "Nullable timestamp wrapper used by generated entities.",
            "",
            _GENERATED_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "from dataclasses import dataclass",
            "from datetime import date, datetime",
            "from datetime import time as dt_time",
            "from typing import Any, Optional",
            "",
            "",
            "@dataclass",
            "class NullTime:",
            f'{i1}"""A timestamp that may be NULL. ``valid`` is False for NULL."""',
            "",
            f"{i1}time: Optional[datetime] = None",
            f"{i1}valid: bool = False",
            "",
            f"{i1}@classmethod",
            f"{i1}def of(cls, value: Optional[datetime]) -> \"NullTime\":",
            f"{i2}if value is None:",
            f"{i3}return cls()",
            f"{i2}return cls(time=value, valid=True)",
            "",
            f"{i1}@classmethod",
            f"{i1}def scan(cls, raw: Any) -> \"NullTime\":",
            f'{i2}"""Build from a raw column value (datetime, date, ISO string or None)."""',
            f"{i2}if raw is None:",
            f"{i3}return cls()",
            f"{i2}if isinstance(raw, datetime):",
            f"{i3}return cls(time=raw, valid=True)",
            f"{i2}if isinstance(raw, date):",
            f"{i3}return cls(time=datetime.combine(raw, dt_time.min), valid=True)",
            f"{i2}if isinstance(raw, bytes):",
            f'{i3}raw = raw.decode("utf-8")',
            f"{i2}if isinstance(raw, str):",
            f"{i3}try:",
            f"{i3}{i1}return cls(time=datetime.fromisoformat(raw), valid=True)",
            f"{i3}except ValueError:",
            f"{i3}{i1}# MySQL zero dates such as 0000-00-00",
            f"{i3}{i1}return cls()",
            f'{i2}raise TypeError(f"Cannot scan {{type(raw).__name__}} into NullTime")',
            "",
            f"{i1}def value(self) -> Optional[datetime]:",
            f'{i2}"""The bind value: the timestamp, or ``None`` when NULL."""',
            f"{i2}return self.time if self.valid else None",
            "",
            f"{i1}def __bool__(self) -> bool:",
            f"{i2}return self.valid",
            "",
        ]
        return "\n".join(lines)

    def render_validation(self) -> str:
        """Generate ``validation.py``: enum checks, defaults and row converters."""
        i1, i2, i3 = self._indent, self._double_indent, self._triple_indent
        lines: List[str] = [
            '"""',
            "Validation helpers shared by every generated table package.",
            "",
            "``validate_field`` runs on every value before a write: the enum check",
            "first, then default substitution for empty NOT NULL values.",
            "",
            _CREATED_ONCE_NOTE,
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "from dataclasses import dataclass",
            "from datetime import date, datetime, time",
            "from typing import Any, Callable, List, Optional, Tuple, TypeVar",
            "",
            'T = TypeVar("T")',
            "",
            "",
            "class InvalidEnumValue(ValueError):",
            f'{i1}"""A value outside a column\'s allowed set."""',
            "",
            f"{i1}def __init__(self, value: Any, column: str, allowed: Tuple[str, ...]) -> None:",
            f"{i2}self.value: Any = value",
            f"{i2}self.column: str = column",
            f"{i2}self.allowed: Tuple[str, ...] = tuple(allowed)",
            f"{i2}super().__init__(",
            f'{i3}f"Invalid value: {{value!r}} for column: {{column}}. "',
            f'{i3}f"Possible values are: {{\', \'.join(self.allowed)}}"',
            f"{i2})",
            "",
            "",
            "@dataclass(frozen=True)",
            "class ColumnMeta:",
            f'{i1}"""Static description of one column, in declared order."""',
            "",
            f"{i1}name: str",
            f"{i1}field: str",
            f"{i1}column_type: str",
            f'{i1}key: str = ""',
            f'{i1}extra: str = ""',
            f"{i1}default: Any = None",
            f"{i1}nullable: bool = False",
            f"{i1}allowed: Tuple[str, ...] = ()",
            f"{i1}server_default: bool = False",
            "",
            f"{i1}@property",
            f"{i1}def is_primary(self) -> bool:",
            f'{i2}return self.key == "PRI"',
            "",
            f"{i1}@property",
            f"{i1}def quoted(self) -> str:",
            f'{i2}return "`" + self.name.replace("`", "``") + "`"',
            "",
            f"{i1}def defers_to_server(self, value: Any) -> bool:",
            f'{i2}"""Empty NOT NULL value of a column with an expression default (CURRENT_TIMESTAMP)."""',
            f"{i2}return self.server_default and not self.nullable and is_empty(value)",
            "",
            f"{i1}@property",
            f"{i1}def is_set(self) -> bool:",
            f'{i2}return self.column_type.lower().startswith("set(")',
            "",
            "",
            "def is_empty(value: Any) -> bool:",
            f'{i1}"""Zero value test: None, "", 0, 0.0, False, datetime.min, NULL time."""',
            f"{i1}if value is None:",
            f"{i2}return True",
            f"{i1}if isinstance(value, bool):",
            f"{i2}return value is False",
            f"{i1}if isinstance(value, (int, float)):",
            f"{i2}return value == 0",
            f"{i1}if isinstance(value, str):",
            f'{i2}return value == ""',
            f"{i1}if isinstance(value, datetime):",
            f"{i2}return value == datetime.min",
            f"{i1}return not bool(value)",
            "",
            "",
            "def check_enum(value: Any, column: ColumnMeta) -> None:",
            f'{i1}"""Raise ``InvalidEnumValue`` when ``value`` is outside ``column.allowed``."""',
            f"{i1}if not column.allowed or value is None:",
            f"{i2}return",
            f"{i1}if is_empty(value) and column.default is not None and not column.nullable:",
            f"{i2}# substituted by the column default, itself an allowed value",
            f"{i2}return",
            f"{i1}members: List[str] = [str(value)]",
            f"{i1}if column.is_set:",
            f'{i2}members = [m for m in str(value).split(",") if m] if value else []',
            f"{i1}for member in members:",
            f"{i2}if member not in column.allowed:",
            f"{i3}raise InvalidEnumValue(value, column.name, column.allowed)",
            "",
            "",
            "def substitute_default(value: Any, column: ColumnMeta) -> Any:",
            f'{i1}"""Replace an empty NOT NULL value with the column\'s literal default."""',
            f"{i1}if column.nullable or column.default is None:",
            f"{i2}return value",
            f"{i1}if is_empty(value):",
            f"{i2}return column.default",
            f"{i1}return value",
            "",
            "",
            "def validate_field(value: Any, column: ColumnMeta) -> Any:",
            f"{i1}check_enum(value, column)",
            f"{i1}return substitute_default(value, column)",
            "",
            "",
            "def coerce_optional(convert: Callable[[Any], T], value: Any) -> Optional[T]:",
            f"{i1}if value is None:",
            f"{i2}return None",
            f"{i1}return convert(value)",
            "",
            "",
            "def as_str(value: Any) -> str:",
            f"{i1}if value is None:",
            f'{i2}return ""',
            f"{i1}if isinstance(value, (bytes, bytearray)):",
            f'{i2}return bytes(value).decode("utf-8")',
            f"{i1}return str(value)",
            "",
            "",
            "def as_datetime(value: Any) -> datetime:",
            f"{i1}if value is None:",
            f"{i2}return datetime.min",
            f"{i1}if isinstance(value, datetime):",
            f"{i2}return value",
            f"{i1}if isinstance(value, date):",
            f"{i2}return datetime.combine(value, time.min)",
            f"{i1}try:",
            f"{i2}return datetime.fromisoformat(as_str(value))",
            f"{i1}except ValueError:",
            f"{i2}# MySQL zero dates such as 0000-00-00",
            f"{i2}return datetime.min",
            "",
        ]
        return "\n".join(lines)

    # ===================================================================
    # 5. Aggregate generation
    # ===================================================================

    def entity_artifacts(self, entity: EntitySpec) -> List[GeneratedArtifact]:
        """Every per-table artifact, tagged with its kind."""
        base: str = self.package_dir(entity)
        module: str = table_to_module_name(entity.table)
        artifacts: List[GeneratedArtifact] = [
            GeneratedArtifact(
                path=f"{base}/crud.py", content=self.render_crud(entity), kind=ArtifactKind.CRUD
            ),
            GeneratedArtifact(
                path=f"{base}/__init__.py",
                content=self.render_package_init(entity),
                kind=ArtifactKind.PACKAGE_INIT,
            ),
            GeneratedArtifact(
                path=f"{base}/dao.py", content=self.render_dao(entity), kind=ArtifactKind.DAO
            ),
            GeneratedArtifact(
                path=f"{base}/bo.py", content=self.render_bo(entity), kind=ArtifactKind.BO
            ),
            GeneratedArtifact(
                path=f"{base}/test_{module}.py",
                content=self.render_test(entity),
                kind=ArtifactKind.TEST,
            ),
            GeneratedArtifact(
                path=f"{base}/examples.py",
                content=self.render_examples(entity),
                kind=ArtifactKind.EXAMPLES,
            ),
        ]
        logger.debug("Rendered %d artifact(s) for '%s'.", len(artifacts), entity.table)
        return artifacts

    def shared_artifacts(self) -> List[GeneratedArtifact]:
        """Runtime package modules and the shared package ``__init__`` files."""
        rt: str = self._runtime
        return [
            GeneratedArtifact(
                path=f"{rt}/__init__.py",
                content=self.render_package_docstring("Runtime support for generated table packages."),
                kind=ArtifactKind.RUNTIME_INIT,
            ),
            GeneratedArtifact(
                path=f"{rt}/connection.py",
                content=self.render_connection(),
                kind=ArtifactKind.CONNECTION,
            ),
            GeneratedArtifact(
                path=f"{rt}/validation.py",
                content=self.render_validation(),
                kind=ArtifactKind.VALIDATION,
            ),
            GeneratedArtifact(
                path=f"{rt}/nulltime.py",
                content=self.render_nulltime(),
                kind=ArtifactKind.NULLTIME,
            ),
            GeneratedArtifact(
                path=f"{self._models}/__init__.py",
                content=self.render_package_docstring("One data access package per table."),
                kind=ArtifactKind.MODELS_INIT,
            ),
        ]


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "EntityTemplate",
    "scan_expression",
    "field_declaration",
    "column_meta_literal",
]

logger.debug("daogen.templates loaded.")
