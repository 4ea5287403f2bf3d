# File: daogen/models.py
"""
daogen - Core Data Models
===========================
Pydantic V2 models describing introspected columns, resolved types, primary
keys and the per-table ``EntitySpec`` consumed by the template engine, plus
the generation configuration and per-run context.

Pipeline: Introspection → Resolution → Synthesis → Export.  Every stage
takes and returns the models defined here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    computed_field,
    field_validator,
    model_validator,
)

if TYPE_CHECKING:
    from daogen.introspection import SchemaSource

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("daogen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class KeyRole(str, Enum):
    """Role a column plays in the table's key."""

    NONE = "none"
    PRIMARY = "primary"


class TypeKind(str, Enum):
    """Whether the target value may be NULL."""

    PLAIN = "plain"
    NULLABLE = "nullable"


class BaseKind(str, Enum):
    """Canonical target value types."""

    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    STRING_ENUM = "string-enum"
    TIMESTAMP = "timestamp"


class DisambiguationHint(str, Enum):
    """Extra signal for columns whose declared type is ambiguous."""

    NONE = "none"
    BOOLEAN = "boolean"
    INTEGER = "integer"


class BooleanDetection(str, Enum):
    """How single-byte integer columns are classified."""

    SAMPLE = "sample"
    DECLARED = "declared"


class ArtifactKind(str, Enum):
    """Every kind of file the generator emits."""

    CRUD = "crud"
    PACKAGE_INIT = "package_init"
    DAO = "dao"
    BO = "bo"
    TEST = "test"
    EXAMPLES = "examples"
    MODELS_INIT = "models_init"
    RUNTIME_INIT = "runtime_init"
    CONNECTION = "connection"
    VALIDATION = "validation"
    NULLTIME = "nulltime"


class WritePolicy(str, Enum):
    """Whether an existing file on disk may be replaced."""

    ALWAYS = "always"
    CREATE_ONCE = "create_once"


# Single source of truth for the overwrite contract.
ARTIFACT_POLICIES: Dict[ArtifactKind, WritePolicy] = {
    ArtifactKind.CRUD: WritePolicy.ALWAYS,
    ArtifactKind.PACKAGE_INIT: WritePolicy.ALWAYS,
    ArtifactKind.DAO: WritePolicy.CREATE_ONCE,
    ArtifactKind.BO: WritePolicy.CREATE_ONCE,
    ArtifactKind.TEST: WritePolicy.CREATE_ONCE,
    ArtifactKind.EXAMPLES: WritePolicy.CREATE_ONCE,
    ArtifactKind.MODELS_INIT: WritePolicy.CREATE_ONCE,
    ArtifactKind.RUNTIME_INIT: WritePolicy.CREATE_ONCE,
    ArtifactKind.CONNECTION: WritePolicy.ALWAYS,
    ArtifactKind.VALIDATION: WritePolicy.CREATE_ONCE,
    ArtifactKind.NULLTIME: WritePolicy.ALWAYS,
}


def policy_for(kind: ArtifactKind) -> WritePolicy:
    """Return the write policy for an artifact kind."""
    return ARTIFACT_POLICIES[ArtifactKind(kind)]


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Column metadata
# ---------------------------------------------------------------------------


class ColumnDescriptor(BaseModel):
    """
    One column exactly as reported by the schema source.

    Immutable once read: resolution never mutates it, it only derives new
    models from it.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    nullable: bool = Field(default=False, description="Column allows NULL.")
    key_role: KeyRole = Field(default=KeyRole.NONE, description="Key role.")
    native_type: str = Field(
        ..., min_length=1, description="Bare type name, e.g. 'tinyint'."
    )
    full_type: str = Field(
        default="", description="Full type string, e.g. \"enum('A','B')\"."
    )
    default: Optional[str] = Field(default=None, description="Raw default value.")
    extra: Optional[str] = Field(
        default=None, description="Extra column info, e.g. 'auto_increment'."
    )

    @field_validator("native_type")
    @classmethod
    def _lower_native_type(cls, v: str) -> str:
        return v.strip().lower()

    @computed_field  # type: ignore[misc]
    @property
    def is_primary(self) -> bool:
        return self.key_role == KeyRole.PRIMARY

    @computed_field  # type: ignore[misc]
    @property
    def key_label(self) -> str:
        """MySQL-style key label carried into generated column metadata."""
        return "PRI" if self.is_primary else ""

    def __repr__(self) -> str:
        pk_flag: str = " PK" if self.is_primary else ""
        null_flag: str = " NULL" if self.nullable else " NOT NULL"
        return f"<Column {self.name} {self.full_type or self.native_type}{pk_flag}{null_flag}>"


class TypeDescriptor(BaseModel):
    """Resolved target representation of a column value."""

    model_config = _FROZEN_CONFIG

    kind: TypeKind = Field(..., description="plain or nullable.")
    base_kind: BaseKind = Field(..., description="Canonical value type.")

    @computed_field  # type: ignore[misc]
    @property
    def is_nullable(self) -> bool:
        return self.kind == TypeKind.NULLABLE

    @computed_field  # type: ignore[misc]
    @property
    def is_wrapped(self) -> bool:
        """Nullable timestamps are carried in the ``NullTime`` wrapper."""
        return self.is_nullable and self.base_kind == BaseKind.TIMESTAMP

    @computed_field  # type: ignore[misc]
    @property
    def python_type_hint(self) -> str:
        """Annotation string used for the generated dataclass field."""
        _MAP: Dict[BaseKind, str] = {
            BaseKind.INT: "int",
            BaseKind.FLOAT: "float",
            BaseKind.BOOL: "bool",
            BaseKind.STRING: "str",
            BaseKind.STRING_ENUM: "str",
            BaseKind.TIMESTAMP: "datetime",
        }
        if self.is_wrapped:
            return "NullTime"
        base: str = _MAP[self.base_kind]
        if self.is_nullable:
            return f"Optional[{base}]"
        return base

    def with_base_kind(self, base_kind: BaseKind) -> "TypeDescriptor":
        """Return a copy with a different base kind (same nullability)."""
        return TypeDescriptor(kind=self.kind, base_kind=base_kind)

    def __repr__(self) -> str:
        return f"<Type {self.kind.value} {self.base_kind.value}>"


class ResolvedColumn(BaseModel):
    """A column together with everything derived from it."""

    model_config = _FROZEN_CONFIG

    column: ColumnDescriptor
    type_descriptor: TypeDescriptor
    field_name: str = Field(..., min_length=1, description="Python attribute name.")
    default: Optional[str] = Field(
        default=None, description="Normalized literal default (None = no default)."
    )
    allowed_values: Tuple[str, ...] = Field(
        default=(), description="Enum constraint, empty when unconstrained."
    )
    server_default: bool = Field(
        default=False,
        description="Default is a server-side expression such as CURRENT_TIMESTAMP.",
    )

    @computed_field  # type: ignore[misc]
    @property
    def name(self) -> str:
        return self.column.name

    @computed_field  # type: ignore[misc]
    @property
    def is_primary(self) -> bool:
        return self.column.is_primary

    @computed_field  # type: ignore[misc]
    @property
    def has_enum_constraint(self) -> bool:
        return len(self.allowed_values) > 0


# ---------------------------------------------------------------------------
# Primary key
# ---------------------------------------------------------------------------


class KeyColumn(BaseModel):
    """One entry of a primary key, in declared order."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1)
    field_name: str = Field(..., min_length=1)
    type_descriptor: TypeDescriptor
    example: str = Field(
        default="None", description="Python literal used in example code."
    )


class PrimaryKeySpec(BaseModel):
    """
    Ordered primary-key description.

    Cardinality drives the generated surface: 0 columns → no save / delete /
    read-by-id, 1 column → last-insert-id capture on save, N columns →
    AND-combined predicates and no id capture.
    """

    model_config = _FROZEN_CONFIG

    columns: Tuple[KeyColumn, ...] = Field(default=())
    order_clause: str = Field(
        default="", description="Default ordering used by examples."
    )

    @computed_field  # type: ignore[misc]
    @property
    def cardinality(self) -> int:
        return len(self.columns)

    @computed_field  # type: ignore[misc]
    @property
    def has_key(self) -> bool:
        return self.cardinality > 0

    @computed_field  # type: ignore[misc]
    @property
    def is_composite(self) -> bool:
        return self.cardinality > 1

    @computed_field  # type: ignore[misc]
    @property
    def column_names(self) -> List[str]:
        return [k.name for k in self.columns]

    def __repr__(self) -> str:
        return f"<PrimaryKey ({', '.join(self.column_names)})>"


class ExampleValues(BaseModel):
    """Literals used to pre-seed generated example and test code."""

    model_config = _FROZEN_CONFIG

    id_literals: Tuple[str, ...] = Field(default=())
    column: str = Field(default="", description="Example string column.")
    column_field: str = Field(default="", description="Its Python field name.")
    column_literal: str = Field(default='"some string"')
    order_clause: str = Field(default="")


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


class EntitySpec(BaseModel):
    """
    Fully resolved description of one table.

    Built once per table by the orchestrator, consumed by the template
    engine and then discarded.
    """

    model_config = _FROZEN_CONFIG

    table: str = Field(..., min_length=1)
    database: str = Field(..., min_length=1)
    columns: Tuple[ResolvedColumn, ...] = Field(..., min_length=1)
    primary_key: PrimaryKeySpec = Field(default_factory=PrimaryKeySpec)
    examples: ExampleValues = Field(default_factory=ExampleValues)

    @model_validator(mode="after")
    def _validate_key_columns_exist(self) -> "EntitySpec":
        names: Set[str] = {c.name for c in self.columns}
        missing: List[str] = [k for k in self.primary_key.column_names if k not in names]
        if missing:
            raise ValueError(
                f"Primary key of '{self.table}' references unknown columns: {missing}"
            )
        return self

    def get_column(self, name: str) -> Optional[ResolvedColumn]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @computed_field  # type: ignore[misc]
    @property
    def non_key_columns(self) -> List[ResolvedColumn]:
        return [c for c in self.columns if not c.is_primary]

    @computed_field  # type: ignore[misc]
    @property
    def uses_nulltime(self) -> bool:
        return any(c.type_descriptor.is_wrapped for c in self.columns)

    def __repr__(self) -> str:
        return (
            f"<Entity {self.database}.{self.table} "
            f"({len(self.columns)} cols, key={self.primary_key.column_names})>"
        )


class GeneratedArtifact(BaseModel):
    """One file produced by the template engine."""

    model_config = _FROZEN_CONFIG

    path: str = Field(..., min_length=1, description="Path relative to output dir.")
    content: str = Field(..., description="Full file content.")
    kind: ArtifactKind

    @computed_field  # type: ignore[misc]
    @property
    def policy(self) -> WritePolicy:
        return policy_for(self.kind)


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Every setting a generation run needs.

    Missing database / host / table values are rejected here instead of
    silently generating against empty names.
    """

    model_config = _SHARED_CONFIG

    # -- Schema source ------------------------------------------------------
    database: str = Field(..., min_length=1, description="Database (schema) name.")
    host: str = Field(..., min_length=1, description="Database server host.")
    port: int = Field(default=3306, ge=1, le=65535, description="Server port.")
    username: str = Field(default="root", min_length=1, description="Login user.")
    password: SecretStr = Field(
        default=SecretStr(""), description="Login password (never logged)."
    )
    driver: str = Field(
        default="mysql+pymysql", description="SQLAlchemy driver name."
    )
    charset: str = Field(default="utf8mb4", description="Connection charset.")

    # -- What to generate ---------------------------------------------------
    tables: List[str] = Field(
        default_factory=list, description="Tables to generate, in order."
    )
    all_tables: bool = Field(
        default=False, description="Generate every table in the database."
    )
    boolean_detection: BooleanDetection = Field(
        default=BooleanDetection.SAMPLE,
        description="Classify tinyint columns by sampled data or declared width.",
    )

    # -- Output -------------------------------------------------------------
    output_dir: str = Field(
        default="./generated", description="Root directory for generated code."
    )
    models_package: str = Field(
        default="models", description="Package holding one sub-package per table."
    )
    runtime_package: str = Field(
        default="dbruntime", description="Package holding shared runtime modules."
    )
    password_env: str = Field(
        default="DB_PASSWORD",
        description="Environment variable the generated connection reads.",
    )
    directory_mode: int = Field(
        default=0o777, ge=0, le=0o777, description="Mode for created directories."
    )

    # -- Code style ---------------------------------------------------------
    format_code: bool = Field(
        default=True, description="Run black over written files."
    )
    line_length: int = Field(
        default=99, ge=40, le=200, description="Formatter line length."
    )
    indent_size: int = Field(
        default=4, ge=2, le=8, description="Indentation width."
    )

    @field_validator("models_package", "runtime_package")
    @classmethod
    def _package_is_identifier(cls, v: str) -> str:
        if not v.isidentifier():
            raise ValueError(f"'{v}' is not a valid Python package name.")
        return v

    @field_validator("tables")
    @classmethod
    def _strip_table_names(cls, v: List[str]) -> List[str]:
        cleaned: List[str] = [t.strip() for t in v]
        empty: List[int] = [i for i, t in enumerate(cleaned) if not t]
        if empty:
            raise ValueError(f"Empty table name at position(s) {empty}.")
        return cleaned

    @model_validator(mode="after")
    def _require_tables(self) -> "GenerationConfig":
        if not self.tables and not self.all_tables:
            raise ValueError(
                "At least one table is required (or enable all_tables)."
            )
        return self

    @model_validator(mode="after")
    def _distinct_packages(self) -> "GenerationConfig":
        if self.models_package == self.runtime_package:
            raise ValueError(
                "models_package and runtime_package must differ."
            )
        return self


# ---------------------------------------------------------------------------
# Per-run context
# ---------------------------------------------------------------------------


@dataclass
class GenerationContext:
    """
    State owned by one orchestrator run and threaded through every stage.

    Discarded when the run ends; nothing here is shared between runs.
    """

    config: GenerationConfig
    schema_source: "SchemaSource"
    processed_tables: List[str] = field(default_factory=list)
    example_cache: Dict[str, ExampleValues] = field(default_factory=dict)
    shared_artifacts_emitted: bool = False

    def already_processed(self, table: str) -> bool:
        return table in self.processed_tables

    def mark_processed(self, table: str) -> None:
        self.processed_tables.append(table)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "KeyRole",
    "TypeKind",
    "BaseKind",
    "DisambiguationHint",
    "BooleanDetection",
    "ArtifactKind",
    "WritePolicy",
    "ARTIFACT_POLICIES",
    "policy_for",
    "ColumnDescriptor",
    "TypeDescriptor",
    "ResolvedColumn",
    "KeyColumn",
    "PrimaryKeySpec",
    "ExampleValues",
    "EntitySpec",
    "GeneratedArtifact",
    "GenerationConfig",
    "GenerationContext",
]

logger.debug("daogen.models loaded: %d public symbols.", len(__all__))
