# File: daogen/validators.py
"""
daogen - Entity & Configuration Validators
============================================
Semantic checks on top of the Pydantic models in ``daogen.models``.

Pydantic handles per-field structure.  This module adds the checks that
need a whole entity or the whole configuration: generated identifier
clashes, enum columns without values, key-less tables, duplicate table
requests.  Findings are collected into a ``ValidationResult``; the
orchestrator turns entity errors into a ``SynthesisError``.

Usage:
    from daogen.validators import validate_entity
    result = validate_entity(entity)
    if result.has_errors:
        ...
"""

from __future__ import annotations

import keyword
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from daogen.errors import SynthesisError
from daogen.models import BaseKind, EntitySpec, GenerationConfig
from daogen.utils import table_to_class_name, table_to_module_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("daogen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight finding descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Entity checks
# ---------------------------------------------------------------------------


def validate_field_names(entity: EntitySpec) -> ValidationResult:
    """
    Generated field names must be unique identifiers.

    Two columns such as ``userId`` and ``user_id`` both become ``user_id``;
    the generated dataclass would silently lose one of them.
    """
    result: ValidationResult = ValidationResult()
    owners: Dict[str, str] = {}

    for col in entity.columns:
        name: str = col.field_name
        ctx: Dict[str, Any] = {"table": entity.table, "column": col.name}
        if not name.isidentifier() or keyword.iskeyword(name):
            result.add_error(
                "INVALID_FIELD_NAME",
                f"Column '{col.name}' maps to invalid field name '{name}'.",
                ctx,
            )
        if name in owners:
            result.add_error(
                "DUPLICATE_FIELD_NAME",
                f"Columns '{owners[name]}' and '{col.name}' both map to field '{name}'.",
                ctx,
            )
        else:
            owners[name] = col.name

    return result


def validate_enum_columns(entity: EntitySpec) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for col in entity.columns:
        ctx: Dict[str, Any] = {"table": entity.table, "column": col.name}
        if col.type_descriptor.base_kind == BaseKind.STRING_ENUM and not col.allowed_values:
            result.add_error(
                "ENUM_WITHOUT_VALUES",
                f"Enum column '{col.name}' declares no values ({col.column.full_type!r}).",
                ctx,
            )
        if col.default is not None and col.allowed_values and not col.column.full_type.lower().startswith("set"):
            if col.default not in col.allowed_values:
                result.add_warning(
                    "ENUM_DEFAULT_NOT_ALLOWED",
                    f"Default {col.default!r} of '{col.name}' is not an allowed value.",
                    ctx,
                )
    return result


def validate_primary_key(entity: EntitySpec) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    key = entity.primary_key
    if not key.has_key:
        result.add_warning(
            "NO_PRIMARY_KEY",
            f"Table '{entity.table}' has no primary key; only read_all, "
            f"read_by_query, read_one_by_query and exec_ are generated.",
            {"table": entity.table},
        )
    elif key.is_composite:
        result.add_info(
            "COMPOSITE_PRIMARY_KEY",
            f"Table '{entity.table}' has a {key.cardinality}-column key; "
            f"save() does not capture an inserted id.",
            {"table": entity.table, "columns": key.column_names},
        )
    return result


def validate_names(entity: EntitySpec) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    class_name: str = table_to_class_name(entity.table)
    module_name: str = table_to_module_name(entity.table)
    if not class_name.isidentifier():
        result.add_error(
            "INVALID_CLASS_NAME",
            f"Table '{entity.table}' produces invalid class name '{class_name}'.",
            {"table": entity.table},
        )
    if module_name != entity.table:
        result.add_info(
            "MODULE_NAME_CHANGED",
            f"Table '{entity.table}' is generated as package '{module_name}'.",
            {"table": entity.table},
        )
    return result


def validate_entity(entity: EntitySpec) -> ValidationResult:
    """Run every entity-level check.  Returns a merged ``ValidationResult``."""
    result: ValidationResult = ValidationResult()
    validators: List[Callable[[EntitySpec], ValidationResult]] = [
        validate_names,
        validate_field_names,
        validate_enum_columns,
        validate_primary_key,
    ]
    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(entity))

    for item in result.warnings:
        logger.warning("%s", item)
    logger.debug("Entity '%s': %s", entity.table, result.summary())
    return result


def ensure_valid_entity(entity: EntitySpec) -> ValidationResult:
    """
    Validate ``entity`` and raise when it cannot be generated.

    Raises:
        SynthesisError: Listing every error finding.
    """
    result: ValidationResult = validate_entity(entity)
    if result.has_errors:
        raise SynthesisError(
            "Entity cannot be generated",
            table=entity.table,
            problems=[e.message for e in result.errors],
        )
    return result


# ---------------------------------------------------------------------------
# Configuration checks
# ---------------------------------------------------------------------------


def validate_generation_config(config: GenerationConfig) -> ValidationResult:
    """
    Semantic checks on the configuration beyond Pydantic field constraints.
    """
    result: ValidationResult = ValidationResult()

    seen: Set[str] = set()
    for table in config.tables:
        if table in seen:
            result.add_warning(
                "DUPLICATE_TABLE",
                f"Table '{table}' is requested more than once; it is generated once.",
                {"table": table},
            )
        seen.add(table)

    if config.all_tables and config.tables:
        result.add_warning(
            "TABLES_IGNORED",
            "all_tables is enabled; the explicit table list is ignored.",
            {"tables": list(config.tables)},
        )

    if not config.output_dir.strip():
        result.add_error("EMPTY_OUTPUT_DIR", "output_dir must not be empty.")

    if config.directory_mode & 0o700 != 0o700:
        result.add_error(
            "DIRECTORY_MODE_UNUSABLE",
            f"directory_mode {oct(config.directory_mode)} does not let the owner "
            f"write into created directories.",
            {"directory_mode": config.directory_mode},
        )

    logger.info("Config validation complete: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_field_names",
    "validate_enum_columns",
    "validate_primary_key",
    "validate_names",
    "validate_entity",
    "ensure_valid_entity",
    "validate_generation_config",
]

logger.debug("daogen.validators loaded: %d public symbols.", len(__all__))
