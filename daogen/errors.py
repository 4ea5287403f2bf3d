# File: daogen/errors.py
"""
daogen - Exception Hierarchy
==============================

Every generation-time failure raised by the pipeline derives from
``DaogenError`` so the CLI can map it onto an exit code.  Generation errors
are never retried: they propagate straight to the caller of
``DAOGenerator.run()``.

Runtime errors of the *generated* code (``InvalidEnumValue``) live in the
emitted runtime package, not here.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class DaogenError(Exception):
    """Base exception for every daogen generation failure."""

    def __init__(self, message: str, table: Optional[str] = None) -> None:
        self.table: Optional[str] = table
        full_message: str = message if not table else f"[{table}] {message}"
        super().__init__(full_message)


class ConfigurationError(DaogenError):
    """Raised when required settings are missing or invalid."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field: Optional[str] = field
        if field:
            message = f"Setting '{field}': {message}"
        super().__init__(message)


class SchemaNotFound(DaogenError):
    """Raised when the schema source returns no columns for a table."""

    def __init__(self, table: str, database: str) -> None:
        self.database: str = database
        super().__init__(
            f"No columns found in database '{database}'.", table=table
        )


class IntrospectionFailure(DaogenError):
    """Raised when the schema source is unreachable or a metadata query fails."""


class IOFailure(DaogenError):
    """Raised when a directory or file cannot be created or written."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path: Optional[str] = path
        if path:
            message = f"{message} ({path})"
        super().__init__(message)


class SynthesisError(DaogenError):
    """Raised when an entity cannot be turned into valid source code."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        problems: Sequence[str] = (),
    ) -> None:
        self.problems: List[str] = list(problems)
        if self.problems:
            message = message + ": " + "; ".join(self.problems)
        super().__init__(message, table=table)


__all__: List[str] = [
    "DaogenError",
    "ConfigurationError",
    "SchemaNotFound",
    "IntrospectionFailure",
    "IOFailure",
    "SynthesisError",
]
