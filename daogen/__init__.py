# File: daogen/__init__.py
"""
daogen - Typed Data-Access Code Generator
===========================================

Inspects MySQL tables (column metadata plus, where needed, stored data) and
writes one typed Python package per table: an entity dataclass, CRUD
operations and pre-write enum validation, on top of a small shared runtime
package.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│  DAOGenerator  │────▶│  EntityTemplate  │
    │   (cli.py)   │     │ (generator.py) │     │  (templates.py)  │
    └──────────────┘     └───────┬───────┘     └──────────────────┘
                                 │
              ┌──────────────┬───┴──────────┬─────────────┐
              ▼              ▼              ▼             ▼
      ┌─────────────┐  ┌──────────┐  ┌────────────┐ ┌───────────┐
      │introspection│  │ resolver │  │ keys/enums │ │ exporters │
      └─────────────┘  └──────────┘  └────────────┘ └───────────┘

Usage::

    # As a library
    from daogen import DAOGenerator, build_config
    config = build_config({"database": "shop", "host": "127.0.0.1", "tables": ["users"]})
    report = DAOGenerator(config).run()

    # From the command line
    python -m daogen --table users --database shop --host 127.0.0.1 -v
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from daogen.errors import (
    ConfigurationError,
    DaogenError,
    IntrospectionFailure,
    IOFailure,
    SchemaNotFound,
    SynthesisError,
)
from daogen.models import (
    ArtifactKind,
    BaseKind,
    BooleanDetection,
    ColumnDescriptor,
    DisambiguationHint,
    EntitySpec,
    GeneratedArtifact,
    GenerationConfig,
    GenerationContext,
    PrimaryKeySpec,
    TypeDescriptor,
    WritePolicy,
)
from daogen.introspection import SchemaSource, SQLAlchemySchemaSource
from daogen.resolver import resolve_type
from daogen.enums import extract_enum_values
from daogen.keys import analyze_primary_key
from daogen.templates import EntityTemplate
from daogen.exporters import ExportManifest, ProjectExporter
from daogen.generator import DAOGenerator, GenerationReport, build_config, load_config_file

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Orchestrator
    "DAOGenerator",
    "GenerationReport",
    "build_config",
    "load_config_file",
    # Errors
    "DaogenError",
    "ConfigurationError",
    "SchemaNotFound",
    "IntrospectionFailure",
    "IOFailure",
    "SynthesisError",
    # Models
    "ArtifactKind",
    "BaseKind",
    "BooleanDetection",
    "ColumnDescriptor",
    "DisambiguationHint",
    "EntitySpec",
    "GeneratedArtifact",
    "GenerationConfig",
    "GenerationContext",
    "PrimaryKeySpec",
    "TypeDescriptor",
    "WritePolicy",
    # Pipeline stages
    "SchemaSource",
    "SQLAlchemySchemaSource",
    "resolve_type",
    "extract_enum_values",
    "analyze_primary_key",
    "EntityTemplate",
    "ProjectExporter",
    "ExportManifest",
]
