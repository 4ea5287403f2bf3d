# File: daogen/generator.py
"""
daogen - Generation Orchestrator
==================================

Connects every phase together, per table:

    Introspect → Resolve → Synthesize → Emit

The ``DAOGenerator`` class provides both a programmatic API and the backend
for the CLI.

Workflow::

    1. Validate the ``GenerationConfig`` (validators.py).
    2. Open one schema source for the whole run (introspection.py).
    3. Emit the shared runtime package once (templates.py / exporters.py).
    4. For each requested table, skipping tables already processed:
         introspect columns, resolve types, analyse the key, build an
         ``EntitySpec``, validate it, render and write its artifacts.
    5. Format the files written in this run.
    6. Write ``.daogen-manifest.json`` with a checksum per file.
    7. Return a ``GenerationReport`` with metrics and the manifest.

Error handling strategy:
    - Any failure aborts the run by raising a ``DaogenError`` subclass.
    - Files written before the failure stay on disk.
    - Nothing is retried.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.engine import Engine

from daogen.errors import ConfigurationError, SynthesisError
from daogen.exporters import (
    BlackFormatter,
    ExportManifest,
    FileRecord,
    ProjectExporter,
    WriteStatus,
)
from daogen.introspection import (
    SchemaSource,
    SQLAlchemySchemaSource,
    build_engine,
    introspect_table,
    list_tables,
)
from daogen.keys import analyze_primary_key, build_example_values
from daogen.models import (
    ColumnDescriptor,
    DisambiguationHint,
    EntitySpec,
    ExampleValues,
    GeneratedArtifact,
    GenerationConfig,
    GenerationContext,
    PrimaryKeySpec,
    ResolvedColumn,
)
from daogen.resolver import resolve_columns
from daogen.templates import EntityTemplate
from daogen.utils import Timer
from daogen.validators import ValidationResult, ensure_valid_entity, validate_generation_config

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("daogen.generator")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``DAOGenerator.run()``.

    Only returned for successful runs; failures raise instead.
    """

    success: bool = False
    database: str = ""
    output_directory: str = ""

    tables_processed: List[str] = field(default_factory=list)
    duplicate_tables: List[str] = field(default_factory=list)
    files_written: List[str] = field(default_factory=list)
    files_skipped: List[str] = field(default_factory=list)
    files_formatted: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    manifest: Optional[ExportManifest] = None

    def add_record(self, record: FileRecord) -> None:
        if record.status == WriteStatus.WRITTEN:
            self.files_written.append(record.relative_path)
            self.total_bytes += record.size_bytes
            self.total_lines += record.line_count
        else:
            self.files_skipped.append(record.relative_path)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "SUCCESS" if self.success else "FAILED"
        lines.append(f"{'='*60}")
        lines.append("  daogen - Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Database:         {self.database}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Tables processed: {len(self.tables_processed)}")
        lines.append(f"  Files written:    {len(self.files_written)}")
        lines.append(f"  Files kept:       {len(self.files_skipped)}")
        lines.append(f"  Files formatted:  {self.files_formatted}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'-'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "+" if step.success else "x"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.duplicate_tables:
            lines.append(f"{'-'*60}")
            lines.append(f"  Duplicate Requests ({len(self.duplicate_tables)}):")
            for tbl in self.duplicate_tables:
                lines.append(f"    - {tbl}")

        if self.warnings:
            lines.append(f"{'-'*60}")
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warn in self.warnings:
                lines.append(f"    ! {warn}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Config file loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a configuration file (JSON or YAML), dispatching on extension.

    A top-level ``daogen`` key is unwrapped, so the settings can share a
    file with other tools.

    Raises:
        ConfigurationError: The file is missing or cannot be parsed.
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    if not path.is_file():
        raise ConfigurationError(f"Config path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix == ".json":
        raw: Dict[str, Any] = _load_json_file(path)
    else:
        raw = _load_yaml_file(path)

    section: Any = raw.get("daogen", raw)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'daogen' section in {path} must be a mapping.")
    logger.info("Loaded config file: %s (%d key(s)).", path, len(section))
    return section


def build_config(
    raw: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> GenerationConfig:
    """
    Merge file settings with overrides and validate them.

    ``None`` values in ``overrides`` are ignored so that unset CLI flags do
    not erase file settings.

    Raises:
        ConfigurationError: Naming the first offending setting.
    """
    merged: Dict[str, Any] = dict(raw or {})
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    try:
        return GenerationConfig.model_validate(merged)
    except PydanticValidationError as exc:
        first: Dict[str, Any] = exc.errors()[0]
        location: Optional[str] = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ConfigurationError(first.get("msg", str(exc)), field=location) from exc


# ---------------------------------------------------------------------------
# DAOGenerator - orchestrator
# ---------------------------------------------------------------------------


class DAOGenerator:
    """
    Pipeline orchestrator for one generation run.

    Usage::

        generator = DAOGenerator(config)
        report = generator.run(["users", "orders"])
        print(report.summary())

    ``schema_source`` and ``exporter`` are injectable; when omitted an
    engine is created from ``config`` and disposed when the run ends.
    """

    def __init__(
        self,
        config: GenerationConfig,
        schema_source: Optional[SchemaSource] = None,
        exporter: Optional[ProjectExporter] = None,
    ) -> None:
        self._config: GenerationConfig = config
        self._schema_source: Optional[SchemaSource] = schema_source
        self._exporter: ProjectExporter = exporter or ProjectExporter(
            Path(config.output_dir),
            directory_mode=config.directory_mode,
            formatter=BlackFormatter(config.line_length) if config.format_code else None,
        )
        self._template: EntityTemplate = EntityTemplate(config)

        logger.debug(
            "DAOGenerator initialised: database=%s, output=%s.",
            config.database,
            self._exporter.output_dir,
        )

    @property
    def exporter(self) -> ProjectExporter:
        return self._exporter

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def run(self, tables: Optional[Sequence[str]] = None) -> GenerationReport:
        """
        Generate the given tables (default: ``config.tables``).

        With ``config.all_tables`` set and no explicit list, every table
        of the database is generated.
        """
        requested: Optional[List[str]] = list(tables) if tables is not None else None
        if requested is None:
            requested = None if self._config.all_tables else list(self._config.tables)
        if requested is not None and not requested:
            raise ConfigurationError("No tables to generate.", field="tables")
        return self._run(requested)

    def run_all(self) -> GenerationReport:
        """Generate every table of the configured database."""
        return self._run(None)

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run(self, tables: Optional[List[str]]) -> GenerationReport:
        report: GenerationReport = GenerationReport(
            database=self._config.database,
            output_directory=str(self._exporter.output_dir),
        )
        self._exporter.reset()
        pipeline_start: float = time.perf_counter()

        config_result: ValidationResult = validate_generation_config(self._config)
        report.warnings.extend(str(w) for w in config_result.warnings)
        if config_result.has_errors:
            raise ConfigurationError(
                "; ".join(e.message for e in config_result.errors)
            )

        owned_engine: Optional[Engine] = None
        source: Optional[SchemaSource] = self._schema_source
        if source is None:
            owned_engine = build_engine(self._config)
            source = SQLAlchemySchemaSource(owned_engine)

        ctx: GenerationContext = GenerationContext(config=self._config, schema_source=source)
        try:
            if tables is None:
                with Timer("list tables") as t_list:
                    tables = list_tables(ctx)
                report.step_metrics.append(GenerationStepMetric(
                    step_name="List Tables",
                    elapsed_seconds=t_list.elapsed,
                    detail=f"{len(tables)} table(s)",
                ))

            self._step_shared_artifacts(ctx, report)

            for table in tables:
                if ctx.already_processed(table):
                    logger.debug("Table '%s' already processed in this run.", table)
                    report.duplicate_tables.append(table)
                    continue
                self._step_table(ctx, table, report)
        finally:
            if owned_engine is not None:
                owned_engine.dispose()
                logger.debug("Disposed introspection engine.")

        self._step_format(report)
        self._step_manifest(report)

        report.tables_processed = list(ctx.processed_tables)
        report.total_elapsed_seconds = time.perf_counter() - pipeline_start
        report.success = True
        logger.info(
            "Generated %d table(s): %d file(s) written, %d kept, in %.3fs.",
            len(report.tables_processed),
            len(report.files_written),
            len(report.files_skipped),
            report.total_elapsed_seconds,
        )
        return report

    # -----------------------------------------------------------------
    # Pipeline step: shared runtime artifacts
    # -----------------------------------------------------------------

    def _step_shared_artifacts(self, ctx: GenerationContext, report: GenerationReport) -> None:
        if ctx.shared_artifacts_emitted:
            return
        with Timer("shared artifacts") as t:
            artifacts: List[GeneratedArtifact] = self._template.shared_artifacts()
            for artifact in artifacts:
                report.add_record(self._exporter.write(artifact))
        ctx.shared_artifacts_emitted = True
        report.step_metrics.append(GenerationStepMetric(
            step_name="Shared Runtime",
            elapsed_seconds=t.elapsed,
            detail=f"{len(artifacts)} artifact(s)",
        ))

    # -----------------------------------------------------------------
    # Pipeline step: one table
    # -----------------------------------------------------------------

    def build_entity(self, ctx: GenerationContext, table: str) -> EntitySpec:
        """Introspect and resolve ``table`` into a validated ``EntitySpec``."""
        described: List[Tuple[ColumnDescriptor, DisambiguationHint]] = introspect_table(ctx, table)
        resolved: List[ResolvedColumn] = resolve_columns(described)
        key: PrimaryKeySpec = analyze_primary_key(resolved)

        examples: Optional[ExampleValues] = ctx.example_cache.get(table)
        if examples is None:
            examples = build_example_values(resolved, key)
            ctx.example_cache[table] = examples

        try:
            entity: EntitySpec = EntitySpec(
                table=table,
                database=self._config.database,
                columns=tuple(resolved),
                primary_key=key,
                examples=examples,
            )
        except PydanticValidationError as exc:
            raise SynthesisError(f"Invalid entity: {exc}", table=table) from exc

        ensure_valid_entity(entity)
        return entity

    def _step_table(self, ctx: GenerationContext, table: str, report: GenerationReport) -> None:
        with Timer(f"table {table}") as t:
            entity: EntitySpec = self.build_entity(ctx, table)
            artifacts: List[GeneratedArtifact] = self._template.entity_artifacts(entity)
            written: int = 0
            for artifact in artifacts:
                record: FileRecord = self._exporter.write(artifact)
                report.add_record(record)
                if record.status == WriteStatus.WRITTEN:
                    written += 1
        ctx.mark_processed(table)

        report.step_metrics.append(GenerationStepMetric(
            step_name=f"Table {table}",
            elapsed_seconds=t.elapsed,
            detail=f"{len(entity.columns)} column(s), {written}/{len(artifacts)} file(s) written",
        ))
        logger.info(
            "Generated %s: %d column(s), key=%s.",
            table,
            len(entity.columns),
            entity.primary_key.column_names,
        )

    # -----------------------------------------------------------------
    # Pipeline step: formatting
    # -----------------------------------------------------------------

    def _step_format(self, report: GenerationReport) -> None:
        if not self._config.format_code:
            return
        with Timer("format") as t:
            report.files_formatted = self._exporter.format_written()
        report.step_metrics.append(GenerationStepMetric(
            step_name="Format",
            elapsed_seconds=t.elapsed,
            detail=f"{report.files_formatted} file(s) changed",
        ))

    # -----------------------------------------------------------------
    # Pipeline step: manifest
    # -----------------------------------------------------------------

    def _step_manifest(self, report: GenerationReport) -> None:
        with Timer("manifest") as t:
            report.manifest = self._exporter.write_manifest()
        report.total_bytes = report.manifest.total_bytes
        report.total_lines = report.manifest.total_lines
        report.step_metrics.append(GenerationStepMetric(
            step_name="Manifest",
            elapsed_seconds=t.elapsed,
            detail=f"{len(report.manifest.files)} file(s) recorded",
        ))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DAOGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "load_config_file",
    "build_config",
]

logger.debug("daogen.generator loaded.")
