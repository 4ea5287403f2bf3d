# File: daogen/exporters.py
"""
daogen - Project Exporter (File-System Writer)
================================================

Responsible for:
    1. Creating output directories with the configured mode.
    2. Writing generated files atomically (write-to-temp then rename).
    3. Applying the write policy: ALWAYS files are replaced, CREATE_ONCE
       files are left alone once they exist.
    4. Formatting the files written in this run with black.
    5. Recording a manifest of everything written or skipped, saved as
       ``.daogen-manifest.json`` in the output directory.

A failed write raises ``IOFailure``; files written before the failure stay
on disk.  Formatter failures are logged and never abort a run.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import black

from daogen.errors import IOFailure
from daogen.models import GeneratedArtifact, WritePolicy, policy_for
from daogen.utils import count_lines, ensure_directory, read_file, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("daogen.exporters")

MANIFEST_FILENAME: str = ".daogen-manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


class WriteStatus(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single export decision."""

    relative_path: str
    absolute_path: str
    status: WriteStatus
    policy: WritePolicy
    size_bytes: int = 0
    line_count: int = 0
    sha256: str = ""


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Every file the exporter wrote or skipped during one run."""

    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    files: List[FileRecord] = field(default_factory=list)

    @property
    def written(self) -> List[FileRecord]:
        return [f for f in self.files if f.status == WriteStatus.WRITTEN]

    @property
    def skipped(self) -> List[FileRecord]:
        return [f for f in self.files if f.status == WriteStatus.SKIPPED]

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.written)

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.written)

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to a JSON-serialisable dictionary."""
        return {
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "status": f.status.value,
                    "policy": f.policy.value,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Source formatter
# ---------------------------------------------------------------------------


class BlackFormatter:
    """Re-formats written Python files in place with black."""

    def __init__(self, line_length: int = 99) -> None:
        self._mode: black.Mode = black.Mode(line_length=line_length)

    def format_file(self, path: Path) -> bool:
        """
        Format one file.  Returns True when the file changed.

        Failures are logged as warnings; the unformatted file stays valid.
        """
        try:
            source: str = read_file(path)
            formatted: str = black.format_str(source, mode=self._mode)
        except (black.InvalidInput, ValueError, OSError) as exc:
            logger.warning("Formatter failed for %s: %s", path, exc)
            return False
        if formatted == source:
            return False
        try:
            write_file(path, formatted)
        except OSError as exc:
            logger.warning("Could not write formatted %s: %s", path, exc)
            return False
        return True


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Writes generated artifacts below one output directory.

    Usage::

        exporter = ProjectExporter(Path("./generated"))
        record = exporter.write(artifact)
        exporter.format_written()

    Thread-safety: NOT thread-safe.  Use one exporter per output directory.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        directory_mode: int = 0o777,
        atomic_writes: bool = True,
        formatter: Optional[BlackFormatter] = None,
    ) -> None:
        self._output_dir: Path = Path(output_dir).resolve()
        self._directory_mode: int = directory_mode
        self._atomic_writes: bool = atomic_writes
        self._formatter: Optional[BlackFormatter] = formatter
        self._records: List[FileRecord] = []

        logger.debug(
            "ProjectExporter initialised: output_dir=%s, mode=%o, atomic=%s.",
            self._output_dir,
            self._directory_mode,
            self._atomic_writes,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @property
    def records(self) -> List[FileRecord]:
        return list(self._records)

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def reset(self) -> None:
        """Forget the records of a previous run."""
        self._records.clear()

    def exists(self, relative_path: str) -> bool:
        return (self._output_dir / relative_path).exists()

    def write(
        self,
        artifact: GeneratedArtifact,
        policy: Optional[WritePolicy] = None,
    ) -> FileRecord:
        """
        Write one artifact according to its write policy.

        Args:
            artifact: The generated file.
            policy: Overrides the policy registered for the artifact's kind.

        Returns:
            A ``FileRecord`` with status ``written`` or ``skipped``.

        Raises:
            IOFailure: The directory or file could not be created.
        """
        effective: WritePolicy = WritePolicy(policy or policy_for(artifact.kind))
        full_path: Path = self._output_dir / artifact.path

        if effective == WritePolicy.CREATE_ONCE and self.exists(artifact.path):
            record: FileRecord = FileRecord(
                relative_path=artifact.path,
                absolute_path=str(full_path),
                status=WriteStatus.SKIPPED,
                policy=effective,
            )
            self._records.append(record)
            logger.debug("Kept existing %s.", artifact.path)
            return record

        try:
            ensure_directory(full_path.parent, mode=self._directory_mode)
        except OSError as exc:
            raise IOFailure(
                f"Cannot create directory: {exc}", path=str(full_path.parent)
            ) from exc

        try:
            size_bytes: int = write_file(
                full_path,
                artifact.content,
                atomic=self._atomic_writes,
                mode=self._directory_mode,
            )
        except OSError as exc:
            raise IOFailure(f"Cannot write file: {exc}", path=str(full_path)) from exc

        record = FileRecord(
            relative_path=artifact.path,
            absolute_path=str(full_path),
            status=WriteStatus.WRITTEN,
            policy=effective,
            size_bytes=size_bytes,
            line_count=count_lines(artifact.content),
            sha256=sha256_hex(artifact.content),
        )
        self._records.append(record)
        logger.debug(
            "Wrote file: %s (%d bytes, %d lines).",
            artifact.path,
            record.size_bytes,
            record.line_count,
        )
        return record

    def format_written(self) -> int:
        """
        Run the formatter over every Python file written so far.

        Records of reformatted files are refreshed so the manifest describes
        the bytes on disk.
        """
        if self._formatter is None:
            return 0
        changed: int = 0
        for index, record in enumerate(self._records):
            if record.status != WriteStatus.WRITTEN or not record.relative_path.endswith(".py"):
                continue
            if not self._formatter.format_file(Path(record.absolute_path)):
                continue
            changed += 1
            try:
                content: str = read_file(Path(record.absolute_path))
            except OSError as exc:
                logger.warning("Could not re-read formatted %s: %s", record.relative_path, exc)
                continue
            self._records[index] = replace(
                record,
                size_bytes=len(content.encode("utf-8")),
                line_count=count_lines(content),
                sha256=sha256_hex(content),
            )
        logger.info("Formatted %d file(s).", changed)
        return changed

    def build_manifest(self) -> ExportManifest:
        """Build the export manifest from collected file records."""
        import daogen

        return ExportManifest(
            generator_version=daogen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            files=list(self._records),
        )

    def write_manifest(self) -> ExportManifest:
        """
        Write the manifest JSON to ``MANIFEST_FILENAME`` in the output directory.

        The manifest lists the generated files only, never itself.  A write
        failure is logged; the returned manifest is still complete.
        """
        manifest: ExportManifest = self.build_manifest()
        manifest_path: Path = self._output_dir / MANIFEST_FILENAME
        try:
            ensure_directory(self._output_dir, mode=self._directory_mode)
            write_file(
                manifest_path,
                manifest.to_json() + "\n",
                atomic=self._atomic_writes,
                mode=self._directory_mode,
            )
            logger.debug("Wrote manifest to %s.", manifest_path)
        except OSError as exc:
            logger.warning("Failed to write manifest: %s", exc)
        return manifest


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "WriteStatus",
    "FileRecord",
    "ExportManifest",
    "MANIFEST_FILENAME",
    "BlackFormatter",
    "ProjectExporter",
]

logger.debug("daogen.exporters loaded.")
