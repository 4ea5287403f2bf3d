"""
tests/test_exporters.py
Unit tests for daogen.exporters.

Tests cover:
- ALWAYS vs CREATE_ONCE write policy
- Directory creation with the configured mode
- IOFailure on unwritable targets
- Black formatting of written files, non-fatal failures
- Export manifest
"""

from __future__ import annotations

import json
import os
import pathlib
import stat

import pytest

from daogen.errors import IOFailure
from daogen.exporters import MANIFEST_FILENAME, BlackFormatter, ProjectExporter, WriteStatus
from daogen.models import ArtifactKind, GeneratedArtifact, WritePolicy
from daogen.utils import sha256_hex


def _artifact(path: str, content: str, kind: ArtifactKind) -> GeneratedArtifact:
    return GeneratedArtifact(path=path, content=content, kind=kind)


class TestWritePolicy:
    def test_create_once_file_is_kept(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path)
        target = tmp_path / "models" / "users" / "dao.py"
        target.parent.mkdir(parents=True)
        target.write_text("# custom code\n", encoding="utf-8")

        record = exporter.write(_artifact("models/users/dao.py", "generated\n", ArtifactKind.DAO))
        assert record.status == WriteStatus.SKIPPED
        assert record.policy == WritePolicy.CREATE_ONCE
        assert target.read_text(encoding="utf-8") == "# custom code\n"

    def test_create_once_file_is_created(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path)
        record = exporter.write(_artifact("models/users/bo.py", "x = 1\n", ArtifactKind.BO))
        assert record.status == WriteStatus.WRITTEN
        assert (tmp_path / "models" / "users" / "bo.py").read_text(encoding="utf-8") == "x = 1\n"

    def test_always_file_is_replaced(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path)
        target = tmp_path / "models" / "users" / "crud.py"
        target.parent.mkdir(parents=True)
        target.write_text("stale\n", encoding="utf-8")

        record = exporter.write(_artifact("models/users/crud.py", "fresh\n", ArtifactKind.CRUD))
        assert record.status == WriteStatus.WRITTEN
        assert record.line_count == 1
        assert record.size_bytes == len("fresh\n")
        assert target.read_text(encoding="utf-8") == "fresh\n"

    def test_explicit_policy_overrides_kind(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path)
        (tmp_path / "a.py").write_text("old\n", encoding="utf-8")
        record = exporter.write(
            _artifact("a.py", "new\n", ArtifactKind.DAO), policy=WritePolicy.ALWAYS
        )
        assert record.status == WriteStatus.WRITTEN
        assert (tmp_path / "a.py").read_text(encoding="utf-8") == "new\n"

    def test_exists(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path)
        assert not exporter.exists("x.py")
        exporter.write(_artifact("x.py", "", ArtifactKind.CRUD))
        assert exporter.exists("x.py")


class TestDirectories:
    def test_directory_mode_applied(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path / "out", directory_mode=0o750)
        exporter.write(_artifact("pkg/sub/m.py", "", ArtifactKind.CRUD))
        mode = stat.S_IMODE(os.stat(tmp_path / "out" / "pkg" / "sub").st_mode)
        assert mode == 0o750

    def test_unwritable_target_raises_io_failure(self, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        exporter = ProjectExporter(blocker)
        with pytest.raises(IOFailure) as exc_info:
            exporter.write(_artifact("models/users/crud.py", "x\n", ArtifactKind.CRUD))
        assert exc_info.value.path is not None

    def test_non_atomic_write(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path, atomic_writes=False)
        exporter.write(_artifact("m.py", "y = 2\n", ArtifactKind.CRUD))
        assert (tmp_path / "m.py").read_text(encoding="utf-8") == "y = 2\n"
        assert not list(tmp_path.glob(".m.py.*.tmp"))


class TestFormatting:
    def test_black_formats_written_files(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path, formatter=BlackFormatter(line_length=99))
        exporter.write(_artifact("m.py", "x=1\n", ArtifactKind.CRUD))
        assert exporter.format_written() == 1
        assert (tmp_path / "m.py").read_text(encoding="utf-8") == "x = 1\n"

    def test_skipped_files_are_not_formatted(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "dao.py").write_text("y=2\n", encoding="utf-8")
        exporter = ProjectExporter(tmp_path, formatter=BlackFormatter())
        exporter.write(_artifact("dao.py", "z = 3\n", ArtifactKind.DAO))
        assert exporter.format_written() == 0
        assert (tmp_path / "dao.py").read_text(encoding="utf-8") == "y=2\n"

    def test_formatter_failure_is_not_fatal(
        self, tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "broken.py"
        path.write_text("def (:\n", encoding="utf-8")
        with caplog.at_level("WARNING", logger="daogen.exporters"):
            assert BlackFormatter().format_file(path) is False
        assert path.read_text(encoding="utf-8") == "def (:\n"
        assert "Formatter failed" in caplog.text

    def test_no_formatter(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path)
        exporter.write(_artifact("m.py", "x=1\n", ArtifactKind.CRUD))
        assert exporter.format_written() == 0


class TestManifest:
    def test_manifest_lists_every_decision(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "dao.py").write_text("# mine\n", encoding="utf-8")
        exporter = ProjectExporter(tmp_path)
        exporter.write(_artifact("crud.py", "a = 1\nb = 2\n", ArtifactKind.CRUD))
        exporter.write(_artifact("dao.py", "c = 3\n", ArtifactKind.DAO))

        manifest = exporter.build_manifest()
        assert [f.relative_path for f in manifest.written] == ["crud.py"]
        assert [f.relative_path for f in manifest.skipped] == ["dao.py"]
        assert manifest.total_lines == 2

        data = json.loads(manifest.to_json())
        assert data["files"][0]["status"] == "written"
        assert data["files"][1]["policy"] == "create_once"
        assert len(data["files"][0]["sha256"]) == 64

    def test_manifest_written_to_output_dir(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path / "out")
        exporter.write(_artifact("models/users/crud.py", "a = 1\n", ArtifactKind.CRUD))

        manifest = exporter.write_manifest()
        data = json.loads((tmp_path / "out" / MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert data == manifest.to_dict()
        assert [f["relative_path"] for f in data["files"]] == ["models/users/crud.py"]

    def test_formatted_file_checksum_refreshed(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path, formatter=BlackFormatter())
        exporter.write(_artifact("m.py", "x=1\n", ArtifactKind.CRUD))
        exporter.format_written()

        (record,) = exporter.build_manifest().written
        assert record.sha256 == sha256_hex("x = 1\n")
        assert record.size_bytes == len("x = 1\n")

    def test_reset_forgets_previous_records(self, tmp_path: pathlib.Path) -> None:
        exporter = ProjectExporter(tmp_path)
        exporter.write(_artifact("a.py", "", ArtifactKind.CRUD))
        exporter.reset()
        assert exporter.build_manifest().files == []
