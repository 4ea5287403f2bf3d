"""
tests/test_generated_runtime.py
Behavioral tests of the generated code itself.

Each test generates packages under tmp_path with package names unique to
the test, imports them, and replaces ``connection.get_engine`` with a
recording fake engine, so no database is needed.
"""

from __future__ import annotations

import importlib
import pathlib
from contextlib import contextmanager
from datetime import datetime
from types import ModuleType
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import pytest
from sqlalchemy.exc import InterfaceError, OperationalError

from daogen.generator import DAOGenerator
from daogen.models import GenerationConfig


# ---------------------------------------------------------------------------
# Recording fake engine
# ---------------------------------------------------------------------------


class FakeResult:
    def __init__(self, rows: Sequence[Tuple[Any, ...]] = (), lastrowid: int = 0) -> None:
        self._rows: List[Tuple[Any, ...]] = list(rows)
        self.lastrowid: int = lastrowid
        self.rowcount: int = 1

    def all(self) -> List[Tuple[Any, ...]]:
        return list(self._rows)

    def first(self) -> Optional[Tuple[Any, ...]]:
        return self._rows[0] if self._rows else None


class FakeConnection:
    def __init__(self, engine: "FakeEngine") -> None:
        self._engine = engine

    def execute(self, statement: Any, params: Optional[Dict[str, Any]] = None) -> FakeResult:
        self._engine.executed.append((str(statement), dict(params or {})))
        return FakeResult(self._engine.rows, self._engine.lastrowid)


class FakeEngine:
    def __init__(self, rows: Sequence[Tuple[Any, ...]] = (), lastrowid: int = 0) -> None:
        self.rows: List[Tuple[Any, ...]] = list(rows)
        self.lastrowid: int = lastrowid
        self.executed: List[Tuple[str, Dict[str, Any]]] = []
        self.disposed: bool = False

    @contextmanager
    def begin(self) -> Iterator[FakeConnection]:
        yield FakeConnection(self)

    @contextmanager
    def connect(self) -> Iterator[FakeConnection]:
        yield FakeConnection(self)

    def dispose(self) -> None:
        self.disposed = True


class StaleEngine(FakeEngine):
    """Engine whose connection checkout fails with ``error``."""

    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error: Exception = error

    def connect(self) -> Any:
        raise self.error


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def generated(
    unique_config: GenerationConfig,
    schema_source: Any,
    output_dir: pathlib.Path,
    monkeypatch: pytest.MonkeyPatch,
) -> GenerationConfig:
    """Generate the reference tables and make the output importable."""
    DAOGenerator(unique_config, schema_source=schema_source).run(
        ["users", "order_items", "codes", "logs"]
    )
    monkeypatch.syspath_prepend(str(output_dir))
    importlib.invalidate_caches()
    return unique_config


@pytest.fixture()
def engine(generated: GenerationConfig, monkeypatch: pytest.MonkeyPatch) -> FakeEngine:
    fake: FakeEngine = FakeEngine()
    connection: ModuleType = importlib.import_module(f"{generated.runtime_package}.connection")
    monkeypatch.setattr(connection, "get_engine", lambda: fake)
    return fake


def _crud(config: GenerationConfig, table: str) -> ModuleType:
    return importlib.import_module(f"{config.models_package}.{table}.crud")


def _validation(config: GenerationConfig) -> ModuleType:
    return importlib.import_module(f"{config.runtime_package}.validation")


# ===========================================================================
# save()
# ===========================================================================


class TestSave:
    def test_invalid_enum_value_raises_before_write(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        crud = _crud(generated, "users")
        invalid_enum = _validation(generated).InvalidEnumValue
        user = crud.UsersObj(name="bob", status="D")
        with pytest.raises(invalid_enum) as exc_info:
            user.save()
        message = str(exc_info.value)
        assert "'D'" in message
        assert "status" in message
        assert "A, B, C" in message
        assert exc_info.value.allowed == ("A", "B", "C")
        assert engine.executed == []

    def test_insert_captures_last_row_id(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        engine.lastrowid = 7
        user = _crud(generated, "users").UsersObj(name="bob", status="B")
        user.save()
        assert user.id_ == 7
        sql, params = engine.executed[0]
        assert sql.startswith("INSERT INTO `users` (`id`, `name`, `email`")
        assert "ON DUPLICATE KEY UPDATE" in sql
        assert params["name"] == "bob"
        assert params["status"] == "B"
        assert params["deleted_at"] is None
        assert params["email"] is None

    def test_existing_key_is_not_overwritten(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        engine.lastrowid = 99
        user = _crud(generated, "users").UsersObj(id_=3, name="bob", status="A")
        user.save()
        assert user.id_ == 3

    def test_empty_values_take_column_defaults(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        _crud(generated, "users").UsersObj(name="bob").save()
        _, params = engine.executed[0]
        assert params["status"] == "A"
        assert params["active"] is True

    def test_empty_expression_default_is_left_to_server(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        _crud(generated, "users").UsersObj(name="bob").save()
        sql, params = engine.executed[0]
        assert "created_at" not in params
        assert "`created_at`" not in sql
        update_clause = sql.split("ON DUPLICATE KEY UPDATE ")[1]
        assert update_clause.startswith("`name` = :name, `email` = :email")
        assert "`id` =" not in update_clause

    def test_explicit_value_overrides_expression_default(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        stamp = datetime(2020, 1, 2, 3, 4, 5)
        _crud(generated, "users").UsersObj(name="bob", created_at=stamp).save()
        sql, params = engine.executed[0]
        assert params["created_at"] == stamp
        assert "`created_at` = :created_at" in sql

    def test_nullable_values_are_not_substituted(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        _crud(generated, "order_items").OrderItemsObj(order_id=1, item_id=2).save()
        _, params = engine.executed[0]
        assert params["note"] is None
        assert params["qty"] == 1

    def test_nulltime_value_is_bound(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        crud = _crud(generated, "users")
        nulltime = importlib.import_module(f"{generated.runtime_package}.nulltime")
        stamp = datetime(2021, 5, 6, 7, 8, 9)
        crud.UsersObj(name="x", status="A", deleted_at=nulltime.NullTime.of(stamp)).save()
        _, params = engine.executed[0]
        assert params["deleted_at"] == stamp

    def test_composite_key_no_capture(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        engine.lastrowid = 5
        row = _crud(generated, "order_items").OrderItemsObj(order_id=0, item_id=0)
        row.save()
        assert (row.order_id, row.item_id) == (0, 0)


# ===========================================================================
# delete() and reads
# ===========================================================================


class TestDeleteAndRead:
    def test_composite_delete_binds_in_declared_order(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        _crud(generated, "order_items").OrderItemsObj(order_id=1, item_id=2).delete()
        sql, params = engine.executed[0]
        assert sql == "DELETE FROM `order_items` WHERE `order_id` = :order_id AND `item_id` = :item_id"
        assert list(params.items()) == [("order_id", 1), ("item_id", 2)]

    def test_read_by_id_scans_row(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        engine.rows = [
            (1, "bob", None, "A", 1, datetime(2020, 1, 1), None, None),
        ]
        user = _crud(generated, "users").read_by_id(1)
        assert user is not None
        assert user.id_ == 1
        assert user.active is True
        assert user.email is None
        assert user.created_at == datetime(2020, 1, 1)
        assert not user.deleted_at.valid
        assert user.score is None
        sql, params = engine.executed[0]
        assert sql.endswith("WHERE `id` = :id_")
        assert params == {"id_": 1}

    def test_read_by_id_not_found(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        assert _crud(generated, "codes").read_by_id("nope") is None

    def test_read_all_with_order(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        engine.rows = [("a", "Alpha"), ("b", "Beta")]
        rows = _crud(generated, "codes").read_all("code DESC")
        assert [r.code for r in rows] == ["a", "b"]
        assert engine.executed[0][0] == "SELECT `code`, `label` FROM `codes` ORDER BY code DESC"

    def test_read_by_query_empty(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        crud = _crud(generated, "logs")
        query = f"SELECT {crud.SELECT_COLUMNS} FROM {crud.QUOTED_TABLE} WHERE `level` = :level"
        assert crud.read_by_query(query, level=3) == []
        assert engine.executed[0][1] == {"level": 3}

    def test_read_one_by_query_consumes_one_row(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        engine.rows = [("first", 1), ("second", 2)]
        crud = _crud(generated, "logs")
        row = crud.read_one_by_query(f"SELECT {crud.SELECT_COLUMNS} FROM {crud.QUOTED_TABLE}")
        assert row.message == "first"
        assert row.level == 1

    def test_exec_passthrough(
        self, generated: GenerationConfig, engine: FakeEngine
    ) -> None:
        _crud(generated, "logs").exec_("DELETE FROM `logs` WHERE `level` > :lvl", lvl=3)
        assert engine.executed == [("DELETE FROM `logs` WHERE `level` > :lvl", {"lvl": 3})]


# ===========================================================================
# Shared engine accessor
# ===========================================================================


class TestConnection:
    @pytest.fixture()
    def connection(
        self, generated: GenerationConfig, monkeypatch: pytest.MonkeyPatch
    ) -> ModuleType:
        module: ModuleType = importlib.import_module(f"{generated.runtime_package}.connection")
        monkeypatch.setattr(module, "_engine", None)
        return module

    @pytest.fixture()
    def created(
        self, connection: ModuleType, monkeypatch: pytest.MonkeyPatch
    ) -> List[Tuple[Any, Dict[str, Any], FakeEngine]]:
        """Replace ``create_engine`` and record every engine it builds."""
        calls: List[Tuple[Any, Dict[str, Any], FakeEngine]] = []

        def fake_create_engine(url: Any, **kwargs: Any) -> FakeEngine:
            fake: FakeEngine = FakeEngine()
            calls.append((url, kwargs, fake))
            return fake

        monkeypatch.setattr(connection, "create_engine", fake_create_engine)
        return calls

    def test_engine_created_lazily_and_reused(
        self,
        connection: ModuleType,
        created: List[Tuple[Any, Dict[str, Any], FakeEngine]],
    ) -> None:
        assert created == []
        first = connection.get_engine()
        second = connection.get_engine()
        assert first is second
        assert len(created) == 1
        url, kwargs, fake = created[0]
        assert first is fake
        assert url.database == "shop"
        assert kwargs["pool_pre_ping"] is True

    def test_password_read_from_environment(
        self, connection: ModuleType, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(connection.PASSWORD_ENV, "s3cret")
        assert connection.database_url().password == "s3cret"
        monkeypatch.delenv(connection.PASSWORD_ENV)
        assert connection.database_url().password is None

    @pytest.mark.parametrize("error_class", [OperationalError, InterfaceError])
    def test_stale_engine_is_disposed_and_recreated(
        self,
        connection: ModuleType,
        created: List[Tuple[Any, Dict[str, Any], FakeEngine]],
        monkeypatch: pytest.MonkeyPatch,
        error_class: type,
    ) -> None:
        stale = StaleEngine(error_class("SELECT 1", {}, Exception("server has gone away")))
        monkeypatch.setattr(connection, "_engine", stale)
        fresh = connection.get_engine()
        assert stale.disposed
        assert len(created) == 1
        assert fresh is created[0][2]
        assert connection.get_engine() is fresh

    def test_dispose_engine_resets(
        self,
        connection: ModuleType,
        created: List[Tuple[Any, Dict[str, Any], FakeEngine]],
    ) -> None:
        engine = connection.get_engine()
        connection.dispose_engine()
        assert engine.disposed
        assert connection._engine is None


# ===========================================================================
# Runtime helpers
# ===========================================================================


class TestValidationHelpers:
    def test_set_columns_check_each_member(self, generated: GenerationConfig) -> None:
        validation = _validation(generated)
        column = validation.ColumnMeta(
            name="perms", field="perms", column_type="set('r','w')", allowed=("r", "w")
        )
        validation.check_enum("r,w", column)
        with pytest.raises(validation.InvalidEnumValue):
            validation.check_enum("r,x", column)

    def test_none_is_not_checked(self, generated: GenerationConfig) -> None:
        validation = _validation(generated)
        column = validation.ColumnMeta(
            name="s", field="s", column_type="enum('A')", nullable=True, allowed=("A",)
        )
        validation.check_enum(None, column)

    @pytest.mark.parametrize("value", [None, "", 0, 0.0, False])
    def test_is_empty(self, generated: GenerationConfig, value: Any) -> None:
        assert _validation(generated).is_empty(value)

    def test_nulltime_scan(self, generated: GenerationConfig) -> None:
        nulltime = importlib.import_module(f"{generated.runtime_package}.nulltime")
        assert nulltime.NullTime.scan("2020-01-02 03:04:05").time == datetime(2020, 1, 2, 3, 4, 5)
        assert not nulltime.NullTime.scan("0000-00-00 00:00:00").valid
        assert nulltime.NullTime.scan(None).value() is None
