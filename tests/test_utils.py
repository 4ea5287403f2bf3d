"""
tests/test_utils.py
Unit tests for daogen.utils.
"""

from __future__ import annotations

import pathlib

import pytest

from daogen.utils import (
    Timer,
    build_import_block,
    column_to_field_name,
    count_lines,
    format_tuple_literal,
    quote_sql_identifier,
    safe_identifier,
    table_to_class_name,
    table_to_module_name,
    to_pascal_case,
    to_snake_case,
    wrap_in_quotes,
    write_file,
)


class TestNaming:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("userId", "user_id"),
            ("HTTPServer", "http_server"),
            ("order-items", "order_items"),
            ("already_snake", "already_snake"),
            ("", ""),
        ],
    )
    def test_to_snake_case(self, raw: str, expected: str) -> None:
        assert to_snake_case(raw) == expected

    def test_to_pascal_case(self) -> None:
        assert to_pascal_case("user_profile") == "UserProfile"
        assert to_pascal_case("sales_2024") == "Sales2024"

    @pytest.mark.parametrize(
        "raw, expected",
        [("id", "id_"), ("class", "class_"), ("2fa", "_2fa"), ("$$$", "_unnamed")],
    )
    def test_safe_identifier(self, raw: str, expected: str) -> None:
        assert safe_identifier(raw) == expected

    def test_class_names(self) -> None:
        assert table_to_class_name("order_items") == "OrderItemsObj"
        assert table_to_class_name("2024_sales") == "T2024SalesObj"

    def test_module_names(self) -> None:
        assert table_to_module_name("Order-Items") == "order_items"

    def test_field_names_avoid_entity_methods(self) -> None:
        assert column_to_field_name("save") == "save_"
        assert column_to_field_name("createdAt") == "created_at"


class TestLiterals:
    def test_wrap_in_quotes_escapes(self) -> None:
        assert wrap_in_quotes('say "hi"\n') == '"say \\"hi\\"\\n"'

    def test_single_item_tuple(self) -> None:
        assert format_tuple_literal(["A"]) == '("A",)'
        assert format_tuple_literal(["A", "B"]) == '("A", "B")'
        assert format_tuple_literal([]) == "()"
        assert format_tuple_literal(["1", "2"], quote=False) == "(1, 2)"

    def test_quote_sql_identifier(self) -> None:
        assert quote_sql_identifier("odd`name") == "`odd``name`"

    def test_import_block_sorted(self) -> None:
        block = build_import_block({"typing": {"Optional", "Any"}, "datetime": {"datetime"}})
        assert block.splitlines() == [
            "from datetime import datetime",
            "from typing import Any, Optional",
        ]


class TestFilesAndMetrics:
    @pytest.mark.parametrize("content, expected", [("", 0), ("a", 1), ("a\n", 1), ("a\nb", 2)])
    def test_count_lines(self, content: str, expected: int) -> None:
        assert count_lines(content) == expected

    def test_write_file_returns_bytes(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "nested" / "f.py"
        assert write_file(target, "é\n") == 3
        assert target.read_text(encoding="utf-8") == "é\n"

    def test_timer(self) -> None:
        with Timer("noop") as t:
            pass
        assert t.elapsed >= 0.0
        assert "noop" in repr(t)
