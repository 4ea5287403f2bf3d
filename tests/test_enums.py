"""
tests/test_enums.py
Unit tests for the quote-aware enum/set value parser.
"""

from __future__ import annotations

import pytest

from daogen.enums import enum_family, extract_enum_values, is_enum_type
from daogen.errors import SynthesisError


class TestExtractEnumValues:
    def test_simple_enum(self) -> None:
        assert extract_enum_values("enum('A','B','C')") == ("A", "B", "C")

    def test_preserves_declared_order(self) -> None:
        assert extract_enum_values("enum('z','a','m')") == ("z", "a", "m")

    def test_set_type(self) -> None:
        assert extract_enum_values("set('read','write')") == ("read", "write")

    def test_uppercase_keyword_and_spaces(self) -> None:
        assert extract_enum_values("ENUM( 'x' , 'y' )") == ("x", "y")

    def test_comma_inside_quotes(self) -> None:
        assert extract_enum_values("enum('a,b','c')") == ("a,b", "c")

    def test_parenthesis_inside_quotes(self) -> None:
        assert extract_enum_values("enum('(none)','x)')") == ("(none)", "x)")

    def test_doubled_quote_escape(self) -> None:
        assert extract_enum_values("enum('it''s','b')") == ("it's", "b")

    def test_backslash_escape(self) -> None:
        assert extract_enum_values("enum('it\\'s')") == ("it's",)

    def test_empty_string_member(self) -> None:
        assert extract_enum_values("enum('','x')") == ("", "x")

    @pytest.mark.parametrize("full_type", ["varchar(10)", "int(11)", "", None])
    def test_non_enum_types(self, full_type) -> None:
        assert extract_enum_values(full_type) == ()

    def test_unterminated_quote(self) -> None:
        with pytest.raises(SynthesisError, match="Unterminated"):
            extract_enum_values("enum('A','B)")

    def test_missing_closing_parenthesis(self) -> None:
        with pytest.raises(SynthesisError, match="closing parenthesis"):
            extract_enum_values("enum('A','B'")


class TestEnumFamily:
    def test_family(self) -> None:
        assert enum_family("enum('A')") == "enum"
        assert enum_family("SET('A')") == "set"
        assert enum_family("varchar(3)") is None

    def test_is_enum_type(self) -> None:
        assert is_enum_type("enum('A')")
        assert not is_enum_type("enumeration")
