"""Tests for shared validation helpers."""

from __future__ import annotations

import pytest

from lit.errors import ValidationError
from lit.validation import check_field_name, parse_count, sanitize_actor


class TestSanitizeActor:
    def test_strips_whitespace(self) -> None:
        assert sanitize_actor("  alice  ") == "alice"

    def test_allows_inner_spaces(self) -> None:
        assert sanitize_actor("Jane Doe") == "Jane Doe"

    @pytest.mark.parametrize("value", ["", "   ", "bad\nname", "tab\there", "zero\u200bwidth", 42, None])
    def test_rejects(self, value: object) -> None:
        with pytest.raises(ValidationError):
            sanitize_actor(value)

    def test_max_length(self) -> None:
        assert sanitize_actor("a" * 128) == "a" * 128
        with pytest.raises(ValidationError, match="at most"):
            sanitize_actor("a" * 129)


class TestParseCount:
    def test_valid(self) -> None:
        assert parse_count("3") == 3
        assert parse_count(1) == 1

    @pytest.mark.parametrize("value", ["x", "1.5", "", None, "0", "-2"])
    def test_invalid(self, value: object) -> None:
        with pytest.raises(ValidationError):
            parse_count(value)


class TestCheckFieldName:
    @pytest.mark.parametrize("name", ["summary", "sev", "x-ref", "due_date"])
    def test_valid(self, name: str) -> None:
        assert check_field_name(name) == name

    @pytest.mark.parametrize("name", ["", "=x", "==", "a:b", "two words", "nl\n", "\x0c", None])
    def test_invalid(self, name: object) -> None:
        with pytest.raises(ValidationError):
            check_field_name(name)
