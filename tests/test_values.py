"""Tests for value kinds, truthiness, text form and path resolution."""

import math
from datetime import date

import pytest

from docskel.rendering.resolver import resolve_path
from docskel.rendering.values import UNDEFINED, is_truthy, kind_of, to_text


class TestKindOf:
    """Tests for kind_of()."""

    @pytest.mark.parametrize(
        ("value", "kind"),
        [
            (UNDEFINED, "undefined"),
            (None, "null"),
            (True, "boolean"),
            (0, "number"),
            (2.5, "number"),
            ("", "string"),
            ([], "list"),
            ((1, 2), "list"),
            ({}, "mapping"),
            (date(2024, 1, 2), "other"),
        ],
    )
    def test_classifies_value(self, value: object, kind: str) -> None:
        """Test that each value lands in its kind."""
        assert kind_of(value) == kind

    def test_undefined_is_singleton(self) -> None:
        """Test that UNDEFINED is distinct from None and False."""
        assert type(UNDEFINED)() is UNDEFINED
        assert UNDEFINED is not None
        assert UNDEFINED is not False
        assert repr(UNDEFINED) == "UNDEFINED"


class TestIsTruthy:
    """Tests for conditional truthiness."""

    @pytest.mark.parametrize(
        "value",
        [UNDEFINED, None, False, 0, 0.0, math.nan, "", []],
    )
    def test_falsy_values(self, value: object) -> None:
        """Test values that skip a conditional block."""
        assert is_truthy(value) is False

    @pytest.mark.parametrize(
        "value",
        [True, 1, -0.5, "0", "false", [0], {}, {"a": 1}, date(2024, 1, 1)],
    )
    def test_truthy_values(self, value: object) -> None:
        """Test values that render a conditional block."""
        assert is_truthy(value) is True

    def test_empty_mapping_is_truthy(self) -> None:
        """Test that an empty mapping is truthy unlike an empty list."""
        assert is_truthy({}) is True
        assert is_truthy([]) is False


class TestToText:
    """Tests for the rendered text form of values."""

    def test_missing_values_render_empty(self) -> None:
        """Test that undefined and None render as empty text."""
        assert to_text(UNDEFINED) == ""
        assert to_text(None) == ""

    def test_booleans_render_lowercase(self) -> None:
        """Test that booleans render as true/false."""
        assert to_text(True) == "true"
        assert to_text(False) == "false"

    def test_numbers(self) -> None:
        """Test that integral floats drop their fraction."""
        assert to_text(3) == "3"
        assert to_text(3.0) == "3"
        assert to_text(2.5) == "2.5"

    def test_list_is_comma_joined(self) -> None:
        """Test that lists join their items' text with commas."""
        assert to_text(["a", 1, True, None]) == "a,1,true,"

    def test_mapping_is_json(self) -> None:
        """Test that mappings render as JSON."""
        assert to_text({"a": 1, "b": "x"}) == '{"a": 1, "b": "x"}'

    def test_date_is_isoformat(self) -> None:
        """Test that dates render in ISO format."""
        assert to_text(date(2024, 3, 9)) == "2024-03-09"


class TestResolvePath:
    """Tests for dotted-path lookup."""

    def test_top_level_key(self) -> None:
        """Test resolving a plain key."""
        assert resolve_path({"name": "Ann"}, "name") == "Ann"

    def test_nested_path(self) -> None:
        """Test resolving a dotted path through nested mappings."""
        env = {"user": {"profile": {"role": "admin"}}}
        assert resolve_path(env, "user.profile.role") == "admin"

    def test_missing_segment_is_undefined(self) -> None:
        """Test that a missing segment resolves to UNDEFINED."""
        assert resolve_path({"user": {}}, "user.name") is UNDEFINED
        assert resolve_path({}, "user") is UNDEFINED

    def test_non_mapping_intermediate_is_undefined(self) -> None:
        """Test that walking through a scalar resolves to UNDEFINED."""
        assert resolve_path({"user": "ann"}, "user.name") is UNDEFINED
        assert resolve_path({"items": [1, 2]}, "items.0") is UNDEFINED

    def test_none_value_is_not_undefined(self) -> None:
        """Test that an explicit None is returned as None."""
        assert resolve_path({"x": None}, "x") is None
