"""Tests for capsulekit.capsule.validator module."""

from datetime import date

import pytest

from capsulekit.capsule.schema import PropSchema, PropType
from capsulekit.capsule.validator import TYPE_CHECKERS, validate
from capsulekit.errors import InvalidOption, MissingRequiredProp, TypeMismatch, UnknownProp


def _schema(*props) -> PropSchema:
    return PropSchema.model_validate(list(props))


class TestValidate:
    """Tests for validate function."""

    def test_missing_required_and_invalid_option(self, title_size_schema):
        """Both violations are reported, in schema order."""
        result = validate(title_size_schema, {"size": "xl"})

        assert not result.valid
        assert len(result.violations) == 2
        missing, invalid = result.violations
        assert isinstance(missing, MissingRequiredProp)
        assert missing.prop == "title"
        assert isinstance(invalid, InvalidOption)
        assert invalid.prop == "size"
        assert invalid.value == "xl"
        assert invalid.options == ["sm", "md", "lg"]

    def test_defaults_filled(self, title_size_schema):
        result = validate(title_size_schema, {"title": "Hello"})

        assert result.valid
        assert result.values == {"title": "Hello", "size": "md"}

    def test_default_fill_is_idempotent(self, title_size_schema):
        first = validate(title_size_schema, {"title": "Hello"})
        second = validate(title_size_schema, first.values)

        assert second.valid
        assert second.values == first.values

    def test_collects_every_violation(self):
        """Two missing required props plus one wrong-typed optional prop: three violations."""
        schema = _schema(
            {"name": "title", "type": "string", "required": True},
            {"name": "onPress", "type": "action", "required": True},
            {"name": "count", "type": "number"},
        )

        result = validate(schema, {"count": "many"})

        assert len(result.violations) == 3
        assert [v.code for v in result.violations] == [
            "missing_required_prop",
            "missing_required_prop",
            "type_mismatch",
        ]
        mismatch = result.violations[2]
        assert mismatch.expected == "number"
        assert mismatch.actual == "string"

    def test_unknown_prop_strict(self, title_size_schema):
        result = validate(title_size_schema, {"title": "Hi", "legacyColor": "red"})

        assert len(result.violations) == 1
        assert isinstance(result.violations[0], UnknownProp)
        assert result.violations[0].prop == "legacyColor"

    def test_unknown_prop_lenient_is_dropped(self, title_size_schema):
        result = validate(title_size_schema, {"title": "Hi", "legacyColor": "red"}, strict=False)

        assert result.valid
        assert "legacyColor" not in result.values

    def test_none_counts_as_absent(self, title_size_schema):
        result = validate(title_size_schema, {"title": "Hi", "size": None})

        assert result.valid
        assert result.values["size"] == "md"

    def test_none_values_map(self, title_size_schema):
        result = validate(title_size_schema, None)

        assert [v.prop for v in result.violations] == ["title"]

    def test_default_is_copied(self):
        schema = _schema({"name": "items", "type": "array", "default": ["a"]})

        result = validate(schema, {})
        result.values["items"].append("b")

        assert schema.get("items").default == ["a"]

    def test_never_raises_for_odd_input(self, title_size_schema):
        weird = {"title": object(), "size": ["sm"], 3: "x"}

        result = validate(title_size_schema, weird)

        assert not result.valid
        assert {v.prop for v in result.violations} == {"title", "size", "3"}

    def test_to_dict(self, title_size_schema):
        data = validate(title_size_schema, {}).to_dict()

        assert data["valid"] is False
        assert data["violations"][0]["code"] == "missing_required_prop"
        assert data["violations"][0]["prop"] == "title"


class TestTypeChecks:
    """Per-type value checks."""

    def test_every_prop_type_has_a_checker(self):
        assert set(TYPE_CHECKERS) == set(PropType)

    @pytest.mark.parametrize(
        "prop_type, good, bad",
        [
            ("string", "hello", 3),
            ("number", 2.5, True),
            ("boolean", False, "false"),
            ("date", "2024-01-15", "next tuesday"),
            ("array", [1, 2], "1,2"),
            ("object", {"a": 1}, [("a", 1)]),
            ("function", "handleClick", ""),
            ("icon", "star.fill", ""),
            ("color", "#ff8800", "#gg0000"),
            ("action", "onSubmit", 42),
            ("slot", {"capsuleId": "text"}, 7),
        ],
    )
    def test_type_check(self, prop_type, good, bad):
        schema = _schema({"name": "value", "type": prop_type})

        assert validate(schema, {"value": good}).valid
        result = validate(schema, {"value": bad})
        assert isinstance(result.violations[0], TypeMismatch)

    def test_date_accepts_date_objects(self):
        schema = _schema({"name": "start", "type": "date"})

        assert validate(schema, {"start": date(2024, 1, 15)}).valid

    def test_color_accepts_theme_tokens(self):
        schema = _schema({"name": "tint", "type": "color"})

        assert validate(schema, {"tint": "primary"}).valid
        assert validate(schema, {"tint": "#abc"}).valid

    def test_string_options_checked(self):
        schema = _schema(
            {"name": "orientation", "type": "string", "options": ["horizontal", "vertical"]}
        )

        result = validate(schema, {"orientation": "diagonal"})

        assert isinstance(result.violations[0], InvalidOption)

    def test_number_bounds(self):
        schema = _schema({"name": "thickness", "type": "number", "min": 1, "max": 8})

        assert validate(schema, {"thickness": 4}).valid
        low = validate(schema, {"thickness": 0}).violations[0]
        high = validate(schema, {"thickness": 9}).violations[0]
        assert "minimum" in low.message
        assert "maximum" in high.message

    def test_string_pattern(self):
        schema = _schema({"name": "code", "type": "string", "pattern": r"[A-Z]{3}"})

        assert validate(schema, {"code": "ABC"}).valid
        assert not validate(schema, {"code": "abcd"}).valid

    def test_invalid_pattern_reported_not_raised(self):
        schema = _schema({"name": "code", "type": "string", "pattern": "[unclosed"})

        result = validate(schema, {"code": "x"})

        assert isinstance(result.violations[0], TypeMismatch)
