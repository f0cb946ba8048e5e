"""Tests for tool argument validation."""

import pytest

from tool_relay.errors import MissingParameterError, TypeMismatchError, UnknownToolError
from tool_relay.tools.validator import ToolValidator, json_type_name
from tool_relay.types.tool import ToolSpec


WEATHER = ToolSpec(
    name="weather",
    description="Current weather",
    parameters={
        "type": "object",
        "properties": {
            "city": {"type": "string"},
            "days": {"type": "integer"},
            "threshold": {"type": "number"},
            "metric": {"type": "boolean"},
            "tags": {"type": "array"},
            "options": {"type": "object"},
        },
        "required": ["city", "days"],
    },
)


@pytest.fixture
def validator():
    return ToolValidator([WEATHER, ToolSpec(name="ping")])


class TestToolValidator:
    """Test structural validation of arguments."""

    def test_valid_arguments(self, validator):
        """All declared types accept matching values."""
        validator.validate(
            "weather",
            {
                "city": "Paris",
                "days": 3,
                "threshold": 1.5,
                "metric": True,
                "tags": ["a"],
                "options": {"x": 1},
            },
        )

    def test_unknown_tool(self, validator):
        with pytest.raises(UnknownToolError) as exc_info:
            validator.validate("forecast", {})
        assert exc_info.value.tool_name == "forecast"

    def test_missing_required_parameter(self, validator):
        with pytest.raises(MissingParameterError) as exc_info:
            validator.validate("weather", {"city": "Paris"})
        assert exc_info.value.parameter == "days"

    def test_missing_reported_before_type_mismatch(self, validator):
        with pytest.raises(MissingParameterError):
            validator.validate("weather", {"city": 42})

    @pytest.mark.parametrize(
        "argument, value, actual",
        [
            ("city", 42, "integer"),
            ("days", "3", "string"),
            ("days", 2.5, "number"),
            ("days", True, "boolean"),
            ("threshold", False, "boolean"),
            ("metric", "yes", "string"),
            ("tags", {"a": 1}, "object"),
            ("options", [1], "array"),
        ],
    )
    def test_type_mismatch(self, validator, argument, value, actual):
        arguments = {"city": "Paris", "days": 1, argument: value}
        with pytest.raises(TypeMismatchError) as exc_info:
            validator.validate("weather", arguments)
        assert exc_info.value.parameter == argument
        assert exc_info.value.actual == actual

    def test_integral_float_is_an_integer(self, validator):
        validator.validate("weather", {"city": "Paris", "days": 3.0})

    def test_integer_is_a_number(self, validator):
        validator.validate("weather", {"city": "Paris", "days": 1, "threshold": 4})

    def test_extra_arguments_accepted(self, validator):
        validator.validate("weather", {"city": "Paris", "days": 1, "units": "C"})

    def test_empty_schema_accepts_anything(self, validator):
        validator.validate("ping", {"anything": object()})

    def test_contains(self, validator):
        assert "weather" in validator
        assert "forecast" not in validator


def test_json_type_name():
    assert json_type_name(None) == "null"
    assert json_type_name(True) == "boolean"
    assert json_type_name(1) == "integer"
    assert json_type_name(1.0) == "number"
    assert json_type_name([]) == "array"
    assert json_type_name({}) == "object"
