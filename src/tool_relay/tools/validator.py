"""Validation of tool call arguments against the declared tool schemas."""

from __future__ import annotations

from typing import Any, Iterable

from tool_relay.errors import MissingParameterError, TypeMismatchError, UnknownToolError
from tool_relay.types.tool import ToolSpec

__all__ = ["ToolValidator", "json_type_name"]


def json_type_name(value: Any) -> str:
    """Name the JSON type of a decoded Python value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches(expected: str, value: Any) -> bool:
    if expected == "string":
        return isinstance(value, str)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return isinstance(value, float) and value.is_integer()
    if expected == "array":
        return isinstance(value, (list, tuple))
    if expected == "object":
        return isinstance(value, dict)
    # Types we don't know how to check are accepted.
    return True


class ToolValidator:
    """Checks tool call arguments against each tool's parameter schema.

    Only the structural subset is enforced: the tool must exist, required
    keys must be present, and described arguments must have the declared
    JSON type. Arguments the schema does not describe are accepted.
    """

    def __init__(self, tools: Iterable[ToolSpec]) -> None:
        self._tools: dict[str, ToolSpec] = {tool.name: tool for tool in tools}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def validate(self, name: str, arguments: dict[str, Any]) -> None:
        """
        Validate one call.

        Raises:
            UnknownToolError: No tool named *name* is registered.
            MissingParameterError: A required key is absent.
            TypeMismatchError: A described argument has the wrong JSON type.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)

        schema = tool.parameters
        if not schema:
            return

        for field_name in schema.get("required") or ():
            if field_name not in arguments:
                raise MissingParameterError(name, field_name)

        properties = schema.get("properties")
        if not isinstance(properties, dict):
            return

        for arg_name, value in arguments.items():
            prop = properties.get(arg_name)
            if not isinstance(prop, dict):
                continue
            expected = prop.get("type")
            if not isinstance(expected, str) or value is None:
                continue
            if not _matches(expected, value):
                raise TypeMismatchError(name, arg_name, expected, json_type_name(value))
