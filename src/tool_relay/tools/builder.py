"""
Explicit construction of tool schemas and tool sets.

Schemas are built from tagged constructors rather than inferred from
function signatures::

    params = Schema.object(
        properties={
            "city": Schema.string("City name"),
            "days": Schema.integer("Forecast length"),
        },
        required=["city"],
    )
    builder = ToolBuilder().add_tool("forecast", "Weather forecast", params, forecast)
    tools, handlers = builder.build()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from tool_relay.types.tool import ToolHandler, ToolSpec

__all__ = ["Schema", "ToolBuilder"]


@dataclass(frozen=True)
class Schema:
    """A JSON Schema node. Use the classmethod constructors."""

    type: str
    description: str = ""
    properties: Mapping[str, "Schema"] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    items: Optional["Schema"] = None
    enum: tuple[Any, ...] = ()

    @classmethod
    def string(cls, description: str = "", *, enum: Sequence[str] = ()) -> "Schema":
        return cls("string", description, enum=tuple(enum))

    @classmethod
    def number(cls, description: str = "") -> "Schema":
        return cls("number", description)

    @classmethod
    def integer(cls, description: str = "") -> "Schema":
        return cls("integer", description)

    @classmethod
    def boolean(cls, description: str = "") -> "Schema":
        return cls("boolean", description)

    @classmethod
    def array(cls, items: "Schema", description: str = "") -> "Schema":
        return cls("array", description, items=items)

    @classmethod
    def object(
        cls,
        properties: Mapping[str, "Schema"] | None = None,
        *,
        required: Sequence[str] = (),
        description: str = "",
    ) -> "Schema":
        properties = dict(properties or {})
        unknown = [name for name in required if name not in properties]
        if unknown:
            raise ValueError(f"required fields not in properties: {', '.join(unknown)}")
        return cls("object", description, properties=properties, required=tuple(required))

    def to_dict(self) -> dict[str, Any]:
        """Render as a plain JSON Schema dict."""
        out: dict[str, Any] = {"type": self.type}
        if self.description:
            out["description"] = self.description
        if self.enum:
            out["enum"] = list(self.enum)
        if self.type == "array" and self.items is not None:
            out["items"] = self.items.to_dict()
        if self.type == "object":
            out["properties"] = {name: prop.to_dict() for name, prop in self.properties.items()}
            if self.required:
                out["required"] = list(self.required)
        return out


class ToolBuilder:
    """Collects tool specs and their handlers, keeping names unique."""

    def __init__(self) -> None:
        self._tools: list[ToolSpec] = []
        self._handlers: dict[str, ToolHandler] = {}

    def add_tool(
        self,
        name: str,
        description: str,
        parameters: Schema | dict[str, Any],
        handler: ToolHandler,
    ) -> "ToolBuilder":
        """Register a tool. Raises ValueError if *name* is already taken."""
        if name in self._handlers:
            raise ValueError(f"duplicate tool name: {name}")
        if isinstance(parameters, Schema):
            if parameters.type != "object":
                raise ValueError("tool parameters must be an object schema")
            parameters = parameters.to_dict()

        self._tools.append(ToolSpec(name=name, description=description, parameters=parameters))
        self._handlers[name] = handler
        return self

    def build(self) -> tuple[list[ToolSpec], dict[str, ToolHandler]]:
        """Return the tool specs and the name-to-handler mapping."""
        return list(self._tools), dict(self._handlers)
