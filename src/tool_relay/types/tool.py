"""
Provider-neutral dataclasses for client-side tool use.

They are intentionally minimal: everything provider-specific lives in adapters.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

__all__ = ["ToolSpec", "ToolHandler", "ToolCallRequest", "ToolCallResult"]


# A handler receives the parsed argument map and returns the result, either
# directly or as an awaitable. Failures are raised.
ToolHandler = Callable[[dict[str, Any]], Union[Awaitable[Any], Any]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """A callable function the model may request."""
    name: str
    description: str = ""
    # JSON Schema object (draft subset): type, properties, required.
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ToolCallRequest:
    """A model-agnostic request emitted by the LLM to call a local tool."""
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    raw_arguments: Optional[str] = None  # JSON text as sent by the provider


@dataclass(slots=True)
class ToolCallResult:
    """Outcome of one tool call, positioned like the request it answers."""
    id: str                     # must match the request id
    name: str
    result: Any = None
    error: Optional[BaseException] = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None
