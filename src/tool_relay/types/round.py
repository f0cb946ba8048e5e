"""
One provider round, independent of the provider's wire shape.

A round ends either with a final answer or with a batch of tool calls the
model wants executed before it continues.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from tool_relay.types.chat import Usage
from tool_relay.types.tool import ToolCallRequest

__all__ = ["FinalAnswer", "ToolCallBatch", "Round", "ToolCallFragment", "StreamDelta"]


@dataclass(slots=True)
class FinalAnswer:
    text: str = ""
    usage: Optional[Usage] = None
    raw: Any = None


@dataclass(slots=True)
class ToolCallBatch:
    calls: list[ToolCallRequest]
    text: str = ""
    usage: Optional[Usage] = None
    # Provider-native model turn, reused verbatim when re-encoding the round.
    raw_turn: Any = None


Round = Union[FinalAnswer, ToolCallBatch]


@dataclass(slots=True)
class ToolCallFragment:
    """A streamed piece of a tool call from an incremental provider."""
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


@dataclass(slots=True)
class StreamDelta:
    """Normalised streaming chunk produced by a provider adapter.

    Attributes:
        text: Text content carried by the chunk.
        fragments: Incremental tool call pieces, keyed by call index.
        tool_calls: Complete tool calls (one-shot providers).
        usage: Token usage, when the provider reports it.
        finish_reason: Raw provider finish reason, if any.
        tool_calls_done: True when the chunk terminates the accumulated
            tool call fragments of the current round.
    """
    text: str = ""
    fragments: list[ToolCallFragment] = field(default_factory=list)
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    usage: Optional[Usage] = None
    finish_reason: Optional[str] = None
    tool_calls_done: bool = False
