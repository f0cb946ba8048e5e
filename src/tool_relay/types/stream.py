"""Types for streaming sessions."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from tool_relay.provider import Provider
from tool_relay.types.chat import Usage
from tool_relay.types.tool import ToolHandler, ToolSpec

__all__ = [
    "ToolExecutionMode",
    "StreamOptions",
    "StreamRequest",
    "StreamEventType",
    "StreamToolCall",
    "StreamToolResult",
    "StreamEvent",
]


class ToolExecutionMode(Enum):
    """How tool calls are executed while streaming."""

    # Execute tools one after another and continue streaming.
    AUTO = "auto"
    # Wait for results submitted through `StreamResponse.submit_tool_result`.
    PAUSE = "pause"
    # Execute all tool calls of a round concurrently.
    PARALLEL = "parallel"


@dataclass
class StreamOptions:
    """Controls streaming behaviour."""

    buffer_size: int = 100
    include_usage: bool = False
    # Minimum seconds between two chunk deliveries; 0 disables pacing.
    flush_interval: float = 0.0
    enable_tool_execution: bool = True
    tool_execution_mode: ToolExecutionMode = ToolExecutionMode.AUTO
    max_tool_rounds: int = 5
    stop_on_tool_error: bool = True


@dataclass
class StreamRequest:
    """Configures a streaming text generation."""

    input: str
    provider: Provider
    model: str = ""
    system: str = ""

    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    tools: list[ToolSpec] = field(default_factory=list)
    tool_handlers: dict[str, ToolHandler] = field(default_factory=dict)

    options: StreamOptions = field(default_factory=StreamOptions)


class StreamEventType(Enum):
    CHUNK = "chunk"
    TOOL_CALL_REQUEST = "tool_call_request"
    TOOL_CALL_RESULT = "tool_call_result"
    USAGE = "usage"
    DONE = "done"
    ERROR = "error"


@dataclass(slots=True)
class StreamToolCall:
    id: str
    name: str
    arguments: dict[str, Any]
    arguments_raw: Optional[str] = None  # JSON before parsing


@dataclass(slots=True)
class StreamToolResult:
    tool_call_id: str
    name: str
    result: Any = None
    error: Optional[BaseException] = None


@dataclass(slots=True)
class StreamEvent:
    """A single event in a stream; only the field matching `type` is set."""

    type: StreamEventType
    provider: Provider
    text: str = ""
    tool_call: Optional[StreamToolCall] = None
    tool_result: Optional[StreamToolResult] = None
    usage: Optional[Usage] = None
    model: str = ""
    error: Optional[BaseException] = None
    timestamp: float = field(default_factory=time.time)
