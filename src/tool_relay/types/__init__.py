from .tool import ToolSpec, ToolHandler, ToolCallRequest, ToolCallResult
from .chat import (
    ChatMessage,
    Usage,
    TextMode,
    TextRequest,
    TextResponse,
    CallPlan,
    CallResult,
)
from .round import FinalAnswer, ToolCallBatch, Round, ToolCallFragment, StreamDelta
from .stream import (
    ToolExecutionMode,
    StreamOptions,
    StreamRequest,
    StreamEventType,
    StreamToolCall,
    StreamToolResult,
    StreamEvent,
)

__all__ = [
    "ToolSpec",
    "ToolHandler",
    "ToolCallRequest",
    "ToolCallResult",
    "ChatMessage",
    "Usage",
    "TextMode",
    "TextRequest",
    "TextResponse",
    "CallPlan",
    "CallResult",
    "FinalAnswer",
    "ToolCallBatch",
    "Round",
    "ToolCallFragment",
    "StreamDelta",
    "ToolExecutionMode",
    "StreamOptions",
    "StreamRequest",
    "StreamEventType",
    "StreamToolCall",
    "StreamToolResult",
    "StreamEvent",
]
