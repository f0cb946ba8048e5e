"""
tool-relay - Tool-calling orchestration for OpenAI and Google Gemini.
"""

import logging

from .client import Client
from .config import ClientConfig
from .errors import (
    NoHandlerError,
    NoPendingCallError,
    NonRetryableError,
    ProviderError,
    RetriesExhaustedError,
    ToolArgumentsError,
    ToolBatchError,
    ToolRelayError,
    ToolRoundLimitExceeded,
    ToolValidationError,
    MissingParameterError,
    TypeMismatchError,
    UnknownToolError,
)
from .factory import create_transport
from .loop import ToolLoop
from .provider import Provider, get_api_key
from .stream import StreamResponse, StreamSession
from .tools import RetryConfig, Schema, ToolBuilder, ToolCache, ToolExecutor, ToolValidator
from .types import (
    StreamEvent,
    StreamEventType,
    StreamOptions,
    StreamRequest,
    TextMode,
    TextRequest,
    TextResponse,
    ToolCallRequest,
    ToolCallResult,
    ToolExecutionMode,
    ToolSpec,
    Usage,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Client",
    "ClientConfig",
    "create_transport",
    "ToolLoop",
    "StreamSession",
    "StreamResponse",
    "Provider",
    "get_api_key",
    "RetryConfig",
    "Schema",
    "ToolBuilder",
    "ToolCache",
    "ToolExecutor",
    "ToolValidator",
    "StreamEvent",
    "StreamEventType",
    "StreamOptions",
    "StreamRequest",
    "TextMode",
    "TextRequest",
    "TextResponse",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolExecutionMode",
    "ToolSpec",
    "Usage",
    "ToolRelayError",
    "ToolValidationError",
    "UnknownToolError",
    "MissingParameterError",
    "TypeMismatchError",
    "NoHandlerError",
    "NonRetryableError",
    "RetriesExhaustedError",
    "ToolBatchError",
    "ToolArgumentsError",
    "ToolRoundLimitExceeded",
    "NoPendingCallError",
    "ProviderError",
]
