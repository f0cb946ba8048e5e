"""Request, plan and result types shared by the client and the engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from tool_relay.provider import Provider
from tool_relay.types.tool import ToolHandler, ToolSpec

if TYPE_CHECKING:
    from tool_relay.tools.retry import RetryConfig

__all__ = [
    "ChatMessage",
    "Usage",
    "TextMode",
    "TextRequest",
    "TextResponse",
    "CallPlan",
    "CallResult",
]

# Type alias for OpenAI-style chat messages
ChatMessage = dict[str, Any]


@dataclass(slots=True)
class Usage:
    """Token usage for one round or summed over a conversation."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: Optional["Usage"]) -> "Usage":
        if other is None:
            return Usage(self.prompt_tokens, self.completion_tokens, self.total_tokens)
        return Usage(
            self.prompt_tokens + other.prompt_tokens,
            self.completion_tokens + other.completion_tokens,
            self.total_tokens + other.total_tokens,
        )

    def __bool__(self) -> bool:
        return bool(self.prompt_tokens or self.completion_tokens or self.total_tokens)


class TextMode(Enum):
    """Orchestration preset for `Client.text`."""

    # Send the input as-is and return the assistant's text.
    BASIC = "basic"
    # Request a JSON object conforming to `response_schema`.
    STRUCTURED_JSON = "structured_json"
    # The model may request tools; handlers run until a final answer.
    TOOL_CALLING = "tool_calling"
    # Rewrite the input for spelling/grammar/clarity first, then answer it.
    TWO_STEP_ENHANCE = "two_step_enhance"


@dataclass
class TextRequest:
    """Unified request for text-style generations."""

    input: str
    provider: Provider
    model: str = ""
    system: str = ""
    mode: TextMode = TextMode.BASIC

    # Optional response shaping
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    # Structured outputs (STRUCTURED_JSON)
    response_schema: Optional[dict[str, Any]] = None

    # Tool calling (TOOL_CALLING)
    tools: list[ToolSpec] = field(default_factory=list)
    tool_handlers: dict[str, ToolHandler] = field(default_factory=dict)
    max_tool_rounds: Optional[int] = None
    parallel_tools: Optional[bool] = None
    stop_on_tool_error: Optional[bool] = None


@dataclass
class TextResponse:
    """Provider-agnostic result of `Client.text`."""

    provider: Provider
    model: str
    mode: TextMode
    text: str = ""
    json: Optional[dict[str, Any]] = None
    usage: Usage = field(default_factory=Usage)


@dataclass
class CallPlan:
    """Normalised, provider-agnostic instructions for one provider call.

    Built from a `TextRequest` by `tool_relay.plan.build_plans`; the engine
    trusts every value here as already validated.
    """

    provider: Provider
    model: str
    input: str
    system: str = ""

    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    # Structured JSON
    structured: bool = False
    response_schema: Optional[dict[str, Any]] = None

    # Tool calling
    tools: list[ToolSpec] = field(default_factory=list)
    tool_handlers: dict[str, ToolHandler] = field(default_factory=dict)
    max_tool_rounds: Optional[int] = None
    parallel_tools: Optional[bool] = None
    stop_on_tool_error: Optional[bool] = None

    # Executor extras
    tool_cache_ttl: float = 0.0
    tool_cache_max_size: int = 0
    tool_retry: Optional["RetryConfig"] = None

    # Stream-only: ask the provider to report token usage
    include_usage: bool = False

    def copy(self, **kwargs: Any) -> "CallPlan":
        """Return a shallow copy of this plan with overrides applied."""
        return replace(self, **kwargs)


@dataclass
class CallResult:
    """Provider-agnostic result of one plan execution."""

    text: str = ""
    json: Optional[dict[str, Any]] = None
    usage: Usage = field(default_factory=Usage)
    rounds: int = 0
