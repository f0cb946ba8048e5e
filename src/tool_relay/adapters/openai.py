"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from openai.types.chat import ChatCompletion, ChatCompletionChunk
from openai.types.completion_usage import CompletionUsage

from tool_relay.errors import ToolRelayError
from tool_relay.stream_utils import parse_arguments
from tool_relay.types.chat import CallPlan, ChatMessage, Usage
from tool_relay.types.round import (
    FinalAnswer,
    Round,
    StreamDelta,
    ToolCallBatch,
    ToolCallFragment,
)
from tool_relay.types.tool import ToolCallRequest, ToolCallResult, ToolSpec

__all__ = ["OpenAIRequestAdapter"]

# finish_reason that closes the tool call fragments of a streamed round
TOOL_CALLS_FINISH_REASON = "tool_calls"


class OpenAIRequestAdapter:
    """Adapter for converting between generic format and OpenAI format."""

    def start_messages(self, plan: CallPlan) -> list[ChatMessage]:
        """Initial conversation for a plan: optional system prompt, then the input."""
        messages: list[ChatMessage] = []
        if plan.system.strip():
            messages.append({"role": "system", "content": plan.system})
        messages.append({"role": "user", "content": plan.input})
        return messages

    def build_messages(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        """Convert generic ChatMessage to OpenAI's expected format."""
        openai_messages: list[dict[str, Any]] = []
        for msg in messages:
            openai_msg: dict[str, Any] = {"role": msg["role"]}

            # Handle content (required for most message types)
            if msg.get("content") is not None:
                openai_msg["content"] = msg["content"]

            # Handle tool calls (for assistant messages with function calls)
            if msg.get("tool_calls"):
                openai_msg["tool_calls"] = msg["tool_calls"]
                # OpenAI API: content should be null when tool_calls is present
                if "content" not in openai_msg:
                    openai_msg["content"] = None

            # Handle tool call ID (for tool response messages)
            if msg.get("tool_call_id"):
                openai_msg["tool_call_id"] = msg["tool_call_id"]

            if msg.get("name"):
                openai_msg["name"] = msg["name"]

            # Ensure content is set for messages that require it
            if "content" not in openai_msg and not openai_msg.get("tool_calls"):
                openai_msg["content"] = ""

            openai_messages.append(openai_msg)
        return openai_messages

    def tool_definitions(self, tools: Sequence[ToolSpec]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters or {"type": "object", "properties": {}},
                },
            }
            for tool in tools
        ]

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        plan: CallPlan,
        *,
        stream: bool = False,
    ) -> dict[str, Any]:
        """Keyword arguments for ``chat.completions.create``."""
        args: dict[str, Any] = {
            "model": plan.model,
            "messages": self.build_messages(messages),
        }

        if plan.temperature is not None:
            args["temperature"] = plan.temperature

        # Handle max_tokens vs max_completion_tokens based on model
        if plan.max_output_tokens is not None:
            if self._requires_max_completion_tokens(plan.model):
                args["max_completion_tokens"] = plan.max_output_tokens
            else:
                args["max_tokens"] = plan.max_output_tokens

        if plan.tools:
            args["tools"] = self.tool_definitions(plan.tools)

        if plan.structured and plan.response_schema:
            args["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response", "schema": plan.response_schema},
            }

        if stream:
            args["stream"] = True
            if plan.include_usage:
                args["stream_options"] = {"include_usage": True}

        return args

    def _requires_max_completion_tokens(self, model: str) -> bool:
        """Check if model requires max_completion_tokens instead of max_tokens."""
        newer_models = {
            "gpt-5",  # GPT-5 series
            "o1",  # O1 series models
            "o3",  # O3 series models
            "o4",
        }
        return any(model.startswith(prefix) for prefix in newer_models)

    # --- responses -----------------------------------------------------------

    def usage_from(self, usage: Optional[CompletionUsage]) -> Optional[Usage]:
        if usage is None:
            return None
        return Usage(
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
            total_tokens=usage.total_tokens or 0,
        )

    def round_from_completion(self, raw: ChatCompletion) -> Round:
        """Convert a non-streaming completion to a final answer or a tool batch."""
        if not raw.choices:
            raise ToolRelayError("no choices in response")

        message = raw.choices[0].message
        content = message.content or ""
        usage = self.usage_from(raw.usage)

        calls: list[ToolCallRequest] = []
        for tc in message.tool_calls or ():
            function = getattr(tc, "function", None)
            if function is None:
                continue  # custom (non-function) tool calls are not supported
            raw_args = function.arguments or ""
            calls.append(
                ToolCallRequest(
                    id=tc.id,
                    name=function.name,
                    arguments=parse_arguments(function.name, raw_args),
                    raw_arguments=raw_args,
                )
            )

        if calls:
            return ToolCallBatch(calls=calls, text=content, usage=usage, raw_turn=raw)
        return FinalAnswer(text=content, usage=usage, raw=raw)

    def delta_from_chunk(self, chunk: ChatCompletionChunk) -> StreamDelta:
        """Normalise a streaming chunk."""
        delta = StreamDelta(usage=self.usage_from(chunk.usage))
        if not chunk.choices:
            return delta

        choice = chunk.choices[0]
        if choice.delta is not None:
            delta.text = choice.delta.content or ""
            for tc in choice.delta.tool_calls or ():
                delta.fragments.append(
                    ToolCallFragment(
                        index=tc.index,
                        id=tc.id,
                        name=tc.function.name if tc.function else None,
                        arguments=(tc.function.arguments or "") if tc.function else "",
                    )
                )

        delta.finish_reason = choice.finish_reason
        delta.tool_calls_done = choice.finish_reason == TOOL_CALLS_FINISH_REASON
        return delta

    # --- conversation encoding -----------------------------------------------

    def assistant_message(self, batch: ToolCallBatch) -> ChatMessage:
        """The assistant turn that requested the batch's tool calls."""
        return {
            "role": "assistant",
            "content": batch.text or None,
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": call.raw_arguments
                        if call.raw_arguments is not None
                        else json.dumps(call.arguments),
                    },
                }
                for call in batch.calls
            ],
        }

    def tool_result_message(self, result: ToolCallResult) -> ChatMessage:
        """Convert ToolCallResult to OpenAI ChatMessage."""
        if result.error is not None:
            content = f"Error: {result.error}"
        elif isinstance(result.result, str):
            content = result.result
        else:
            content = json.dumps(result.result, default=str)
        return {
            "role": "tool",
            "tool_call_id": result.id,
            "name": result.name,
            "content": content,
        }

    def append_tool_round(
        self,
        messages: list[ChatMessage],
        batch: ToolCallBatch,
        results: Sequence[ToolCallResult],
    ) -> None:
        messages.append(self.assistant_message(batch))
        for result in results:
            messages.append(self.tool_result_message(result))
