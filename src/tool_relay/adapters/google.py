"""Google Gemini adapter for pure request/response transformations.

Unlike OpenAI, Gemini delivers function calls whole (never as argument
fragments) and may omit call ids, so ids are synthesised as ``name_index``.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from google.genai import types

from tool_relay.types.chat import CallPlan, Usage
from tool_relay.types.round import FinalAnswer, Round, StreamDelta, ToolCallBatch
from tool_relay.types.tool import ToolCallRequest, ToolCallResult, ToolSpec

__all__ = ["GoogleRequestAdapter"]


class GoogleRequestAdapter:
    """Adapter for converting between generic format and google-genai types."""

    def start_contents(self, plan: CallPlan) -> list[types.Content]:
        """Initial conversation: the user input. The system prompt goes in the config."""
        return [types.Content(role="user", parts=[types.Part(text=plan.input)])]

    def tool_definitions(self, tools: Sequence[ToolSpec]) -> list[types.Tool]:
        declarations = [
            types.FunctionDeclaration(
                name=tool.name,
                description=tool.description,
                parameters_json_schema=tool.parameters or {"type": "object", "properties": {}},
            )
            for tool in tools
        ]
        return [types.Tool(function_declarations=declarations)]

    def build_config(self, plan: CallPlan) -> types.GenerateContentConfig:
        """Generation config for ``models.generate_content``."""
        config: dict[str, Any] = {}
        if plan.system.strip():
            config["system_instruction"] = plan.system
        if plan.temperature is not None:
            config["temperature"] = plan.temperature
        if plan.max_output_tokens is not None:
            config["max_output_tokens"] = plan.max_output_tokens

        if plan.tools:
            config["tools"] = self.tool_definitions(plan.tools)
            config["tool_config"] = types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode=types.FunctionCallingConfigMode.AUTO
                )
            )
            # Handlers run locally; never let the SDK invoke Python callables.
            config["automatic_function_calling"] = types.AutomaticFunctionCallingConfig(
                disable=True
            )

        if plan.structured and plan.response_schema:
            config["response_mime_type"] = "application/json"
            config["response_json_schema"] = plan.response_schema

        return types.GenerateContentConfig(**config)

    # --- responses -----------------------------------------------------------

    def usage_from(
        self, metadata: Optional[types.GenerateContentResponseUsageMetadata]
    ) -> Optional[Usage]:
        if metadata is None:
            return None
        return Usage(
            prompt_tokens=metadata.prompt_token_count or 0,
            completion_tokens=metadata.candidates_token_count or 0,
            total_tokens=metadata.total_token_count or 0,
        )

    def _split_parts(
        self, response: types.GenerateContentResponse, first_index: int = 0
    ) -> tuple[str, list[ToolCallRequest], Optional[types.Content]]:
        if not response.candidates:
            return "", [], None
        content = response.candidates[0].content
        if content is None or not content.parts:
            return "", [], content

        texts: list[str] = []
        calls: list[ToolCallRequest] = []
        for part in content.parts:
            if part.function_call is not None:
                fc = part.function_call
                name = fc.name or ""
                calls.append(
                    ToolCallRequest(
                        id=fc.id or f"{name}_{first_index + len(calls)}",
                        name=name,
                        arguments=dict(fc.args or {}),
                    )
                )
            elif part.text and not part.thought:
                texts.append(part.text)
        return "\n".join(texts), calls, content

    def round_from_response(self, raw: types.GenerateContentResponse) -> Round:
        """Convert a complete response to a final answer or a tool batch."""
        text, calls, content = self._split_parts(raw)
        usage = self.usage_from(raw.usage_metadata)
        if calls:
            return ToolCallBatch(calls=calls, text=text, usage=usage, raw_turn=content)
        return FinalAnswer(text=text, usage=usage, raw=raw)

    def delta_from_chunk(
        self, chunk: types.GenerateContentResponse, first_index: int = 0
    ) -> StreamDelta:
        """
        Normalise a streamed chunk; function calls arrive complete.

        *first_index* is the number of calls already seen in this round, so
        ids synthesised for calls without one stay unique across chunks.
        """
        text, calls, _ = self._split_parts(chunk, first_index)
        finish_reason = None
        if chunk.candidates and chunk.candidates[0].finish_reason is not None:
            reason = chunk.candidates[0].finish_reason
            finish_reason = getattr(reason, "value", str(reason))
        return StreamDelta(
            text=text,
            tool_calls=calls,
            usage=self.usage_from(chunk.usage_metadata),
            finish_reason=finish_reason,
        )

    # --- conversation encoding -----------------------------------------------

    def model_turn(self, batch: ToolCallBatch) -> types.Content:
        """The model turn that requested the batch, rebuilt if not captured."""
        if isinstance(batch.raw_turn, types.Content):
            return batch.raw_turn
        parts: list[types.Part] = []
        if batch.text:
            parts.append(types.Part(text=batch.text))
        for call in batch.calls:
            parts.append(
                types.Part(
                    function_call=types.FunctionCall(
                        id=call.id, name=call.name, args=call.arguments
                    )
                )
            )
        return types.Content(role="model", parts=parts)

    def function_response(self, result: ToolCallResult) -> types.Part:
        if result.error is not None:
            response: dict[str, Any] = {"error": str(result.error)}
        elif isinstance(result.result, dict):
            response = result.result
        else:
            response = {"result": result.result}
        return types.Part(
            function_response=types.FunctionResponse(
                id=result.id, name=result.name, response=response
            )
        )

    def append_tool_round(
        self,
        contents: list[types.Content],
        batch: ToolCallBatch,
        results: Sequence[ToolCallResult],
    ) -> None:
        contents.append(self.model_turn(batch))
        contents.append(
            types.Content(role="user", parts=[self.function_response(r) for r in results])
        )
