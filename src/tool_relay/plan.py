"""Turn a `TextRequest` into the call plans that implement its mode."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from tool_relay.types.chat import CallPlan, CallResult, TextMode, TextRequest

if TYPE_CHECKING:
    from tool_relay.config import ClientConfig

__all__ = ["PROOFREAD_SYSTEM", "PROOFREAD_TEMPERATURE", "build_plans", "result_preferred_input"]

PROOFREAD_SYSTEM = (
    "You are a writing assistant. Rewrite the user's input to correct grammar, "
    "spelling, and clarity without changing its meaning. Return only the rewritten text."
)
PROOFREAD_TEMPERATURE = 0.2


def build_plans(request: TextRequest, model: str, config: "ClientConfig") -> list[CallPlan]:
    """
    Build the ordered plans for *request*. Later plans may take their input
    from the result of earlier ones (see `result_preferred_input`).

    Raises:
        ValueError: The request is missing what its mode needs.
    """
    base = CallPlan(
        provider=request.provider,
        model=model,
        input=request.input,
        system=request.system,
        temperature=request.temperature,
        max_output_tokens=request.max_output_tokens,
        tool_cache_ttl=config.tool_cache_ttl,
        tool_cache_max_size=config.tool_cache_max_size,
        tool_retry=config.tool_retry,
    )

    mode = request.mode
    if mode is TextMode.BASIC:
        return [base]

    if mode is TextMode.STRUCTURED_JSON:
        if not request.response_schema:
            raise ValueError("response_schema is required for STRUCTURED_JSON mode")
        return [base.copy(structured=True, response_schema=request.response_schema)]

    if mode is TextMode.TOOL_CALLING:
        if not request.tools:
            raise ValueError("tools must be provided for TOOL_CALLING mode")
        return [
            base.copy(
                tools=list(request.tools),
                tool_handlers=dict(request.tool_handlers),
                max_tool_rounds=request.max_tool_rounds,
                parallel_tools=request.parallel_tools,
                stop_on_tool_error=request.stop_on_tool_error,
            )
        ]

    if mode is TextMode.TWO_STEP_ENHANCE:
        proofread = base.copy(system=PROOFREAD_SYSTEM, temperature=PROOFREAD_TEMPERATURE)
        return [proofread, base]

    raise ValueError(f"unknown mode: {mode!r}")


def result_preferred_input(result: CallResult) -> str:
    """The best string to feed into the next plan: text, else the JSON."""
    if result.text:
        return result.text
    if result.json:
        return json.dumps(result.json)
    return ""
