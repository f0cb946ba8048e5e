"""Shared streaming utilities: reassembly of incremental tool call deltas."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import AsyncIterable, Optional

from tool_relay.errors import ToolArgumentsError
from tool_relay.types.chat import Usage
from tool_relay.types.round import FinalAnswer, Round, StreamDelta, ToolCallBatch, ToolCallFragment
from tool_relay.types.tool import ToolCallRequest

__all__ = ["ToolCallAccumulator", "parse_arguments", "collect_round"]


def parse_arguments(name: str, raw: str) -> dict:
    """Decode a JSON argument string; an empty string means no arguments."""
    if not raw.strip():
        return {}
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ToolArgumentsError(name, raw, exc) from exc
    if not isinstance(arguments, dict):
        raise ToolArgumentsError(name, raw)
    return arguments


@dataclass
class _PartialCall:
    id: str = ""
    name: str = ""
    arguments: str = ""


class ToolCallAccumulator:
    """
    Builds complete tool calls out of streamed fragments, keyed by call index.

    The first fragment for an index usually carries the call id and function
    name; later ones append argument text. A name repeated on later
    fragments is ignored.
    """

    def __init__(self) -> None:
        self._calls: dict[int, _PartialCall] = {}

    def __bool__(self) -> bool:
        return bool(self._calls)

    def __len__(self) -> int:
        return len(self._calls)

    def add(self, fragment: ToolCallFragment) -> None:
        partial = self._calls.setdefault(fragment.index, _PartialCall())
        if fragment.id:
            partial.id = fragment.id
        if fragment.name and not partial.name:
            partial.name = fragment.name
        if fragment.arguments:
            partial.arguments += fragment.arguments

    def drain(self) -> list[ToolCallRequest]:
        """
        Return the accumulated calls in index order and reset.

        Raises:
            ToolArgumentsError: A call's argument text is not a JSON object.
        """
        calls: list[ToolCallRequest] = []
        for index in sorted(self._calls):
            partial = self._calls[index]
            if not partial.name:
                continue
            calls.append(
                ToolCallRequest(
                    id=partial.id or f"{partial.name}_{index}",
                    name=partial.name,
                    arguments=parse_arguments(partial.name, partial.arguments),
                    raw_arguments=partial.arguments,
                )
            )
        self._calls.clear()
        return calls


async def collect_round(deltas: AsyncIterable[StreamDelta]) -> Round:
    """
    Aggregate one streamed provider round into a single Round.

    Text is concatenated, fragments are reassembled by index, complete calls
    are appended in arrival order. Providers report cumulative usage, so the
    last report wins.
    """
    text_parts: list[str] = []
    accumulator = ToolCallAccumulator()
    complete: list[ToolCallRequest] = []
    usage: Optional[Usage] = None

    async for delta in deltas:
        if delta.text:
            text_parts.append(delta.text)
        for fragment in delta.fragments:
            accumulator.add(fragment)
        complete.extend(delta.tool_calls)
        if delta.usage is not None:
            usage = delta.usage

    text = "".join(text_parts)
    calls = complete + accumulator.drain()
    if calls:
        return ToolCallBatch(calls=calls, text=text, usage=usage)
    return FinalAnswer(text=text, usage=usage)
