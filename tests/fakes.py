"""Scripted provider transport shared by the engine tests."""

import asyncio
from typing import Any, AsyncIterator, Sequence

from tool_relay.providers.base import ProviderTransport
from tool_relay.types.chat import CallPlan, Usage
from tool_relay.types.round import FinalAnswer, Round, StreamDelta, ToolCallBatch, ToolCallFragment
from tool_relay.types.tool import ToolCallRequest, ToolCallResult


def call(name: str, call_id: str | None = None, **arguments: Any) -> ToolCallRequest:
    return ToolCallRequest(id=call_id or f"call_{name}", name=name, arguments=arguments)


def batch(*calls: ToolCallRequest, usage: Usage | None = None) -> ToolCallBatch:
    return ToolCallBatch(calls=list(calls), usage=usage)


def answer(text: str, usage: Usage | None = None) -> FinalAnswer:
    return FinalAnswer(text=text, usage=usage)


def fragment(index: int, arguments: str = "", *, call_id: str | None = None, name: str | None = None) -> StreamDelta:
    return StreamDelta(fragments=[ToolCallFragment(index=index, id=call_id, name=name, arguments=arguments)])


class FakeTransport(ProviderTransport):
    """
    Replays scripted rounds and streams.

    ``rounds`` feeds `generate`; ``streams`` feeds `generate_stream`, one list
    of items per provider round. A stream item may be a StreamDelta, an
    exception to raise, or an asyncio.Event to wait on.
    """

    def __init__(self, rounds: Sequence[Any] = (), streams: Sequence[Sequence[Any]] = ()) -> None:
        super().__init__(name="fake")
        self.rounds = list(rounds)
        self.streams = [list(s) for s in streams]
        self.generate_calls = 0
        self.stream_calls = 0
        self.plans: list[CallPlan] = []
        self.appended: list[tuple[ToolCallBatch, list[ToolCallResult]]] = []
        self.closed = False

    def start_conversation(self, plan: CallPlan) -> list[Any]:
        return [{"role": "user", "content": plan.input}]

    def append_tool_round(
        self,
        conversation: list[Any],
        batch: ToolCallBatch,
        results: Sequence[ToolCallResult],
    ) -> None:
        self.appended.append((batch, list(results)))
        conversation.append({"role": "assistant", "tool_calls": [c.id for c in batch.calls]})
        for result in results:
            conversation.append({"role": "tool", "tool_call_id": result.id, "content": result.result})

    async def _generate_impl(self, conversation: Sequence[Any], plan: CallPlan) -> Round:
        self.generate_calls += 1
        self.plans.append(plan)
        item = self.rounds.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def _stream_impl(self, conversation: Sequence[Any], plan: CallPlan) -> AsyncIterator[StreamDelta]:
        self.stream_calls += 1
        self.plans.append(plan)
        for item in self.streams.pop(0):
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, asyncio.Event):
                await item.wait()
                continue
            yield item

    async def aclose(self) -> None:
        self.closed = True
