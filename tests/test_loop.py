"""Tests for the round-trip loop controller."""

import pytest

from fakes import FakeTransport, answer, batch, call, fragment
from tool_relay.errors import (
    ProviderError,
    RetriesExhaustedError,
    ToolBatchError,
    ToolRoundLimitExceeded,
)
from tool_relay.loop import ToolLoop
from tool_relay.provider import Provider
from tool_relay.tools.executor import ToolExecutor
from tool_relay.tools.retry import RetryConfig
from tool_relay.types.chat import CallPlan, Usage
from tool_relay.types.round import StreamDelta


def make_plan(**overrides):
    return CallPlan(provider=Provider.OPENAI, model="gpt-test", input="What's the weather?", **overrides)


async def weather(arguments):
    return {"city": arguments.get("city"), "temp": 21}


class TestToolLoop:
    @pytest.mark.asyncio
    async def test_final_answer_without_tools(self):
        transport = FakeTransport(rounds=[answer("Hello", Usage(3, 2, 5))])
        loop = ToolLoop(transport, ToolExecutor({}))

        result = await loop.run(make_plan())

        assert result.text == "Hello"
        assert result.rounds == 1
        assert result.usage == Usage(3, 2, 5)
        assert transport.appended == []

    @pytest.mark.asyncio
    async def test_tool_round_then_answer(self):
        transport = FakeTransport(
            rounds=[
                batch(call("weather", "c1", city="Paris"), usage=Usage(10, 5, 15)),
                answer("It is 21 degrees", Usage(20, 6, 26)),
            ]
        )
        loop = ToolLoop(transport, ToolExecutor({"weather": weather}))

        result = await loop.run(make_plan())

        assert result.text == "It is 21 degrees"
        assert result.rounds == 2
        assert result.usage == Usage(30, 11, 41)
        (sent_batch, results), = transport.appended
        assert sent_batch.calls[0].id == "c1"
        assert results[0].id == "c1"
        assert results[0].result == {"city": "Paris", "temp": 21}

    @pytest.mark.asyncio
    async def test_round_limit(self):
        """The provider is never asked for a round past the limit."""
        transport = FakeTransport(rounds=[batch(call("weather", f"c{i}")) for i in range(4)])
        loop = ToolLoop(transport, ToolExecutor({"weather": weather}), max_rounds=3)

        with pytest.raises(ToolRoundLimitExceeded) as exc_info:
            await loop.run(make_plan())

        assert exc_info.value.max_rounds == 3
        assert transport.generate_calls == 3
        assert len(transport.appended) == 3

    @pytest.mark.asyncio
    async def test_tool_failure_under_stop_on_error(self):
        async def broken(arguments):
            raise RuntimeError("down")

        transport = FakeTransport(rounds=[batch(call("weather"))])
        loop = ToolLoop(transport, ToolExecutor({"weather": broken}))

        with pytest.raises(ToolBatchError):
            await loop.run(make_plan())
        assert transport.appended == []

    @pytest.mark.asyncio
    async def test_tool_failure_is_reported_to_the_model(self):
        async def broken(arguments):
            raise RuntimeError("down")

        transport = FakeTransport(rounds=[batch(call("weather")), answer("Sorry")])
        loop = ToolLoop(transport, ToolExecutor({"weather": broken}, stop_on_error=False))

        result = await loop.run(make_plan())

        assert result.text == "Sorry"
        assert isinstance(transport.appended[0][1][0].error, RuntimeError)

    @pytest.mark.asyncio
    async def test_exhausted_retries_abort_without_stop_on_error(self):
        async def slow(arguments):
            raise TimeoutError("slow")

        transport = FakeTransport(rounds=[batch(call("weather")), answer("unreachable")])
        executor = ToolExecutor(
            {"weather": slow},
            stop_on_error=False,
            retry=RetryConfig(max_attempts=2, initial_backoff=0.0),
        )

        with pytest.raises(ToolBatchError) as exc_info:
            await ToolLoop(transport, executor).run(make_plan())

        assert isinstance(exc_info.value.__cause__, RetriesExhaustedError)
        assert transport.appended == []
        assert transport.generate_calls == 1

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        transport = FakeTransport(rounds=[ConnectionError("refused")])
        loop = ToolLoop(transport, ToolExecutor({}))

        with pytest.raises(ProviderError) as exc_info:
            await loop.run(make_plan())
        assert isinstance(exc_info.value.original_exc, ConnectionError)

    @pytest.mark.asyncio
    async def test_structured_answer_is_parsed(self):
        transport = FakeTransport(rounds=[answer('{"name": "Ada", "age": 36}')])
        loop = ToolLoop(transport, ToolExecutor({}))

        result = await loop.run(make_plan(structured=True, response_schema={"type": "object"}))

        assert result.json == {"name": "Ada", "age": 36}

    @pytest.mark.asyncio
    async def test_structured_non_object_is_ignored(self):
        transport = FakeTransport(rounds=[answer("not json")])
        loop = ToolLoop(transport, ToolExecutor({}))

        result = await loop.run(make_plan(structured=True))

        assert result.json is None
        assert result.text == "not json"


class TestStreamedRounds:
    @pytest.mark.asyncio
    async def test_fragments_are_reassembled_before_execution(self):
        transport = FakeTransport(
            streams=[
                [
                    fragment(0, '{"ci', call_id="c1", name="weather"),
                    fragment(1, "", call_id="c2", name="weather"),
                    fragment(0, 'ty": "Paris"}'),
                    fragment(1, '{"city": "Rome"}'),
                    StreamDelta(finish_reason="tool_calls", tool_calls_done=True),
                ],
                [StreamDelta(text="Paris and "), StreamDelta(text="Rome are warm")],
            ]
        )
        loop = ToolLoop(transport, ToolExecutor({"weather": weather}), streamed=True)

        result = await loop.run(make_plan())

        assert result.text == "Paris and Rome are warm"
        assert transport.stream_calls == 2
        _, results = transport.appended[0]
        assert [r.result["city"] for r in results] == ["Paris", "Rome"]
