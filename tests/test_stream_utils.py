"""Tests for streamed tool call reassembly."""

import pytest

from fakes import fragment
from tool_relay.errors import ToolArgumentsError
from tool_relay.stream_utils import ToolCallAccumulator, collect_round, parse_arguments
from tool_relay.types.chat import Usage
from tool_relay.types.round import FinalAnswer, StreamDelta, ToolCallBatch, ToolCallFragment
from tool_relay.types.tool import ToolCallRequest


async def deltas(*items):
    for item in items:
        yield item


class TestParseArguments:
    def test_empty_means_no_arguments(self):
        assert parse_arguments("t", "") == {}
        assert parse_arguments("t", "  ") == {}

    def test_object(self):
        assert parse_arguments("t", '{"a": 1}') == {"a": 1}

    def test_invalid_json(self):
        with pytest.raises(ToolArgumentsError) as exc_info:
            parse_arguments("t", "{not json")
        assert exc_info.value.tool_name == "t"
        assert exc_info.value.raw_arguments == "{not json"

    def test_non_object(self):
        with pytest.raises(ToolArgumentsError):
            parse_arguments("t", "[1, 2]")


class TestToolCallAccumulator:
    def test_reassembles_by_index(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallFragment(index=1, id="call_b", name="lookup", arguments='{"q":'))
        acc.add(ToolCallFragment(index=0, id="call_a", name="weather", arguments='{"city"'))
        acc.add(ToolCallFragment(index=1, arguments=' "x"}'))
        acc.add(ToolCallFragment(index=0, arguments=': "Paris"}'))

        calls = acc.drain()

        assert [(c.id, c.name, c.arguments) for c in calls] == [
            ("call_a", "weather", {"city": "Paris"}),
            ("call_b", "lookup", {"q": "x"}),
        ]
        assert calls[0].raw_arguments == '{"city": "Paris"}'
        assert not acc

    def test_repeated_name_is_not_concatenated(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallFragment(index=0, id="call_a", name="get_weather", arguments='{"city":'))
        acc.add(ToolCallFragment(index=0, name="get_weather", arguments=' "Oslo"}'))

        [call] = acc.drain()

        assert call.name == "get_weather"
        assert call.arguments == {"city": "Oslo"}

    def test_missing_id_is_synthesised(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallFragment(index=2, name="ping"))

        assert acc.drain()[0].id == "ping_2"

    def test_nameless_fragments_are_dropped(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallFragment(index=0, arguments="{}"))

        assert len(acc) == 1
        assert acc.drain() == []

    def test_malformed_arguments(self):
        acc = ToolCallAccumulator()
        acc.add(ToolCallFragment(index=0, id="c", name="t", arguments='{"a":'))

        with pytest.raises(ToolArgumentsError):
            acc.drain()


class TestCollectRound:
    @pytest.mark.asyncio
    async def test_final_answer(self):
        result = await collect_round(
            deltas(
                StreamDelta(text="Hel"),
                StreamDelta(text="lo", usage=Usage(1, 1, 2)),
                StreamDelta(usage=Usage(3, 4, 7)),
            )
        )

        assert isinstance(result, FinalAnswer)
        assert result.text == "Hello"
        assert result.usage == Usage(3, 4, 7)

    @pytest.mark.asyncio
    async def test_fragments_become_a_batch(self):
        result = await collect_round(
            deltas(
                fragment(0, '{"a"', call_id="c1", name="t"),
                fragment(0, ": 1}"),
                StreamDelta(finish_reason="tool_calls", tool_calls_done=True),
            )
        )

        assert isinstance(result, ToolCallBatch)
        assert result.calls[0].arguments == {"a": 1}

    @pytest.mark.asyncio
    async def test_complete_calls_are_kept_in_order(self):
        first = ToolCallRequest(id="g1", name="a")
        second = ToolCallRequest(id="g2", name="b")

        result = await collect_round(
            deltas(StreamDelta(text="thinking", tool_calls=[first]), StreamDelta(tool_calls=[second]))
        )

        assert isinstance(result, ToolCallBatch)
        assert [c.id for c in result.calls] == ["g1", "g2"]
        assert result.text == "thinking"
