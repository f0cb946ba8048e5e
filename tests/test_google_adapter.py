"""Tests for the Google Gemini request adapter."""

import pytest
from google import genai
from google.genai import types

from tool_relay.adapters.google import GoogleRequestAdapter
from tool_relay.provider import Provider
from tool_relay.providers.google import GoogleTransport
from tool_relay.types.chat import CallPlan, Usage
from tool_relay.types.round import FinalAnswer, ToolCallBatch
from tool_relay.types.tool import ToolCallRequest, ToolCallResult, ToolSpec


def response(*parts, usage=None, finish_reason=None):
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=list(parts)),
                finish_reason=finish_reason,
            )
        ],
        usage_metadata=usage,
    )


def function_call(name, args, call_id=None):
    return types.Part(function_call=types.FunctionCall(id=call_id, name=name, args=args))


@pytest.fixture
def adapter():
    return GoogleRequestAdapter()


def make_plan(**overrides):
    return CallPlan(provider=Provider.GOOGLE, model="gemini-2.5-flash", input="Hello", **overrides)


class TestBuildConfig:
    def test_start_contents(self, adapter):
        contents = adapter.start_contents(make_plan(system="ignored here"))

        assert len(contents) == 1
        assert contents[0].role == "user"
        assert contents[0].parts[0].text == "Hello"

    def test_basic_config(self, adapter):
        config = adapter.build_config(make_plan(temperature=0.5, max_output_tokens=64))

        assert config.temperature == 0.5
        assert config.max_output_tokens == 64
        assert config.system_instruction is None
        assert config.tools is None

    def test_system_instruction(self, adapter):
        config = adapter.build_config(make_plan(system="Be brief"))

        assert "Be brief" in str(config.system_instruction)

    def test_tools(self, adapter):
        schema = {"type": "object", "properties": {"city": {"type": "string"}}}
        config = adapter.build_config(
            make_plan(tools=[ToolSpec(name="weather", description="Weather", parameters=schema)])
        )

        declaration = config.tools[0].function_declarations[0]
        assert declaration.name == "weather"
        assert declaration.parameters_json_schema == schema
        assert config.tool_config.function_calling_config.mode == types.FunctionCallingConfigMode.AUTO
        assert config.automatic_function_calling.disable is True

    def test_structured_output(self, adapter):
        schema = {"type": "object", "properties": {"name": {"type": "string"}}}
        config = adapter.build_config(make_plan(structured=True, response_schema=schema))

        assert config.response_mime_type == "application/json"
        assert config.response_json_schema == schema


class TestResponses:
    def test_final_answer(self, adapter):
        raw = response(
            types.Part(text="Hello"),
            types.Part(text="world"),
            usage=types.GenerateContentResponseUsageMetadata(
                prompt_token_count=4, candidates_token_count=2, total_token_count=6
            ),
        )

        result = adapter.round_from_response(raw)

        assert isinstance(result, FinalAnswer)
        assert result.text == "Hello\nworld"
        assert result.usage == Usage(4, 2, 6)

    def test_function_calls(self, adapter):
        raw = response(
            function_call("weather", {"city": "Paris"}, "fc-1"),
            function_call("weather", {"city": "Rome"}),
        )

        result = adapter.round_from_response(raw)

        assert isinstance(result, ToolCallBatch)
        assert [(c.id, c.arguments) for c in result.calls] == [
            ("fc-1", {"city": "Paris"}),
            ("weather_1", {"city": "Rome"}),
        ]
        assert result.raw_turn.role == "model"

    def test_empty_response(self, adapter):
        result = adapter.round_from_response(types.GenerateContentResponse())

        assert isinstance(result, FinalAnswer)
        assert result.text == ""
        assert result.usage is None

    def test_stream_chunk_carries_complete_calls(self, adapter):
        delta = adapter.delta_from_chunk(
            response(
                types.Part(text="Let me check"),
                function_call("weather", {"city": "Oslo"}),
                finish_reason=types.FinishReason.STOP,
            )
        )

        assert delta.text == "Let me check"
        assert delta.fragments == []
        assert delta.tool_calls[0].name == "weather"
        assert delta.tool_calls[0].id == "weather_0"
        assert delta.finish_reason == "STOP"

    def test_stream_ids_continue_from_first_index(self, adapter):
        delta = adapter.delta_from_chunk(response(function_call("search", {"q": "b"})), 1)

        assert delta.tool_calls[0].id == "search_1"


class TestToolTurns:
    def test_append_tool_round_reuses_model_turn(self, adapter):
        raw = response(function_call("weather", {"city": "Paris"}, "fc-1"))
        batch = adapter.round_from_response(raw)
        contents = adapter.start_contents(make_plan())

        adapter.append_tool_round(
            contents, batch, [ToolCallResult(id="fc-1", name="weather", result={"temp": 21})]
        )

        model_turn, results_turn = contents[1:]
        assert model_turn is batch.raw_turn
        assert results_turn.role == "user"
        function_response = results_turn.parts[0].function_response
        assert function_response.id == "fc-1"
        assert function_response.name == "weather"
        assert function_response.response == {"temp": 21}

    def test_rebuilds_model_turn_for_streamed_batches(self, adapter):
        batch = ToolCallBatch(
            calls=[ToolCallRequest(id="weather_0", name="weather", arguments={"city": "Oslo"})],
            text="Checking",
        )
        contents = []

        adapter.append_tool_round(
            contents,
            batch,
            [ToolCallResult(id="weather_0", name="weather", error=RuntimeError("offline"))],
        )

        model_turn, results_turn = contents
        assert model_turn.role == "model"
        assert model_turn.parts[0].text == "Checking"
        assert model_turn.parts[1].function_call.args == {"city": "Oslo"}
        assert results_turn.parts[0].function_response.response == {"error": "offline"}

    def test_non_object_results_are_wrapped(self, adapter):
        part = adapter.function_response(ToolCallResult(id="c", name="t", result=42))

        assert part.function_response.response == {"result": 42}


class TestGoogleTransportStream:
    @pytest.mark.asyncio
    async def test_synthesised_ids_are_unique_within_a_round(self, monkeypatch):
        async def fake_stream(**kwargs):
            async def chunks():
                yield response(function_call("search", {"q": "a"}))
                yield response(function_call("search", {"q": "b"}))
                yield response(function_call("search", {"q": "c"}, "given-id"))

            return chunks()

        client = genai.Client(api_key="test-key")
        monkeypatch.setattr(client.aio.models, "generate_content_stream", fake_stream)
        transport = GoogleTransport.from_client(client)
        plan = make_plan()

        deltas = [
            delta
            async for delta in transport.generate_stream(transport.start_conversation(plan), plan)
        ]

        ids = [c.id for delta in deltas for c in delta.tool_calls]
        assert ids == ["search_0", "search_1", "given-id"]
