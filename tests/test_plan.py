"""Tests for call plan construction."""

import pytest

from tool_relay.config import ClientConfig
from tool_relay.plan import PROOFREAD_SYSTEM, build_plans, result_preferred_input
from tool_relay.provider import Provider
from tool_relay.tools.retry import RetryConfig
from tool_relay.types.chat import CallResult, TextMode, TextRequest
from tool_relay.types.tool import ToolSpec


def make_request(mode, **overrides):
    return TextRequest(input="helo wrld", provider=Provider.OPENAI, system="Be kind", mode=mode, **overrides)


class TestBuildPlans:
    def test_basic(self):
        config = ClientConfig(tool_cache_ttl=30, tool_cache_max_size=10, tool_retry=RetryConfig())

        (plan,) = build_plans(make_request(TextMode.BASIC, temperature=0.7), "gpt-4o", config)

        assert plan.model == "gpt-4o"
        assert plan.input == "helo wrld"
        assert plan.system == "Be kind"
        assert plan.temperature == 0.7
        assert plan.structured is False
        assert plan.tool_cache_ttl == 30
        assert plan.tool_cache_max_size == 10
        assert plan.tool_retry == RetryConfig()

    def test_structured_requires_schema(self):
        with pytest.raises(ValueError):
            build_plans(make_request(TextMode.STRUCTURED_JSON), "m", ClientConfig())

    def test_structured(self):
        schema = {"type": "object"}

        (plan,) = build_plans(
            make_request(TextMode.STRUCTURED_JSON, response_schema=schema), "m", ClientConfig()
        )

        assert plan.structured is True
        assert plan.response_schema == schema

    def test_tool_calling_requires_tools(self):
        with pytest.raises(ValueError):
            build_plans(make_request(TextMode.TOOL_CALLING), "m", ClientConfig())

    def test_tool_calling(self):
        handler = lambda args: "ok"  # noqa: E731
        request = make_request(
            TextMode.TOOL_CALLING,
            tools=[ToolSpec(name="t")],
            tool_handlers={"t": handler},
            max_tool_rounds=2,
            parallel_tools=True,
            stop_on_tool_error=False,
        )

        (plan,) = build_plans(request, "m", ClientConfig())

        assert [t.name for t in plan.tools] == ["t"]
        assert plan.tool_handlers == {"t": handler}
        assert plan.max_tool_rounds == 2
        assert plan.parallel_tools is True
        assert plan.stop_on_tool_error is False

    def test_two_step(self):
        proofread, main = build_plans(make_request(TextMode.TWO_STEP_ENHANCE), "m", ClientConfig())

        assert proofread.system == PROOFREAD_SYSTEM
        assert proofread.temperature == 0.2
        assert main.system == "Be kind"
        assert main.temperature is None


def test_result_preferred_input():
    assert result_preferred_input(CallResult(text="fixed")) == "fixed"
    assert result_preferred_input(CallResult(json={"a": 1})) == '{"a": 1}'
    assert result_preferred_input(CallResult()) == ""
