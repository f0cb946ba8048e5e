"""Tests for provider error classification."""

import httpx
import openai
import pytest

from tool_relay.errors import ProviderError, ToolBatchError, classify_error
from tool_relay.provider import Provider, get_api_key


REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class TestClassifyError:
    def test_rate_limit(self):
        response = httpx.Response(429, request=REQUEST)
        exc = openai.RateLimitError("slow down", response=response, body=None)

        error = classify_error(exc)

        assert isinstance(error, ProviderError)
        assert str(error).startswith("Rate-limit exceeded")
        assert error.original_exc is exc
        assert error.__cause__ is exc

    def test_connection(self):
        error = classify_error(openai.APIConnectionError(request=REQUEST))

        assert str(error).startswith("Connection problem")

    def test_timeout(self):
        assert str(classify_error(TimeoutError("late"))).startswith("Connection problem")

    def test_api_error(self):
        response = httpx.Response(500, request=REQUEST)
        exc = openai.InternalServerError("boom", response=response, body=None)

        assert str(classify_error(exc)).startswith("Provider reported an error")

    def test_unknown(self):
        assert str(classify_error(KeyError("x"))).startswith("KeyError")

    def test_provider_error_is_returned_unchanged(self):
        error = ProviderError("already wrapped", ValueError())

        assert classify_error(error) is error


def test_batch_error_keeps_results():
    cause = RuntimeError("down")

    error = ToolBatchError("weather", cause, [])

    assert error.tool_name == "weather"
    assert error.__cause__ is cause
    assert "weather" in str(error)


class TestApiKeys:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "g-key")

        assert get_api_key(Provider.GOOGLE) == "g-key"

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr("tool_relay.provider.load_dotenv", lambda: False)

        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            get_api_key(Provider.OPENAI)
