"""Client-wide configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tool_relay.provider import Provider, get_api_key
from tool_relay.tools.retry import RetryConfig

__all__ = ["ClientConfig"]


@dataclass
class ClientConfig:
    """
    Secrets, endpoints and defaults shared by every call of a `Client`.

    With ``detect_env=True``, missing API keys are read from the environment
    (and a ``.env`` file) through `tool_relay.provider.get_api_key`.
    """

    # Default model per provider if not set per call
    default_model_openai: str = ""
    default_model_google: str = ""

    # OpenAI
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    openai_organization: Optional[str] = None

    # Google
    google_api_key: str = ""
    google_base_url: Optional[str] = None

    # Shared transport knobs
    timeout: float = 60.0
    max_retries: int = 2

    detect_env: bool = False

    # Tool executor defaults applied to every plan
    tool_cache_ttl: float = 0.0
    tool_cache_max_size: int = 0
    tool_retry: Optional[RetryConfig] = None

    def default_model(self, provider: Provider) -> str:
        if provider is Provider.OPENAI:
            return self.default_model_openai
        if provider is Provider.GOOGLE:
            return self.default_model_google
        raise ValueError(f"unsupported provider: {provider!r}")

    def api_key_for(self, provider: Provider) -> str:
        """
        Return the configured key for *provider*.

        Raises:
            RuntimeError: No key is configured and none was found in the
                environment.
        """
        key = self.openai_api_key if provider is Provider.OPENAI else self.google_api_key
        if key:
            return key
        if self.detect_env:
            return get_api_key(provider)
        raise RuntimeError(f"no API key configured for {provider!s}")
