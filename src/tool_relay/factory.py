from __future__ import annotations

import logging
from typing import Any, Type

from tool_relay.config import ClientConfig
from tool_relay.providers.base import ProviderTransport
from tool_relay.providers.google import GoogleTransport
from tool_relay.providers.openai import OpenAITransport

from .provider import Provider

__all__ = ["create_transport"]

# map Provider enum to its transport implementation
_TRANSPORT_REGISTRY: dict[Provider, Type[ProviderTransport]] = {
    Provider.OPENAI: OpenAITransport,
    Provider.GOOGLE: GoogleTransport,
}


def create_transport(
    provider: Provider,
    config: ClientConfig,
    *,
    client: Any = None,
    logger: logging.Logger | None = None,
) -> ProviderTransport:
    """
    Factory for creating any supported provider transport.

    Args:
        provider: Which provider to use (OPENAI, GOOGLE).
        config: Keys, endpoints and timeouts.
        client: Optional pre-configured SDK client to use.
            - For Provider.OPENAI: an AsyncOpenAI instance
            - For Provider.GOOGLE: a google.genai.Client instance
            If not provided, a client is built from *config*.
        logger: Optional custom logger.

    Raises:
        ValueError: The provider is not supported.
        RuntimeError: No API key could be found.
    """
    try:
        transport_cls = _TRANSPORT_REGISTRY[provider]
    except KeyError as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc

    if client is not None:  # use caller-supplied client verbatim
        return transport_cls.from_client(client, logger=logger)

    key = config.api_key_for(provider)
    if provider is Provider.OPENAI:
        return OpenAITransport(
            api_key=key,
            timeout=config.timeout,
            max_retries=config.max_retries,
            base_url=config.openai_base_url,
            organization=config.openai_organization,
            logger=logger,
        )
    return GoogleTransport(
        api_key=key,
        timeout=config.timeout,
        base_url=config.google_base_url,
        logger=logger,
    )
