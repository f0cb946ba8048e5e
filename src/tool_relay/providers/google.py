from __future__ import annotations

import logging
from typing import AsyncIterator, Optional, Self, Sequence

from google import genai
from google.genai import types

from tool_relay.adapters.google import GoogleRequestAdapter
from tool_relay.types.chat import CallPlan
from tool_relay.types.round import Round, StreamDelta, ToolCallBatch
from tool_relay.types.tool import ToolCallResult

from .base import ProviderTransport

__all__ = ["GoogleTransport"]


class GoogleTransport(ProviderTransport):
    """
    Gemini transport built on the native ``google-genai`` SDK.

    Use ``GoogleTransport.from_client`` when you already have a ``genai.Client``.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout: float = 60.0,
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(logger=logger, name=name)
        http_options = types.HttpOptions(
            timeout=int(timeout * 1000),  # milliseconds
            base_url=base_url,
        )
        self._client = genai.Client(api_key=api_key, http_options=http_options)
        self._adapter = GoogleRequestAdapter()

    # Alternate constructor
    @classmethod
    def from_client(
        cls,
        client: genai.Client,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """Wrap an existing ``genai.Client``."""
        if not isinstance(client, genai.Client):
            raise TypeError(
                f"GoogleTransport.from_client expects genai.Client; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        ProviderTransport.__init__(self, logger=logger, name=name)
        self._client = client
        self._adapter = GoogleRequestAdapter()
        return self

    def start_conversation(self, plan: CallPlan) -> list[types.Content]:
        return self._adapter.start_contents(plan)

    def append_tool_round(
        self,
        conversation: list[types.Content],
        batch: ToolCallBatch,
        results: Sequence[ToolCallResult],
    ) -> None:
        self._adapter.append_tool_round(conversation, batch, results)

    async def _generate_impl(self, conversation: Sequence[types.Content], plan: CallPlan) -> Round:
        self._log(f"Sending request to Gemini model {plan.model} (Stream: False)", logging.DEBUG)
        response = await self._client.aio.models.generate_content(
            model=plan.model,
            contents=list(conversation),
            config=self._adapter.build_config(plan),
        )
        return self._adapter.round_from_response(response)

    async def _stream_impl(
        self, conversation: Sequence[types.Content], plan: CallPlan
    ) -> AsyncIterator[StreamDelta]:
        self._log(f"Sending request to Gemini model {plan.model} (Stream: True)", logging.DEBUG)
        stream = await self._client.aio.models.generate_content_stream(
            model=plan.model,
            contents=list(conversation),
            config=self._adapter.build_config(plan),
        )
        seen = 0
        async for chunk in stream:
            delta = self._adapter.delta_from_chunk(chunk, seen)
            seen += len(delta.tool_calls)
            yield delta

    async def aclose(self) -> None:
        aclose = getattr(self._client.aio, "aclose", None)
        if aclose is not None:
            await aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
