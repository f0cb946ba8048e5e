from __future__ import annotations

import logging
from typing import AsyncIterator, Optional, Self, Sequence

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from tool_relay.adapters.openai import OpenAIRequestAdapter
from tool_relay.types.chat import CallPlan, ChatMessage
from tool_relay.types.round import Round, StreamDelta, ToolCallBatch
from tool_relay.types.tool import ToolCallResult

from .base import ProviderTransport

__all__ = ["OpenAITransport"]


class OpenAITransport(ProviderTransport):
    """
    OpenAI Chat Completions transport (async-only).

    Use ``OpenAITransport.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(logger=logger, name=name)
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
            organization=organization,
        )
        self._adapter = OpenAIRequestAdapter()

    # Alternate constructor
    @classmethod
    def from_client(
        cls,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build an ``OpenAITransport`` around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"OpenAITransport.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        ProviderTransport.__init__(self, logger=logger, name=name)
        self._client = client
        self._adapter = OpenAIRequestAdapter()
        return self

    def start_conversation(self, plan: CallPlan) -> list[ChatMessage]:
        return self._adapter.start_messages(plan)

    def append_tool_round(
        self,
        conversation: list[ChatMessage],
        batch: ToolCallBatch,
        results: Sequence[ToolCallResult],
    ) -> None:
        self._adapter.append_tool_round(conversation, batch, results)

    async def _generate_impl(self, conversation: Sequence[ChatMessage], plan: CallPlan) -> Round:
        args = self._adapter.build_request(conversation, plan)
        self._log(f"Sending request to OpenAI model {plan.model} (Stream: False)", logging.DEBUG)
        response: ChatCompletion = await self._client.chat.completions.create(**args)
        return self._adapter.round_from_completion(response)

    async def _stream_impl(
        self, conversation: Sequence[ChatMessage], plan: CallPlan
    ) -> AsyncIterator[StreamDelta]:
        args = self._adapter.build_request(conversation, plan, stream=True)
        self._log(f"Sending request to OpenAI model {plan.model} (Stream: True)", logging.DEBUG)
        stream = await self._client.chat.completions.create(**args)
        try:
            async for chunk in stream:
                yield self._adapter.delta_from_chunk(chunk)
        finally:
            await stream.close()

    async def aclose(self) -> None:
        await self._client.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
