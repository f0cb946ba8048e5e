"""Base class for provider transports."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional, Self, Sequence

from tool_relay.errors import ToolRelayError, classify_error
from tool_relay.types.chat import CallPlan
from tool_relay.types.round import Round, StreamDelta, ToolCallBatch
from tool_relay.types.tool import ToolCallResult

__all__ = ["ProviderTransport"]


class ProviderTransport(ABC):
    """
    One provider's wire protocol, behind a provider-neutral surface.

    A conversation is an opaque, provider-native list owned by the caller:
    it is created by `start_conversation` and grown by `append_tool_round`.
    Every transport is async-first.
    """

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Initializes the base transport.

        Args:
            logger: Optional logger instance. If None, a logger named after
                    this module will be used.
            name: Optional name for this component, used in logging.
                  If None, defaults to the concrete class's name.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__

    # --- conversation ---------------------------------------------------------

    @abstractmethod
    def start_conversation(self, plan: CallPlan) -> list[Any]:
        """Return the initial provider-native conversation for *plan*."""
        ...

    @abstractmethod
    def append_tool_round(
        self,
        conversation: list[Any],
        batch: ToolCallBatch,
        results: Sequence[ToolCallResult],
    ) -> None:
        """Record the model's tool requests and their results, in call order."""
        ...

    # --- calls ----------------------------------------------------------------

    @abstractmethod
    async def _generate_impl(self, conversation: Sequence[Any], plan: CallPlan) -> Round:
        ...

    @abstractmethod
    def _stream_impl(
        self, conversation: Sequence[Any], plan: CallPlan
    ) -> AsyncIterator[StreamDelta]:
        ...

    async def generate(self, conversation: Sequence[Any], plan: CallPlan) -> Round:
        """
        Run one non-streaming provider round.

        Raises:
            ProviderError: The SDK call failed.
            ToolRelayError: The response could not be interpreted.
        """
        try:
            return await self._generate_impl(conversation, plan)
        except ToolRelayError:
            raise
        except Exception as exc:
            raise classify_error(exc, self.logger) from exc

    async def generate_stream(
        self, conversation: Sequence[Any], plan: CallPlan
    ) -> AsyncIterator[StreamDelta]:
        """Run one streaming provider round, yielding normalised deltas."""
        try:
            async for delta in self._stream_impl(conversation, plan):
                yield delta
        except ToolRelayError:
            raise
        except Exception as exc:
            raise classify_error(exc, self.logger) from exc

    # --- lifecycle ------------------------------------------------------------

    async def aclose(self) -> None:
        """Release the underlying SDK client."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")
