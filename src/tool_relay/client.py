"""
Caller-facing client with `text()` and `stream()` entry points.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Self

from tool_relay.config import ClientConfig
from tool_relay.errors import ToolRelayError, classify_error
from tool_relay.factory import create_transport
from tool_relay.loop import DEFAULT_MAX_ROUNDS, ToolLoop
from tool_relay.plan import build_plans, result_preferred_input
from tool_relay.provider import Provider
from tool_relay.providers.base import ProviderTransport
from tool_relay.stream import StreamResponse, StreamSession
from tool_relay.tools.executor import ToolExecutor
from tool_relay.types.chat import CallPlan, CallResult, TextRequest, TextResponse, Usage
from tool_relay.types.stream import StreamRequest

__all__ = ["Client"]


class Client:
    """
    Entry point for text generations, with or without tools.

    Provider transports are created on first use and reused for the life of
    the client; close the client (or use it as an async context manager) to
    release them.

    Args:
        config: Keys, endpoints, default models and tool executor defaults.
        transports: Pre-built transports per provider, used instead of
            creating them from *config*.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transports: Optional[Mapping[Provider, ProviderTransport]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._transports: dict[Provider, ProviderTransport] = dict(transports or {})

    def transport(self, provider: Provider) -> ProviderTransport:
        """Return the transport for *provider*, creating it on first use."""
        transport = self._transports.get(provider)
        if transport is None:
            transport = create_transport(provider, self.config, logger=self.logger)
            self._transports[provider] = transport
        return transport

    def _resolve_model(self, provider: Provider, model: str) -> str:
        resolved = model or self.config.default_model(provider)
        if not resolved:
            raise ValueError(f"no model given and no default model configured for {provider!s}")
        return resolved

    # --- text ------------------------------------------------------------------

    async def text(self, request: TextRequest) -> TextResponse:
        """
        Run *request* to completion according to its mode.

        Two-step requests run the proofreading plan first and feed its
        output into the main plan; usage is summed over both.

        Raises:
            ValueError: Invalid request or no model available.
            ToolRelayError: Engine failure, e.g. round limit or tool error.
            ProviderError: The provider call failed.
        """
        model = self._resolve_model(request.provider, request.model)
        plans = build_plans(request, model, self.config)

        usage = Usage()
        result: Optional[CallResult] = None
        for plan in plans:
            if result is not None:
                plan = plan.copy(input=result_preferred_input(result))
            result = await self._run_plan(plan)
            usage = usage + result.usage

        assert result is not None
        return TextResponse(
            provider=request.provider,
            model=model,
            mode=request.mode,
            text=result.text,
            json=result.json,
            usage=usage,
        )

    async def _run_plan(self, plan: CallPlan) -> CallResult:
        transport = self.transport(plan.provider)
        executor = ToolExecutor.from_plan(plan, logger=self.logger)
        loop = ToolLoop(
            transport,
            executor,
            max_rounds=plan.max_tool_rounds or DEFAULT_MAX_ROUNDS,
            logger=self.logger,
        )
        self._log(f"Running plan on {plan.provider!s} model {plan.model}", logging.DEBUG)
        try:
            return await loop.run(plan)
        except ToolRelayError:
            raise
        except Exception as exc:
            raise classify_error(exc, self.logger) from exc

    # --- stream ----------------------------------------------------------------

    async def stream(self, request: StreamRequest) -> StreamResponse:
        """
        Start a streaming generation and return its handle.

        Raises:
            ValueError: No model available.
        """
        model = self._resolve_model(request.provider, request.model)
        options = request.options
        plan = CallPlan(
            provider=request.provider,
            model=model,
            input=request.input,
            system=request.system,
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
            tools=list(request.tools),
            tool_handlers=dict(request.tool_handlers),
            max_tool_rounds=options.max_tool_rounds,
            stop_on_tool_error=options.stop_on_tool_error,
            tool_cache_ttl=self.config.tool_cache_ttl,
            tool_cache_max_size=self.config.tool_cache_max_size,
            tool_retry=self.config.tool_retry,
            include_usage=options.include_usage,
        )
        session = StreamSession(self.transport(plan.provider), plan, options, logger=self.logger)
        return session.start()

    # --- lifecycle -------------------------------------------------------------

    async def aclose(self) -> None:
        """Close every transport created or supplied so far."""
        transports = list(self._transports.values())
        self._transports.clear()
        for transport in transports:
            await transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.__class__.__name__}] {message}")
