"""
Round-trip loop controller.

Drives one conversation: send the conversation to the provider, get back a
`Round`, execute any requested tools, append the tool turn and repeat until
the model produces a final answer or the round limit is hit.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from tool_relay.errors import ToolRoundLimitExceeded
from tool_relay.providers.base import ProviderTransport
from tool_relay.stream_utils import collect_round
from tool_relay.tools.executor import ToolExecutor
from tool_relay.types.chat import CallPlan, CallResult, Usage
from tool_relay.types.round import FinalAnswer, Round

__all__ = ["ToolLoop", "DEFAULT_MAX_ROUNDS"]

DEFAULT_MAX_ROUNDS = 5


class ToolLoop:
    """
    Multi-round tool calling over one provider transport.

    The conversation is created fresh for every `run` and never shared, so
    one loop may run several plans one after another.

    Args:
        transport: Provider transport that produces rounds.
        executor: Executes the tool calls of each round.
        max_rounds: Maximum number of provider rounds per conversation.
        streamed: Obtain each round from the streaming endpoint and
            reassemble it, instead of the one-shot endpoint.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        transport: ProviderTransport,
        executor: ToolExecutor,
        *,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        streamed: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.transport = transport
        self.executor = executor
        self.max_rounds = max_rounds
        self.streamed = streamed
        self.logger = logger or logging.getLogger(__name__)

    async def run(self, plan: CallPlan) -> CallResult:
        """
        Drive *plan* to a final answer.

        Returns:
            The final text, parsed JSON for structured plans, summed usage
            and the number of provider rounds.

        Raises:
            ToolRoundLimitExceeded: The model still wanted tools after
                ``max_rounds`` rounds.
            ToolBatchError: A tool failed under stop-on-error.
            ProviderError: The transport failed.
        """
        conversation = self.transport.start_conversation(plan)
        usage = Usage()
        round_number = 0

        while True:
            round_number += 1
            if round_number > self.max_rounds:
                self._log(f"Round limit ({self.max_rounds}) reached", logging.WARNING)
                raise ToolRoundLimitExceeded(self.max_rounds)

            current = await self._next_round(conversation, plan)
            usage = usage + current.usage

            if isinstance(current, FinalAnswer):
                self._log(f"Final answer after {round_number} round(s)", logging.DEBUG)
                return CallResult(
                    text=current.text,
                    json=_parse_json(current.text) if plan.structured else None,
                    usage=usage,
                    rounds=round_number,
                )

            self._log(
                f"Round {round_number}: executing {len(current.calls)} tool call(s): "
                f"{', '.join(call.name for call in current.calls)}",
                logging.DEBUG,
            )
            results = await self.executor.execute_batch(current.calls)
            self.transport.append_tool_round(conversation, current, results)

    async def _next_round(self, conversation: list[Any], plan: CallPlan) -> Round:
        if self.streamed:
            return await collect_round(self.transport.generate_stream(conversation, plan))
        return await self.transport.generate(conversation, plan)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.__class__.__name__}] {message}")


def _parse_json(text: str) -> Optional[dict[str, Any]]:
    """Decode a structured answer; anything but a JSON object yields None."""
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return value if isinstance(value, dict) else None
