"""Retry with exponential backoff for tool handlers."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Final, Optional

from tool_relay.errors import NonRetryableError, RetriesExhaustedError
from tool_relay.types.tool import ToolHandler

__all__ = [
    "RetryConfig",
    "DEFAULT_RETRY_CONFIG",
    "retryable_handler",
    "is_retryable",
    "calculate_backoff",
    "call_handler",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Retry behaviour for tool execution. Delays are in seconds."""

    max_attempts: int = 3
    initial_backoff: float = 0.1
    max_backoff: float = 10.0
    backoff_multiplier: float = 2.0
    # Exception types that trigger a retry. Empty means timeouts only.
    retryable_errors: tuple[type[BaseException], ...] = ()


DEFAULT_RETRY_CONFIG: Final[RetryConfig] = RetryConfig()


def _is_async(handler: ToolHandler) -> bool:
    return inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
        getattr(handler, "__call__", None)
    )


async def call_handler(handler: ToolHandler, arguments: dict[str, Any]) -> Any:
    """
    Invoke a handler, awaiting its result when it returns an awaitable.

    Sync handlers run in a worker thread so they do not block the event loop.
    Cancelling the caller stops waiting for them but cannot interrupt the
    thread itself.
    """
    if _is_async(handler):
        return await handler(arguments)
    result = await asyncio.to_thread(handler, arguments)
    if inspect.isawaitable(result):
        result = await result
    return result


def is_retryable(error: BaseException, retryable_errors: tuple[type[BaseException], ...]) -> bool:
    if not retryable_errors:
        return isinstance(error, TimeoutError)
    return isinstance(error, retryable_errors)


def calculate_backoff(attempt: int, config: RetryConfig) -> float:
    """Delay before the retry that follows *attempt* (zero based)."""
    backoff = config.initial_backoff * (config.backoff_multiplier ** attempt)
    return min(backoff, config.max_backoff)


def retryable_handler(
    handler: ToolHandler,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    *,
    name: Optional[str] = None,
) -> ToolHandler:
    """
    Wrap *handler* so retryable failures are retried with backoff.

    Args:
        handler: The tool handler to wrap.
        config: Attempt limit, backoff curve and retryable exception types.
        name: Tool name used in log messages.

    Returns:
        An async handler that raises NonRetryableError for failures outside
        the retryable set and RetriesExhaustedError once every attempt failed.
        Cancelling the calling task interrupts a pending backoff sleep.
    """
    label = name or getattr(handler, "__name__", "tool")

    @functools.wraps(handler)
    async def wrapper(arguments: dict[str, Any]) -> Any:
        attempts = max(1, config.max_attempts)
        last_error: Optional[BaseException] = None

        for attempt in range(attempts):
            try:
                return await call_handler(handler, arguments)
            except Exception as exc:
                last_error = exc

            if not is_retryable(last_error, config.retryable_errors):
                raise NonRetryableError(last_error)

            if attempt < attempts - 1:
                delay = calculate_backoff(attempt, config)
                logger.debug(
                    "Retrying %s after %s (attempt %d/%d, sleeping %.3fs)",
                    label, type(last_error).__name__, attempt + 1, attempts, delay,
                )
                await asyncio.sleep(delay)

        assert last_error is not None
        raise RetriesExhaustedError(attempts, last_error)

    return wrapper
