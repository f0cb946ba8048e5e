"""
Batch execution of tool calls.

Each call goes through validation, the result cache and the (optionally
retry-wrapped) handler. A batch runs either serially, in request order, or
fans out concurrently; results always line up with the requests by index.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from tool_relay.errors import (
    NoHandlerError,
    RetriesExhaustedError,
    ToolBatchError,
    ToolValidationError,
)
from tool_relay.tools.cache import ToolCache
from tool_relay.tools.retry import RetryConfig, call_handler, retryable_handler
from tool_relay.tools.validator import ToolValidator
from tool_relay.types.chat import CallPlan
from tool_relay.types.tool import ToolCallRequest, ToolCallResult, ToolHandler

__all__ = ["ToolExecutor", "ExecutorMetrics"]


@dataclass(frozen=True, slots=True)
class ExecutorMetrics:
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    cached_calls: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    cache_hit_rate: float = 0.0
    success_rate: float = 0.0


class ToolExecutor:
    """
    Runs batches of tool calls for one conversation or stream session.

    The executor owns its cache and metrics; share an instance only between
    calls that should share cached results.

    Args:
        handlers: Tool name to handler mapping.
        parallel: Run all calls of a batch concurrently.
        stop_on_error: Abort the batch with ToolBatchError on the first failure.
        validator: Validates arguments before execution.
        cache: Memoises outcomes per (name, arguments).
        retry: Wraps every handler with retry/backoff.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        handlers: Mapping[str, ToolHandler],
        *,
        parallel: bool = False,
        stop_on_error: bool = True,
        validator: Optional[ToolValidator] = None,
        cache: Optional[ToolCache] = None,
        retry: Optional[RetryConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.parallel = parallel
        self.stop_on_error = stop_on_error
        self.validator = validator
        self.cache = cache
        self.retry = retry
        self.logger = logger or logging.getLogger(__name__)

        if retry is not None:
            self._handlers = {
                name: retryable_handler(handler, retry, name=name)
                for name, handler in handlers.items()
            }
        else:
            self._handlers = dict(handlers)

        self._metrics_lock = threading.Lock()
        self._total_calls = 0
        self._successful_calls = 0
        self._failed_calls = 0
        self._cached_calls = 0

    @classmethod
    def from_plan(
        cls,
        plan: CallPlan,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> "ToolExecutor":
        """Build an executor with the plan's tools, handlers and overrides."""
        cache = None
        if plan.tool_cache_ttl > 0 and plan.tool_cache_max_size > 0:
            cache = ToolCache(plan.tool_cache_ttl, plan.tool_cache_max_size)

        return cls(
            plan.tool_handlers,
            parallel=bool(plan.parallel_tools),
            stop_on_error=True if plan.stop_on_tool_error is None else plan.stop_on_tool_error,
            validator=ToolValidator(plan.tools) if plan.tools else None,
            cache=cache,
            retry=plan.tool_retry,
            logger=logger,
        )

    # --- execution -----------------------------------------------------------

    async def execute_batch(self, calls: Sequence[ToolCallRequest]) -> list[ToolCallResult]:
        """
        Execute *calls* and return one result per call, in request order.

        Raises:
            ToolBatchError: A call failed and ``stop_on_error`` is set, or a
                call exhausted its retries, which aborts the batch whatever
                ``stop_on_error`` says. Serial batches stop after the failing
                call; parallel batches report the error once every call has
                finished.
        """
        if not calls:
            return []

        with self._metrics_lock:
            self._total_calls += len(calls)

        if self.parallel:
            return await self._execute_parallel(calls)
        return await self._execute_serial(calls)

    async def _execute_serial(self, calls: Sequence[ToolCallRequest]) -> list[ToolCallResult]:
        results: list[ToolCallResult] = []

        for call in calls:
            result = await self._execute_call(call)
            results.append(result)
            self._record(result)

            if result.error is not None and (self.stop_on_error or _is_fatal(result.error)):
                raise ToolBatchError(call.name, result.error, results)

        return results

    async def _execute_parallel(self, calls: Sequence[ToolCallRequest]) -> list[ToolCallResult]:
        slots: list[Optional[ToolCallResult]] = [None] * len(calls)
        errors: list[tuple[str, BaseException]] = []

        async def worker(index: int, call: ToolCallRequest) -> None:
            result = await self._execute_call(call)
            slots[index] = result
            self._record(result)
            if result.error is not None:
                errors.append((call.name, result.error))

        await asyncio.gather(*(worker(i, call) for i, call in enumerate(calls)))
        results = [slot for slot in slots if slot is not None]

        if self.stop_on_error and errors:
            name, error = errors[0]
            raise ToolBatchError(name, error, results)
        for name, error in errors:
            if _is_fatal(error):
                raise ToolBatchError(name, error, results)
        return results

    async def _execute_call(self, call: ToolCallRequest) -> ToolCallResult:
        # 1. Validate arguments
        if self.validator is not None:
            try:
                self.validator.validate(call.name, call.arguments)
            except ToolValidationError as exc:
                self._log(f"Rejected call {call.name!r}: {exc}", logging.WARNING)
                return ToolCallResult(id=call.id, name=call.name, error=exc)

        # 2. Serve from cache
        if self.cache is not None:
            result, error, found = self.cache.get(call.name, call.arguments)
            if found:
                with self._metrics_lock:
                    self._cached_calls += 1
                return ToolCallResult(
                    id=call.id, name=call.name, result=result, error=error, cached=True
                )

        # 3. Execute handler
        handler = self._handlers.get(call.name)
        if handler is None:
            return ToolCallResult(id=call.id, name=call.name, error=NoHandlerError(call.name))

        try:
            value = await call_handler(handler, call.arguments)
            outcome = ToolCallResult(id=call.id, name=call.name, result=value)
        except Exception as exc:
            self._log(f"Tool {call.name!r} failed: {exc}", logging.WARNING)
            outcome = ToolCallResult(id=call.id, name=call.name, error=exc)

        # 4. Store the outcome; exhausted retries are not memoised
        if self.cache is not None and not _is_fatal(outcome.error):
            self.cache.set(call.name, call.arguments, outcome.result, outcome.error)

        return outcome

    # --- metrics -------------------------------------------------------------

    def _record(self, result: ToolCallResult) -> None:
        with self._metrics_lock:
            if result.error is None:
                self._successful_calls += 1
            else:
                self._failed_calls += 1

    def metrics(self) -> ExecutorMetrics:
        """Snapshot of the execution statistics."""
        with self._metrics_lock:
            total = self._total_calls
            successful = self._successful_calls
            failed = self._failed_calls
            cached = self._cached_calls

        hits = misses = 0
        hit_rate = 0.0
        if self.cache is not None:
            hits, misses = self.cache.stats()
            if hits + misses > 0:
                hit_rate = hits / (hits + misses)

        return ExecutorMetrics(
            total_calls=total,
            successful_calls=successful,
            failed_calls=failed,
            cached_calls=cached,
            cache_hits=hits,
            cache_misses=misses,
            cache_hit_rate=hit_rate,
            success_rate=successful / total if total else 0.0,
        )

    def reset_metrics(self) -> None:
        """Zero the call counters. Not meant to run alongside a batch."""
        with self._metrics_lock:
            self._total_calls = 0
            self._successful_calls = 0
            self._failed_calls = 0
            self._cached_calls = 0

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.__class__.__name__}] {message}")


def _is_fatal(error: Optional[BaseException]) -> bool:
    """Errors that end the enclosing operation even without stop-on-error."""
    return isinstance(error, RetriesExhaustedError)
