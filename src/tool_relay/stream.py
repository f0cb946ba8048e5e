"""
Streaming sessions.

A `StreamSession` runs one provider stream as a background task and turns the
provider's deltas into `StreamEvent`s on a bounded channel. Tool calls found
in the stream are executed inline (serially, concurrently, or by waiting for
results submitted by the caller) and the conversation continues in a new
provider stream until the model stops asking for tools.

Usage::

    session = StreamSession(transport, plan, StreamOptions())
    async with session.start() as response:
        async for event in response:
            if event.type is StreamEventType.CHUNK:
                print(event.text, end="")
"""
from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from typing import Any, Optional, Self, Sequence

from tool_relay.errors import (
    NoPendingCallError,
    RetriesExhaustedError,
    ToolBatchError,
    ToolRelayError,
    ToolRoundLimitExceeded,
    classify_error,
)
from tool_relay.providers.base import ProviderTransport
from tool_relay.stream_utils import ToolCallAccumulator
from tool_relay.tools.executor import ToolExecutor
from tool_relay.types.chat import CallPlan, Usage
from tool_relay.types.round import ToolCallBatch
from tool_relay.types.stream import (
    StreamEvent,
    StreamEventType,
    StreamOptions,
    StreamToolCall,
    StreamToolResult,
    ToolExecutionMode,
)
from tool_relay.types.tool import ToolCallRequest, ToolCallResult

__all__ = ["EventChannel", "Rendezvous", "StreamSession", "StreamResponse"]


class EventChannel:
    """
    Bounded single-producer, single-consumer queue of stream events.

    `send` waits while the buffer is full. Once the channel is closed, sends
    are dropped and the consumer drains what is left, then stops. Must be
    used from the event loop that owns it.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._maxsize = max(1, maxsize)
        self._buffer: deque[StreamEvent] = deque()
        self._closed = False
        self._has_items = asyncio.Event()
        self._has_space = asyncio.Event()
        self._has_space.set()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._buffer)

    async def send(self, event: StreamEvent) -> bool:
        """Queue *event*. Returns False if the channel is (or becomes) closed."""
        while not self._closed and len(self._buffer) >= self._maxsize:
            self._has_space.clear()
            await self._has_space.wait()
        if self._closed:
            return False
        self._buffer.append(event)
        self._has_items.set()
        return True

    def close(self, *, discard_pending: bool = False) -> None:
        """Close the channel. Idempotent; *discard_pending* drops buffered events."""
        if discard_pending:
            self._buffer.clear()
        if self._closed:
            return
        self._closed = True
        self._has_items.set()
        self._has_space.set()

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> StreamEvent:
        while not self._buffer:
            if self._closed:
                raise StopAsyncIteration
            self._has_items.clear()
            await self._has_items.wait()
        event = self._buffer.popleft()
        self._has_space.set()
        return event


class Rendezvous:
    """Single-use hand-off of one tool result from the caller to the session."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._future: asyncio.Future[tuple[Any, Optional[BaseException]]] = loop.create_future()

    def resolve(self, result: Any, error: Optional[BaseException] = None) -> None:
        if not self._future.done():
            self._future.set_result((result, error))

    def abandon(self) -> None:
        if not self._future.done():
            self._future.cancel()

    async def wait(self) -> tuple[Any, Optional[BaseException]]:
        return await self._future


class StreamSession:
    """
    One streaming conversation, run as a single background task.

    Args:
        transport: Provider transport used for every round.
        plan: What to send; tools and handlers come from here too.
        options: Buffering, usage, pacing and tool execution settings.
        executor: Executor for tool calls. Built from *plan* when omitted.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        transport: ProviderTransport,
        plan: CallPlan,
        options: Optional[StreamOptions] = None,
        *,
        executor: Optional[ToolExecutor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.options = options or StreamOptions()
        self.transport = transport
        self.plan = plan.copy(include_usage=self.options.include_usage)
        self.executor = executor or ToolExecutor.from_plan(self.plan, logger=logger)
        self.logger = logger or logging.getLogger(__name__)

        self._channel = EventChannel(self.options.buffer_size)
        self._pending: dict[str, Rendezvous] = {}
        self._pending_lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._last_chunk_at: Optional[float] = None

    def start(self) -> "StreamResponse":
        """Launch the session on the running event loop."""
        if self._task is not None:
            raise RuntimeError("stream session already started")
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._run(), name=f"stream-{self.plan.provider}")
        return StreamResponse(self)

    # --- task body -----------------------------------------------------------

    async def _run(self) -> None:
        try:
            await self._converse()
        except asyncio.CancelledError:
            self._log("Stream cancelled", logging.DEBUG)
            self._channel.close(discard_pending=True)
            raise
        except Exception as exc:
            error = exc if isinstance(exc, ToolRelayError) else classify_error(exc, self.logger)
            self._log(f"Stream failed: {error}", logging.WARNING)
            await self._emit(StreamEventType.ERROR, error=error)
        finally:
            self._abandon_pending()
            self._channel.close()

    async def _converse(self) -> None:
        conversation = self.transport.start_conversation(self.plan)
        max_rounds = self.options.max_tool_rounds
        round_number = 0

        while True:
            round_number += 1
            if round_number > max_rounds:
                raise ToolRoundLimitExceeded(max_rounds)
            if not await self._stream_round(conversation):
                break

        await self._emit(StreamEventType.DONE, model=self.plan.model)

    async def _stream_round(self, conversation: list[Any]) -> bool:
        """Stream one provider round. Returns True if another round is needed."""
        accumulator = ToolCallAccumulator()
        executed: list[tuple[ToolCallRequest, ToolCallResult]] = []
        requested = False
        text_parts: list[str] = []
        usage: Optional[Usage] = None

        async for delta in self.transport.generate_stream(conversation, self.plan):
            if delta.text:
                text_parts.append(delta.text)
                await self._emit_chunk(delta.text)
            for fragment in delta.fragments:
                accumulator.add(fragment)
            if delta.tool_calls:
                requested = True
                executed.extend(await self._handle_calls(delta.tool_calls))
            if delta.tool_calls_done and accumulator:
                requested = True
                executed.extend(await self._handle_calls(accumulator.drain()))
            if delta.usage is not None:
                usage = delta.usage

        if accumulator:
            requested = True
            executed.extend(await self._handle_calls(accumulator.drain()))

        if usage is not None and self.options.include_usage:
            await self._emit(StreamEventType.USAGE, usage=usage)

        if not requested or not self.options.enable_tool_execution:
            return False

        batch = ToolCallBatch(
            calls=[call for call, _ in executed],
            text="".join(text_parts),
            usage=usage,
        )
        self.transport.append_tool_round(conversation, batch, [result for _, result in executed])
        return True

    # --- tool execution ------------------------------------------------------

    async def _handle_calls(
        self, calls: Sequence[ToolCallRequest]
    ) -> list[tuple[ToolCallRequest, ToolCallResult]]:
        if not self.options.enable_tool_execution:
            for call in calls:
                await self._emit_request(call)
            return []

        mode = self.options.tool_execution_mode
        if mode is ToolExecutionMode.PAUSE:
            return [await self._await_submitted(call) for call in calls]
        if mode is ToolExecutionMode.PARALLEL:
            results = await asyncio.gather(*(self._execute(call) for call in calls))
            pairs = list(zip(calls, results))
            for call, result in pairs:
                await self._emit_request(call)
                await self._emit_result(result)
            self._check_errors(pairs)
            return pairs

        pairs = []
        for call in calls:
            await self._emit_request(call)
            result = await self._execute(call)
            await self._emit_result(result)
            pairs.append((call, result))
            self._check_errors(pairs)
        return pairs

    async def _execute(self, call: ToolCallRequest) -> ToolCallResult:
        try:
            results = await self.executor.execute_batch([call])
        except ToolBatchError as exc:
            return exc.results[-1]
        return results[0]

    def _check_errors(self, pairs: Sequence[tuple[ToolCallRequest, ToolCallResult]]) -> None:
        stop = self.options.stop_on_tool_error
        for call, result in pairs:
            if result.error is None:
                continue
            # exhausted retries end the session regardless of stop_on_tool_error
            if stop or isinstance(result.error, RetriesExhaustedError):
                raise ToolBatchError(call.name, result.error, [r for _, r in pairs])

    async def _await_submitted(self, call: ToolCallRequest) -> tuple[ToolCallRequest, ToolCallResult]:
        assert self._loop is not None
        rendezvous = Rendezvous(self._loop)
        with self._pending_lock:
            self._pending[call.id] = rendezvous
        try:
            await self._emit_request(call)
            value, error = await rendezvous.wait()
        finally:
            with self._pending_lock:
                if self._pending.get(call.id) is rendezvous:
                    del self._pending[call.id]

        result = ToolCallResult(id=call.id, name=call.name, result=value, error=error)
        await self._emit_result(result)
        return call, result

    def submit(self, call_id: str, result: Any, error: Optional[BaseException] = None) -> None:
        with self._pending_lock:
            rendezvous = self._pending.pop(call_id, None)
        if rendezvous is None:
            raise NoPendingCallError(call_id)

        assert self._loop is not None
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            rendezvous.resolve(result, error)
        else:
            self._loop.call_soon_threadsafe(rendezvous.resolve, result, error)

    def _abandon_pending(self) -> None:
        with self._pending_lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for rendezvous in pending:
            rendezvous.abandon()

    # --- events --------------------------------------------------------------

    async def _emit(self, type_: StreamEventType, **fields: Any) -> None:
        event = StreamEvent(type=type_, provider=self.plan.provider, **fields)
        if not await self._channel.send(event):
            self._log(f"Dropped {type_.value} event on closed channel", logging.DEBUG)

    async def _emit_chunk(self, text: str) -> None:
        interval = self.options.flush_interval
        if interval > 0:
            assert self._loop is not None
            if self._last_chunk_at is not None:
                wait = self._last_chunk_at + interval - self._loop.time()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_chunk_at = self._loop.time()
        await self._emit(StreamEventType.CHUNK, text=text)

    async def _emit_request(self, call: ToolCallRequest) -> None:
        await self._emit(
            StreamEventType.TOOL_CALL_REQUEST,
            tool_call=StreamToolCall(
                id=call.id,
                name=call.name,
                arguments=call.arguments,
                arguments_raw=call.raw_arguments,
            ),
        )

    async def _emit_result(self, result: ToolCallResult) -> None:
        await self._emit(
            StreamEventType.TOOL_CALL_RESULT,
            tool_result=StreamToolResult(
                tool_call_id=result.id,
                name=result.name,
                result=result.result,
                error=result.error,
            ),
        )

    # --- control -------------------------------------------------------------

    def cancel(self) -> None:
        self._channel.close(discard_pending=True)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        # asyncio.wait does not re-raise the task's own cancellation
        await asyncio.wait({self._task})

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.__class__.__name__}] {message}")


class StreamResponse:
    """
    Caller handle for a running stream.

    Iterate it for events; the iteration ends when the session closes its
    channel (after DONE or ERROR, or on cancellation).
    """

    def __init__(self, session: StreamSession) -> None:
        self._session = session

    def __aiter__(self) -> EventChannel:
        return self._session._channel

    def cancel(self) -> None:
        """
        Stop the session. Events not yet consumed are discarded; must be
        called from the session's event loop.
        """
        self._session.cancel()

    def submit_tool_result(
        self, call_id: str, result: Any, error: Optional[BaseException] = None
    ) -> None:
        """
        Deliver the result for a call awaiting it in PAUSE mode.

        Safe to call from any thread.

        Raises:
            NoPendingCallError: *call_id* is unknown or already resolved.
        """
        self._session.submit(call_id, result, error)

    async def aclose(self) -> None:
        """Cancel the session if still running and wait for its task to end."""
        self._session.cancel()
        await self._session.wait_closed()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
