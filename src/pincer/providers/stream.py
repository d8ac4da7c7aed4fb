"""
Event stream plumbing shared by all vendor normalizers.

A ``ChatStream`` is the bounded channel between the background task that owns
an HTTP response and the caller consuming events. A ``StreamNormalizer`` is the
per-vendor state machine that turns wire payloads into ``ChatEvent``s.
"""

import asyncio
import contextlib
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

import httpx

from pincer.providers.exceptions import (
    StreamCancelledError,
    StreamDecodeError,
    StreamError,
    StreamReadError,
)
from pincer.providers.models import (
    ChatEvent,
    ChatResponse,
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    ToolCall,
    ToolCallEvent,
    Usage,
)

logger = logging.getLogger(__name__)

# Large enough that bursty token output never stalls the producer on a live consumer.
EVENT_BUFFER_SIZE = 64

# Errors that mean the response body itself could not be read.
READ_ERRORS = (httpx.HTTPError, httpx.StreamError, OSError)


class CancelToken:
    """Caller-owned cancellation signal, polled by normalizers between lines."""

    def __init__(self) -> None:
        self._cancelled = False
        self._cause: BaseException | None = None

    def cancel(self, cause: BaseException | None = None) -> None:
        """Request cancellation. The first cause wins."""
        if self._cancelled:
            return
        self._cancelled = True
        self._cause = cause

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def cause(self) -> BaseException | None:
        return self._cause


class ChatStream:
    """
    Ordered, bounded stream of ``ChatEvent``s for one model turn.

    The producer side (``emit``) blocks while the buffer is full, which is the
    only backpressure mechanism. Exactly one terminal event is delivered;
    iteration stops right after it.
    """

    def __init__(self, provider: str, maxsize: int = EVENT_BUFFER_SIZE) -> None:
        self.provider = provider
        self._queue: asyncio.Queue[ChatEvent] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None
        self._terminated = False
        self._finished = False

    @property
    def terminated(self) -> bool:
        """Whether the producer has emitted its terminal event."""
        return self._terminated

    async def emit(self, event: ChatEvent) -> bool:
        """
        Queue an event for the consumer.

        Returns:
            False if the stream already ended and the event was dropped.
        """
        if self._terminated:
            logger.debug(f"{self.provider}: dropping {type(event).__name__} after terminal event")
            return False
        if event.terminal:
            self._terminated = True
        await self._queue.put(event)
        return True

    def start(self, producer: Coroutine[Any, Any, None]) -> None:
        """Run the producer as a background task."""
        self._task = asyncio.create_task(self._run(producer))

    async def _run(self, producer: Coroutine[Any, Any, None]) -> None:
        try:
            await producer
        except Exception as e:
            logger.error(f"{self.provider}: stream producer failed: {e}", exc_info=True)
            await self.emit(ErrorEvent(StreamError(f"{self.provider}: {e}", self.provider)))
        if not self._terminated:
            await self.emit(
                ErrorEvent(StreamError(f"{self.provider}: stream ended without a terminal event", self.provider))
            )

    def __aiter__(self) -> AsyncIterator[ChatEvent]:
        return self

    async def __anext__(self) -> ChatEvent:
        if self._finished:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event.terminal:
            self._finished = True
        return event

    async def aclose(self) -> None:
        """Stop consuming; cancels the producer, which closes the response."""
        self._finished = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def collect(self) -> ChatResponse:
        """
        Drain the stream into a single response.

        Raises:
            The error carried by the terminal ErrorEvent.
        """
        text: list[str] = []
        calls: list[ToolCall] = []
        usage = Usage()
        async for event in self:
            if isinstance(event, TokenEvent):
                text.append(event.text)
            elif isinstance(event, ToolCallEvent):
                calls.append(event.tool_call)
            elif isinstance(event, DoneEvent):
                usage = event.usage
            elif isinstance(event, ErrorEvent):
                raise event.error
        return ChatResponse(text="".join(text), tool_calls=calls, usage=usage)


@dataclass
class PendingToolCall:
    """A tool call whose arguments are still arriving."""

    id: str = ""
    name: str = ""
    fragments: list[str] = field(default_factory=list)
    initial_input: dict[str, Any] | None = None

    def update(self, id: str | None = None, name: str | None = None) -> None:
        """Fill in id/name when the vendor repeats or delays them; never overwrite."""
        if id and not self.id:
            self.id = id
        if name and not self.name:
            self.name = name

    def finish(self, provider: str) -> ToolCall:
        """
        Parse the accumulated argument text.

        Raises:
            StreamDecodeError: If the arguments are not a JSON object.
        """
        text = "".join(self.fragments)
        if not text.strip():
            return ToolCall(id=self.id, name=self.name, input=dict(self.initial_input or {}))
        try:
            arguments = json.loads(text)
        except json.JSONDecodeError as e:
            raise StreamDecodeError(
                f"{provider}: invalid arguments for tool call {self.name!r}: {e}", provider
            ) from e
        if not isinstance(arguments, dict):
            raise StreamDecodeError(
                f"{provider}: arguments for tool call {self.name!r} are not a JSON object", provider
            )
        return ToolCall(id=self.id, name=self.name, input=arguments)


def sse_data(line: str) -> str | None:
    """Return the payload of an SSE ``data:`` line, or None for any other line."""
    line = line.rstrip("\r\n")
    if not line.startswith("data:"):
        return None
    data = line[len("data:"):]
    if data.startswith(" "):
        data = data[1:]
    return data


class StreamNormalizer(ABC):
    """
    Per-vendor translator from wire payloads to ``ChatEvent``s.

    Subclasses decode one SSE data payload in ``handle`` and use the helpers
    below for tool-call reassembly and termination. A normalizer is used for
    exactly one response.
    """

    def __init__(self, provider: str) -> None:
        self.provider = provider
        self.usage = Usage()
        self._pending: dict[Any, PendingToolCall] = {}
        self._done = False

    def feed(self, line: str) -> list[ChatEvent]:
        """Consume one line of the response body."""
        if self._done:
            return []
        data = sse_data(line)
        if data is None or not data.strip():
            return []
        return self.handle(data)

    @abstractmethod
    def handle(self, data: str) -> list[ChatEvent]:
        """Translate one SSE data payload. Malformed payloads yield no events."""

    @abstractmethod
    def replay(self, body: bytes) -> list[ChatEvent]:
        """
        Translate a complete non-streaming response document.

        Raises:
            StreamDecodeError: If the document cannot be decoded.
        """

    def finish(self) -> list[ChatEvent]:
        """End of document: terminate if the vendor never signalled done."""
        return self.done()

    # -------------------------------------------------------------------------
    # Helpers for subclasses
    # -------------------------------------------------------------------------

    def start_tool_call(
        self,
        key: Any,
        id: str | None,
        name: str | None,
        initial_input: dict[str, Any] | None = None,
    ) -> None:
        pending = PendingToolCall(initial_input=initial_input or None)
        pending.update(id, name)
        self._pending[key] = pending

    def append_arguments(
        self,
        key: Any,
        fragment: str | None,
        id: str | None = None,
        name: str | None = None,
    ) -> None:
        pending = self._pending.get(key)
        if pending is None:
            pending = self._pending[key] = PendingToolCall()
        pending.update(id, name)
        if fragment:
            pending.fragments.append(fragment)

    def stop_tool_call(self, key: Any) -> list[ChatEvent]:
        pending = self._pending.pop(key, None)
        if pending is None:
            return []
        try:
            return [ToolCallEvent(pending.finish(self.provider))]
        except StreamDecodeError as e:
            self._done = True
            return [ErrorEvent(e)]

    def stop_matching(self, predicate: Callable[[Any], bool]) -> list[ChatEvent]:
        """Finalize every pending call whose key matches, in key order."""
        events: list[ChatEvent] = []
        for key in sorted(k for k in self._pending if predicate(k)):
            events.extend(self.stop_tool_call(key))
            if self._done:
                break
        return events

    def done(self) -> list[ChatEvent]:
        """Flush pending calls and emit the single DoneEvent."""
        if self._done:
            return []
        events = self.stop_matching(lambda _key: True)
        if self._done:
            return events
        self._done = True
        events.append(DoneEvent(Usage(self.usage.input_tokens, self.usage.output_tokens)))
        return events

    def fail(self, error: Exception) -> list[ChatEvent]:
        """Terminate with an error."""
        if self._done:
            return []
        self._done = True
        return [ErrorEvent(error)]


async def pump_lines(
    stream: ChatStream,
    lines: AsyncIterator[str],
    normalizer: StreamNormalizer,
    cancel: CancelToken | None = None,
) -> None:
    """Feed a line-oriented body through a normalizer into a stream."""
    provider = normalizer.provider
    try:
        async for line in lines:
            if cancel is not None and cancel.cancelled:
                await stream.emit(
                    ErrorEvent(StreamCancelledError(f"{provider}: stream cancelled", provider, cancel.cause))
                )
                return
            for event in normalizer.feed(line):
                await stream.emit(event)
            if stream.terminated:
                return
    except READ_ERRORS as e:
        logger.warning(f"{provider}: reading stream failed: {e}")
        await stream.emit(ErrorEvent(StreamReadError(f"{provider}: reading stream: {e}", provider)))
        return

    for event in normalizer.finish():
        await stream.emit(event)


async def pump_document(
    stream: ChatStream,
    read_body: Callable[[], Awaitable[bytes]],
    normalizer: StreamNormalizer,
    cancel: CancelToken | None = None,
) -> None:
    """Decode a complete response document once and replay it into a stream."""
    provider = normalizer.provider
    try:
        body = await read_body()
    except READ_ERRORS as e:
        await stream.emit(ErrorEvent(StreamReadError(f"{provider}: reading response: {e}", provider)))
        return

    if cancel is not None and cancel.cancelled:
        await stream.emit(
            ErrorEvent(StreamCancelledError(f"{provider}: stream cancelled", provider, cancel.cause))
        )
        return

    try:
        events = normalizer.replay(body)
    except StreamDecodeError as e:
        await stream.emit(ErrorEvent(e))
        return

    for event in events:
        await stream.emit(event)
