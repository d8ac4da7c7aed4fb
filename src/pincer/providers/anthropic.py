"""
Anthropic Messages API provider.

Streams ``message_start`` / ``content_block_*`` / ``message_delta`` /
``message_stop`` server-sent events and reassembles ``tool_use`` blocks from
their ``input_json_delta`` fragments.
"""

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from pincer.providers.base import HTTPProvider
from pincer.providers.exceptions import StreamDecodeError, StreamError
from pincer.providers.models import (
    ChatEvent,
    ChatMessage,
    ChatRequest,
    DoneEvent,
    MessageRole,
    ModelInfo,
    TokenEvent,
    ToolCall,
    ToolCallEvent,
    Usage,
)
from pincer.providers.stream import StreamNormalizer

logger = logging.getLogger(__name__)

PROVIDER_NAME = "anthropic"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-sonnet-4-20250514"

MODELS = [
    ModelInfo(id="claude-sonnet-4-20250514", name="Claude Sonnet 4", max_context_tokens=200000),
    ModelInfo(id="claude-haiku-3-5-20241022", name="Claude 3.5 Haiku", max_context_tokens=200000),
    ModelInfo(id="claude-opus-4-20250514", name="Claude Opus 4", max_context_tokens=200000),
]


# =============================================================================
# Wire models
# =============================================================================


class _Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class _TextBlock(BaseModel):
    type: Literal["text"]
    text: str = ""


class _ToolUseBlock(BaseModel):
    type: Literal["tool_use"]
    id: str = ""
    name: str = ""
    input: dict[str, Any] = Field(default_factory=dict)


_ContentBlock = Annotated[Union[_TextBlock, _ToolUseBlock], Field(discriminator="type")]


class _TextDelta(BaseModel):
    type: Literal["text_delta"]
    text: str = ""


class _InputJSONDelta(BaseModel):
    type: Literal["input_json_delta"]
    partial_json: str = ""


_Delta = Annotated[Union[_TextDelta, _InputJSONDelta], Field(discriminator="type")]


class _MessageHeader(BaseModel):
    usage: _Usage = Field(default_factory=_Usage)


class _MessageStart(BaseModel):
    type: Literal["message_start"]
    message: _MessageHeader = Field(default_factory=_MessageHeader)


class _ContentBlockStart(BaseModel):
    type: Literal["content_block_start"]
    index: int
    content_block: _ContentBlock


class _ContentBlockDelta(BaseModel):
    type: Literal["content_block_delta"]
    index: int
    delta: _Delta


class _ContentBlockStop(BaseModel):
    type: Literal["content_block_stop"]
    index: int


class _MessageDelta(BaseModel):
    type: Literal["message_delta"]
    usage: _Usage = Field(default_factory=_Usage)


class _MessageStop(BaseModel):
    type: Literal["message_stop"]


class _Ping(BaseModel):
    type: Literal["ping"]


class _ErrorDetail(BaseModel):
    type: str = "error"
    message: str = ""


class _Error(BaseModel):
    type: Literal["error"]
    error: _ErrorDetail = Field(default_factory=_ErrorDetail)


_StreamEvent = Annotated[
    Union[
        _MessageStart,
        _ContentBlockStart,
        _ContentBlockDelta,
        _ContentBlockStop,
        _MessageDelta,
        _MessageStop,
        _Ping,
        _Error,
    ],
    Field(discriminator="type"),
]

_STREAM_EVENT: TypeAdapter[Any] = TypeAdapter(_StreamEvent)
_CONTENT_BLOCK: TypeAdapter[Any] = TypeAdapter(_ContentBlock)


class _FullResponse(BaseModel):
    content: list[dict[str, Any]] = Field(default_factory=list)
    usage: _Usage = Field(default_factory=_Usage)


# =============================================================================
# Normalizer
# =============================================================================


class AnthropicNormalizer(StreamNormalizer):
    """Translate Anthropic SSE events into ``ChatEvent``s."""

    def __init__(self) -> None:
        super().__init__(PROVIDER_NAME)

    def handle(self, data: str) -> list[ChatEvent]:
        try:
            event = _STREAM_EVENT.validate_json(data)
        except ValidationError:
            logger.debug(f"anthropic: skipping unrecognized event: {data[:200]}")
            return []

        if isinstance(event, _MessageStart):
            self.usage.merge(input_tokens=event.message.usage.input_tokens)
        elif isinstance(event, _ContentBlockStart):
            block = event.content_block
            if isinstance(block, _TextBlock):
                return [TokenEvent(block.text)] if block.text else []
            self.start_tool_call(event.index, block.id, block.name, block.input)
        elif isinstance(event, _ContentBlockDelta):
            delta = event.delta
            if isinstance(delta, _TextDelta):
                return [TokenEvent(delta.text)] if delta.text else []
            self.append_arguments(event.index, delta.partial_json)
        elif isinstance(event, _ContentBlockStop):
            return self.stop_tool_call(event.index)
        elif isinstance(event, _MessageDelta):
            self.usage.merge(event.usage.input_tokens, event.usage.output_tokens)
        elif isinstance(event, _MessageStop):
            return self.done()
        elif isinstance(event, _Error):
            detail = event.error
            return self.fail(StreamError(f"anthropic: {detail.type}: {detail.message}", PROVIDER_NAME))
        return []

    def replay(self, body: bytes) -> list[ChatEvent]:
        try:
            response = _FullResponse.model_validate_json(body)
        except ValidationError as e:
            raise StreamDecodeError(f"anthropic: decoding response: {e}", PROVIDER_NAME) from e

        events: list[ChatEvent] = []
        for raw in response.content:
            try:
                block = _CONTENT_BLOCK.validate_python(raw)
            except ValidationError:
                continue
            if isinstance(block, _TextBlock):
                if block.text:
                    events.append(TokenEvent(block.text))
            else:
                events.append(ToolCallEvent(ToolCall(id=block.id, name=block.name, input=block.input)))

        self._done = True
        events.append(DoneEvent(Usage(response.usage.input_tokens, response.usage.output_tokens)))
        return events


# =============================================================================
# Request building
# =============================================================================


def convert_message(message: ChatMessage) -> dict[str, Any]:
    """Convert a conversation message into an Anthropic ``messages`` entry."""
    if message.tool_calls:
        blocks: list[dict[str, Any]] = []
        if message.content:
            blocks.append({"type": "text", "text": message.content})
        for call in message.tool_calls:
            blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.input})
        return {"role": MessageRole.ASSISTANT.value, "content": blocks}

    if message.tool_results:
        return {
            "role": MessageRole.USER.value,
            "content": [
                {
                    "type": "tool_result",
                    "tool_use_id": result.tool_call_id,
                    "content": result.content,
                    "is_error": result.is_error,
                }
                for result in message.tool_results
            ],
        }

    return {"role": message.role, "content": message.content}


class AnthropicProvider(HTTPProvider):
    """Provider for the Anthropic Messages API."""

    name = PROVIDER_NAME
    default_model = DEFAULT_MODEL

    def models(self) -> list[ModelInfo]:
        return list(MODELS)

    def endpoint(self, request: ChatRequest) -> str:
        return self.base_url or ANTHROPIC_API_URL

    def headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_API_VERSION}

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.resolve_model(request),
            "max_tokens": self.resolve_max_tokens(request),
            "messages": [convert_message(m) for m in request.conversation()],
            "stream": request.stream,
        }
        system = request.system_prompt()
        if system:
            payload["system"] = system
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.tools:
            payload["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.input_schema}
                for t in request.tools
            ]
        return payload

    def new_normalizer(self) -> StreamNormalizer:
        return AnthropicNormalizer()
