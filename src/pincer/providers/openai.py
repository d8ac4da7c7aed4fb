"""
OpenAI Chat Completions provider.

Also the protocol used by OpenAI-compatible servers (see ``ollama``). Tool
call deltas are keyed by ``(choice index, tool call index)`` and finalized when
their choice reports a ``finish_reason``.
"""

import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from pincer.providers.base import HTTPProvider
from pincer.providers.exceptions import StreamDecodeError, StreamError
from pincer.providers.models import (
    ChatEvent,
    ChatMessage,
    ChatRequest,
    DoneEvent,
    ErrorEvent,
    MessageRole,
    ModelInfo,
    TokenEvent,
    ToolCallEvent,
    Usage,
)
from pincer.providers.stream import PendingToolCall, StreamNormalizer

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openai"
OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o"
DONE_SENTINEL = "[DONE]"

MODELS = [
    ModelInfo(id="gpt-4o", name="GPT-4o", max_context_tokens=128000),
    ModelInfo(id="gpt-4o-mini", name="GPT-4o Mini", max_context_tokens=128000),
    ModelInfo(id="o3-mini", name="o3-mini", max_context_tokens=200000),
]


# =============================================================================
# Wire models
# =============================================================================


class _Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0


class _FunctionDelta(BaseModel):
    name: str | None = None
    arguments: str | None = None


class _ToolCallDelta(BaseModel):
    index: int = 0
    id: str | None = None
    function: _FunctionDelta = Field(default_factory=_FunctionDelta)


class _Delta(BaseModel):
    content: str | None = None
    tool_calls: list[_ToolCallDelta] | None = None


class _StreamChoice(BaseModel):
    index: int = 0
    delta: _Delta = Field(default_factory=_Delta)
    finish_reason: str | None = None


class _ErrorDetail(BaseModel):
    message: str = ""
    type: str | None = None


class _StreamChunk(BaseModel):
    choices: list[_StreamChoice] = Field(default_factory=list)
    usage: _Usage | None = None
    error: _ErrorDetail | None = None


class _Function(BaseModel):
    name: str = ""
    arguments: str = ""


class _ToolCall(BaseModel):
    id: str = ""
    function: _Function = Field(default_factory=_Function)


class _Message(BaseModel):
    content: str | None = None
    tool_calls: list[_ToolCall] | None = None


class _Choice(BaseModel):
    index: int = 0
    message: _Message = Field(default_factory=_Message)


class _FullResponse(BaseModel):
    choices: list[_Choice] = Field(default_factory=list)
    usage: _Usage | None = None


# =============================================================================
# Normalizer
# =============================================================================


class OpenAINormalizer(StreamNormalizer):
    """Translate OpenAI-style chunks into ``ChatEvent``s."""

    def __init__(self, provider: str = PROVIDER_NAME) -> None:
        super().__init__(provider)

    def handle(self, data: str) -> list[ChatEvent]:
        if data.strip() == DONE_SENTINEL:
            return self.done()

        try:
            chunk = _StreamChunk.model_validate_json(data)
        except ValidationError:
            logger.debug(f"{self.provider}: skipping unrecognized chunk: {data[:200]}")
            return []

        if chunk.error is not None:
            return self.fail(StreamError(f"{self.provider}: {chunk.error.message}", self.provider))

        if chunk.usage is not None:
            self.usage.merge(chunk.usage.prompt_tokens, chunk.usage.completion_tokens)

        events: list[ChatEvent] = []
        for choice in chunk.choices:
            if choice.delta.content:
                events.append(TokenEvent(choice.delta.content))
            for delta in choice.delta.tool_calls or []:
                self.append_arguments(
                    (choice.index, delta.index),
                    delta.function.arguments,
                    id=delta.id,
                    name=delta.function.name,
                )
            if choice.finish_reason:
                events.extend(self.stop_matching(lambda key, i=choice.index: key[0] == i))
                if self._done:
                    break
        return events

    def replay(self, body: bytes) -> list[ChatEvent]:
        try:
            response = _FullResponse.model_validate_json(body)
        except ValidationError as e:
            raise StreamDecodeError(f"{self.provider}: decoding response: {e}", self.provider) from e

        events: list[ChatEvent] = []
        for choice in response.choices:
            if choice.message.content:
                events.append(TokenEvent(choice.message.content))
            for call in choice.message.tool_calls or []:
                pending = PendingToolCall(id=call.id, name=call.function.name, fragments=[call.function.arguments])
                try:
                    events.append(ToolCallEvent(pending.finish(self.provider)))
                except StreamDecodeError as e:
                    self._done = True
                    events.append(ErrorEvent(e))
                    return events

        if response.usage is not None:
            self.usage.merge(response.usage.prompt_tokens, response.usage.completion_tokens)
        self._done = True
        events.append(DoneEvent(Usage(self.usage.input_tokens, self.usage.output_tokens)))
        return events


# =============================================================================
# Request building
# =============================================================================


def convert_message(message: ChatMessage) -> list[dict[str, Any]]:
    """
    Convert a conversation message into OpenAI ``messages`` entries.

    Tool results expand into one ``tool`` role message per result.
    """
    if message.tool_calls:
        return [
            {
                "role": MessageRole.ASSISTANT.value,
                "content": message.content or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.input)},
                    }
                    for call in message.tool_calls
                ],
            }
        ]

    if message.tool_results:
        return [
            {"role": "tool", "tool_call_id": result.tool_call_id, "content": result.content}
            for result in message.tool_results
        ]

    return [{"role": message.role, "content": message.content}]


class OpenAIProvider(HTTPProvider):
    """Provider for the OpenAI Chat Completions API and compatible servers."""

    name = PROVIDER_NAME
    default_model = DEFAULT_MODEL

    def __init__(
        self,
        api_key: str = "",
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        name: str | None = None,
        default_model: str | None = None,
        models: list[ModelInfo] | None = None,
    ):
        """
        Initialize the provider.

        Args:
            api_key: Bearer token.
            base_url: Full chat completions URL; defaults to api.openai.com.
            client: Optional ``httpx.AsyncClient``.
            name: Provider name override, used by compatible servers.
            default_model: Default model override.
            models: Advertised model list override.
        """
        super().__init__(api_key=api_key, base_url=base_url, client=client)
        if name:
            self.name = name
        if default_model:
            self.default_model = default_model
        self._models = models

    def models(self) -> list[ModelInfo]:
        return list(self._models if self._models is not None else MODELS)

    def endpoint(self, request: ChatRequest) -> str:
        return self.base_url or OPENAI_API_URL

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        messages: list[dict[str, Any]] = []
        system = request.system_prompt()
        if system:
            messages.append({"role": MessageRole.SYSTEM.value, "content": system})
        for message in request.conversation():
            messages.extend(convert_message(message))

        payload: dict[str, Any] = {
            "model": self.resolve_model(request),
            "messages": messages,
            "max_tokens": self.resolve_max_tokens(request),
            "stream": request.stream,
        }
        if request.stream:
            payload["stream_options"] = {"include_usage": True}
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.input_schema,
                    },
                }
                for t in request.tools
            ]
        return payload

    def new_normalizer(self) -> StreamNormalizer:
        return OpenAINormalizer(self.name)
