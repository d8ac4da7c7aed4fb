"""
Google Gemini provider.

Gemini streams whole content chunks rather than deltas: every
``functionCall`` part already carries complete arguments, and the stream has
no explicit done event, so the end of the document terminates it.
"""

import logging
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from pincer.providers.base import HTTPProvider
from pincer.providers.exceptions import StreamDecodeError, StreamError
from pincer.providers.models import (
    ChatEvent,
    ChatMessage,
    ChatRequest,
    MessageRole,
    ModelInfo,
    TokenEvent,
)
from pincer.providers.stream import StreamNormalizer

logger = logging.getLogger(__name__)

PROVIDER_NAME = "gemini"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash"

MODELS = [
    ModelInfo(id="gemini-2.0-flash", name="Gemini 2.0 Flash", max_context_tokens=1048576),
    ModelInfo(id="gemini-2.5-pro", name="Gemini 2.5 Pro", max_context_tokens=1048576),
]


# =============================================================================
# Wire models
# =============================================================================


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _FunctionCall(_Wire):
    id: str | None = None
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class _FunctionCallPart(_Wire):
    function_call: _FunctionCall = Field(alias="functionCall")


class _TextPart(_Wire):
    text: str


_PART: TypeAdapter[Any] = TypeAdapter(Union[_FunctionCallPart, _TextPart])


class _Content(_Wire):
    role: str | None = None
    parts: list[dict[str, Any]] = Field(default_factory=list)


class _Candidate(_Wire):
    content: _Content = Field(default_factory=_Content)


class _UsageMetadata(_Wire):
    prompt_token_count: int = Field(default=0, alias="promptTokenCount")
    candidates_token_count: int = Field(default=0, alias="candidatesTokenCount")


class _ErrorDetail(_Wire):
    code: int = 0
    message: str = ""
    status: str = ""


class _Response(_Wire):
    candidates: list[_Candidate] = Field(default_factory=list)
    usage_metadata: _UsageMetadata | None = Field(default=None, alias="usageMetadata")
    error: _ErrorDetail | None = None


# =============================================================================
# Normalizer
# =============================================================================


class GeminiNormalizer(StreamNormalizer):
    """Translate Gemini content chunks into ``ChatEvent``s."""

    def __init__(self) -> None:
        super().__init__(PROVIDER_NAME)
        self._calls = 0

    def handle(self, data: str) -> list[ChatEvent]:
        try:
            response = _Response.model_validate_json(data)
        except ValidationError:
            logger.debug(f"gemini: skipping unrecognized chunk: {data[:200]}")
            return []
        return self._translate(response)

    def replay(self, body: bytes) -> list[ChatEvent]:
        try:
            response = _Response.model_validate_json(body)
        except ValidationError as e:
            raise StreamDecodeError(f"gemini: decoding response: {e}", PROVIDER_NAME) from e
        return self._translate(response) + self.done()

    def _translate(self, response: _Response) -> list[ChatEvent]:
        if response.error is not None:
            error = response.error
            return self.fail(StreamError(f"gemini: {error.status or error.code}: {error.message}", PROVIDER_NAME))

        if response.usage_metadata is not None:
            self.usage.merge(
                response.usage_metadata.prompt_token_count,
                response.usage_metadata.candidates_token_count,
            )

        events: list[ChatEvent] = []
        for candidate in response.candidates:
            for raw in candidate.content.parts:
                try:
                    part = _PART.validate_python(raw)
                except ValidationError:
                    continue
                if isinstance(part, _TextPart):
                    if part.text:
                        events.append(TokenEvent(part.text))
                    continue
                call = part.function_call
                key = self._calls
                self._calls += 1
                self.start_tool_call(key, call.id or call.name, call.name, call.args)
                events.extend(self.stop_tool_call(key))
        return events


# =============================================================================
# Request building
# =============================================================================


def convert_message(message: ChatMessage, call_names: dict[str, str]) -> dict[str, Any]:
    """
    Convert a conversation message into a Gemini ``contents`` entry.

    Args:
        message: The message to convert.
        call_names: Tool call id to function name, for naming function responses.
    """
    role = "model" if message.role == MessageRole.ASSISTANT.value else "user"

    if message.tool_calls:
        parts: list[dict[str, Any]] = []
        if message.content:
            parts.append({"text": message.content})
        for call in message.tool_calls:
            parts.append({"functionCall": {"name": call.name, "args": call.input}})
        return {"role": role, "parts": parts}

    if message.tool_results:
        return {
            "role": role,
            "parts": [
                {
                    "functionResponse": {
                        "name": call_names.get(result.tool_call_id, result.tool_call_id),
                        "response": {"content": result.content},
                    }
                }
                for result in message.tool_results
            ],
        }

    return {"role": role, "parts": [{"text": message.content}]}


class GeminiProvider(HTTPProvider):
    """Provider for the Gemini ``generateContent`` API."""

    name = PROVIDER_NAME
    default_model = DEFAULT_MODEL

    def models(self) -> list[ModelInfo]:
        return list(MODELS)

    def endpoint(self, request: ChatRequest) -> str:
        base = (self.base_url or GEMINI_BASE_URL).rstrip("/")
        action = "streamGenerateContent?alt=sse" if request.stream else "generateContent"
        return f"{base}/models/{self.resolve_model(request)}:{action}"

    def headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key}

    def build_payload(self, request: ChatRequest) -> dict[str, Any]:
        call_names: dict[str, str] = {}
        contents: list[dict[str, Any]] = []
        for message in request.conversation():
            for call in message.tool_calls:
                call_names[call.id] = call.name
            contents.append(convert_message(message, call_names))

        generation_config: dict[str, Any] = {"maxOutputTokens": self.resolve_max_tokens(request)}
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature

        payload: dict[str, Any] = {"contents": contents, "generationConfig": generation_config}
        system = request.system_prompt()
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        if request.tools:
            payload["tools"] = [
                {
                    "functionDeclarations": [
                        {"name": t.name, "description": t.description, "parameters": t.input_schema}
                        for t in request.tools
                    ]
                }
            ]
        return payload

    def new_normalizer(self) -> StreamNormalizer:
        return GeminiNormalizer()
