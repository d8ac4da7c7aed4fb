"""Tests for the Anthropic provider and stream normalizer."""

import json

import pytest

from pincer.providers.anthropic import (
    ANTHROPIC_API_URL,
    ANTHROPIC_API_VERSION,
    AnthropicNormalizer,
    AnthropicProvider,
    convert_message,
)
from pincer.providers.exceptions import (
    AuthenticationError,
    RateLimitError,
    ServerError,
    StreamDecodeError,
    StreamError,
)
from pincer.providers.models import (
    ChatMessage,
    ChatRequest,
    DoneEvent,
    ErrorEvent,
    TokenEvent,
    ToolCall,
    ToolCallEvent,
    ToolDefinition,
    ToolResult,
)


def _feed(normalizer: AnthropicNormalizer, *payloads: dict) -> list:
    events = []
    for payload in payloads:
        events.extend(normalizer.feed(f"data: {json.dumps(payload)}"))
    return events


MESSAGE_START = {"type": "message_start", "message": {"usage": {"input_tokens": 12}}}
TEXT_START = {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}}
TOOL_START = {
    "type": "content_block_start",
    "index": 1,
    "content_block": {"type": "tool_use", "id": "toolu_1", "name": "shell", "input": {}},
}
MESSAGE_DELTA = {"type": "message_delta", "delta": {"stop_reason": "tool_use"}, "usage": {"output_tokens": 7}}
MESSAGE_STOP = {"type": "message_stop"}


def _text_delta(index: int, text: str) -> dict:
    return {"type": "content_block_delta", "index": index, "delta": {"type": "text_delta", "text": text}}


def _json_delta(index: int, fragment: str) -> dict:
    return {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "input_json_delta", "partial_json": fragment},
    }


class TestAnthropicNormalizer:
    """Tests for AnthropicNormalizer."""

    def test_text_tokens_in_order(self):
        """Test text deltas become tokens in wire order."""
        events = _feed(
            AnthropicNormalizer(),
            MESSAGE_START,
            TEXT_START,
            _text_delta(0, "Hel"),
            _text_delta(0, "lo"),
            {"type": "content_block_stop", "index": 0},
            MESSAGE_STOP,
        )

        assert [e.text for e in events if isinstance(e, TokenEvent)] == ["Hel", "lo"]
        assert isinstance(events[-1], DoneEvent)

    def test_tool_call_reassembled(self):
        """Test start, two deltas and stop produce exactly one tool call."""
        events = _feed(
            AnthropicNormalizer(),
            MESSAGE_START,
            TOOL_START,
            _json_delta(1, '{"command": "l'),
            _json_delta(1, 's -la"}'),
            {"type": "content_block_stop", "index": 1},
            MESSAGE_DELTA,
            MESSAGE_STOP,
        )

        calls = [e.tool_call for e in events if isinstance(e, ToolCallEvent)]
        assert calls == [ToolCall(id="toolu_1", name="shell", input={"command": "ls -la"})]
        done = events[-1]
        assert isinstance(done, DoneEvent)
        assert done.usage.input_tokens == 12
        assert done.usage.output_tokens == 7

    def test_tool_call_without_arguments(self):
        """Test a tool call with no argument deltas has empty input."""
        events = _feed(AnthropicNormalizer(), TOOL_START, {"type": "content_block_stop", "index": 1}, MESSAGE_STOP)

        assert events[0].tool_call.input == {}

    def test_pending_call_flushed_on_message_stop(self):
        """Test a call never explicitly stopped is flushed before Done."""
        events = _feed(AnthropicNormalizer(), TOOL_START, _json_delta(1, '{"a": 1}'), MESSAGE_STOP)

        assert isinstance(events[0], ToolCallEvent)
        assert events[0].tool_call.input == {"a": 1}
        assert isinstance(events[1], DoneEvent)

    def test_non_object_arguments(self):
        """Test array arguments end the stream with a decode error."""
        events = _feed(
            AnthropicNormalizer(),
            TOOL_START,
            _json_delta(1, "[1, 2]"),
            {"type": "content_block_stop", "index": 1},
            MESSAGE_STOP,
        )

        assert len(events) == 1
        assert isinstance(events[0], ErrorEvent)
        assert isinstance(events[0].error, StreamDecodeError)

    def test_ping_and_unknown_ignored(self):
        """Test ping, unknown types and garbage yield nothing."""
        normalizer = AnthropicNormalizer()

        assert _feed(normalizer, {"type": "ping"}, {"type": "brand_new_event"}) == []
        assert normalizer.feed("data: {not json") == []
        assert normalizer.feed("event: ping") == []

    def test_error_event(self):
        """Test an error payload terminates the stream."""
        events = _feed(
            AnthropicNormalizer(),
            {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}},
        )

        assert isinstance(events[0], ErrorEvent)
        assert isinstance(events[0].error, StreamError)
        assert "Overloaded" in str(events[0].error)

    def test_replay_document(self):
        """Test a non-streaming response replays its blocks."""
        body = json.dumps(
            {
                "content": [
                    {"type": "text", "text": "Running it."},
                    {"type": "tool_use", "id": "toolu_2", "name": "shell", "input": {"command": "pwd"}},
                    {"type": "thinking", "thinking": "skipped"},
                ],
                "usage": {"input_tokens": 3, "output_tokens": 4},
            }
        ).encode()

        events = AnthropicNormalizer().replay(body)

        assert events[0] == TokenEvent("Running it.")
        assert events[1].tool_call == ToolCall(id="toolu_2", name="shell", input={"command": "pwd"})
        assert events[2].usage.total_tokens == 7

    def test_replay_invalid(self):
        """Test a malformed document raises."""
        with pytest.raises(StreamDecodeError):
            AnthropicNormalizer().replay(b"not json")


class TestConvertMessage:
    """Tests for Anthropic message conversion."""

    def test_tool_calls(self):
        """Test assistant tool calls become tool_use blocks."""
        msg = ChatMessage.assistant("ok", [ToolCall(id="t1", name="shell", input={"command": "ls"})])

        converted = convert_message(msg)

        assert converted["role"] == "assistant"
        assert converted["content"][0] == {"type": "text", "text": "ok"}
        assert converted["content"][1] == {
            "type": "tool_use",
            "id": "t1",
            "name": "shell",
            "input": {"command": "ls"},
        }

    def test_tool_results(self):
        """Test tool results become tool_result blocks."""
        msg = ChatMessage.from_tool_results([ToolResult(tool_call_id="t1", content="boom", is_error=True)])

        converted = convert_message(msg)

        assert converted["role"] == "user"
        assert converted["content"][0]["tool_use_id"] == "t1"
        assert converted["content"][0]["is_error"] is True


class TestAnthropicProvider:
    """End-to-end tests through a mock HTTP transport."""

    @pytest.mark.asyncio
    async def test_streaming_turn(self, transport_factory, sse):
        """Test a full streamed turn with text and a tool call."""
        transport = transport_factory(
            content=sse(
                MESSAGE_START,
                TEXT_START,
                _text_delta(0, "Let me check."),
                {"type": "content_block_stop", "index": 0},
                TOOL_START,
                _json_delta(1, '{"command":'),
                _json_delta(1, ' "ls"}'),
                {"type": "content_block_stop", "index": 1},
                MESSAGE_DELTA,
                MESSAGE_STOP,
            )
        )
        provider = AnthropicProvider(api_key="sk-test", client=transport.client())
        request = ChatRequest(
            messages=[ChatMessage.system("Be terse."), ChatMessage.user("list files")],
            system="You are Pincer.",
            tools=[ToolDefinition(name="shell", description="Run", input_schema={"type": "object"})],
        )

        stream = await provider.chat(request)
        response = await stream.collect()

        assert response.text == "Let me check."
        assert response.tool_calls == [ToolCall(id="toolu_1", name="shell", input={"command": "ls"})]
        assert response.usage.input_tokens == 12

        sent = transport.requests[0]
        assert str(sent.url) == ANTHROPIC_API_URL
        assert sent.headers["x-api-key"] == "sk-test"
        assert sent.headers["anthropic-version"] == ANTHROPIC_API_VERSION

        payload = transport.last_json
        assert payload["model"] == "claude-sonnet-4-20250514"
        assert payload["max_tokens"] == 4096
        assert payload["stream"] is True
        assert payload["system"] == "You are Pincer.\n\nBe terse."
        assert payload["messages"] == [{"role": "user", "content": "list files"}]
        assert payload["tools"][0]["input_schema"] == {"type": "object"}

    @pytest.mark.asyncio
    async def test_non_streaming_turn(self, transport_factory):
        """Test stream=False decodes the document once."""
        transport = transport_factory(
            content=json.dumps({"content": [{"type": "text", "text": "hi"}], "usage": {}}).encode(),
            headers={"content-type": "application/json"},
        )
        provider = AnthropicProvider(api_key="k", client=transport.client())

        stream = await provider.chat(ChatRequest(messages=[ChatMessage.user("hi")], stream=False, max_tokens=100))
        events = [e async for e in stream]

        assert events[0] == TokenEvent("hi")
        assert isinstance(events[-1], DoneEvent)
        assert transport.last_json["stream"] is False
        assert transport.last_json["max_tokens"] == 100

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error",
        [(401, AuthenticationError), (429, RateLimitError), (529, ServerError)],
    )
    async def test_error_status_raises(self, transport_factory, status, error):
        """Test non-success statuses raise before streaming with the body embedded."""
        transport = transport_factory(
            status_code=status,
            content=b'{"error": {"message": "nope"}}',
            headers={"content-type": "application/json"},
        )
        provider = AnthropicProvider(api_key="k", client=transport.client())

        with pytest.raises(error) as exc_info:
            await provider.chat(ChatRequest(messages=[ChatMessage.user("hi")]))

        assert "nope" in str(exc_info.value)
        assert str(status) in str(exc_info.value)

    def test_models(self):
        """Test the advertised model list includes the default."""
        provider = AnthropicProvider(api_key="k")

        assert provider.default_model in [m.id for m in provider.models()]
