"""Tests for the OpenAI and Ollama providers."""

import json

import pytest

from pincer.providers.exceptions import InvalidRequestError, RateLimitError, StreamDecodeError, StreamError
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
from pincer.providers.ollama import OLLAMA_DEFAULT_URL, OllamaProvider
from pincer.providers.openai import OPENAI_API_URL, OpenAINormalizer, OpenAIProvider, convert_message


def _chunk(content=None, tool_calls=None, finish_reason=None, index=0) -> dict:
    delta = {}
    if content is not None:
        delta["content"] = content
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    return {"choices": [{"index": index, "delta": delta, "finish_reason": finish_reason}]}


def _call_delta(index, arguments, id=None, name=None) -> dict:
    function = {"arguments": arguments}
    if name:
        function["name"] = name
    delta = {"index": index, "function": function}
    if id:
        delta["id"] = id
    return delta


def _feed(normalizer: OpenAINormalizer, *payloads) -> list:
    events = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        events.extend(normalizer.feed(f"data: {data}"))
    return events


USAGE_CHUNK = {"choices": [], "usage": {"prompt_tokens": 20, "completion_tokens": 9}}


class TestOpenAINormalizer:
    """Tests for OpenAINormalizer."""

    def test_text_then_done(self):
        """Test content deltas stream as tokens and [DONE] terminates."""
        events = _feed(
            OpenAINormalizer(),
            _chunk(content="Hi"),
            _chunk(content=""),
            _chunk(content=" there"),
            _chunk(finish_reason="stop"),
            USAGE_CHUNK,
            "[DONE]",
        )

        assert [e.text for e in events if isinstance(e, TokenEvent)] == ["Hi", " there"]
        assert isinstance(events[-1], DoneEvent)
        assert events[-1].usage.input_tokens == 20
        assert events[-1].usage.output_tokens == 9

    def test_parallel_tool_calls_by_index(self):
        """Test interleaved deltas are reassembled per tool call index."""
        events = _feed(
            OpenAINormalizer(),
            _chunk(tool_calls=[_call_delta(0, "", id="call_a", name="shell")]),
            _chunk(tool_calls=[_call_delta(1, '{"path": ', id="call_b", name="file_read")]),
            _chunk(tool_calls=[_call_delta(0, '{"command": "ls"}')]),
            _chunk(tool_calls=[_call_delta(1, '"/tmp/x"}')]),
            _chunk(finish_reason="tool_calls"),
            "[DONE]",
        )

        calls = [e.tool_call for e in events if isinstance(e, ToolCallEvent)]
        assert calls == [
            ToolCall(id="call_a", name="shell", input={"command": "ls"}),
            ToolCall(id="call_b", name="file_read", input={"path": "/tmp/x"}),
        ]
        assert isinstance(events[-1], DoneEvent)

    def test_calls_flushed_on_done_without_finish_reason(self):
        """Test [DONE] flushes calls whose choice never finished."""
        events = _feed(
            OpenAINormalizer(),
            _chunk(tool_calls=[_call_delta(0, "{}", id="c", name="shell")]),
            "[DONE]",
        )

        assert isinstance(events[0], ToolCallEvent)
        assert isinstance(events[1], DoneEvent)

    def test_invalid_arguments(self):
        """Test malformed arguments end the stream with a decode error."""
        events = _feed(
            OpenAINormalizer(),
            _chunk(tool_calls=[_call_delta(0, '{"command": ', id="c", name="shell")]),
            _chunk(finish_reason="tool_calls"),
            "[DONE]",
        )

        assert len(events) == 1
        assert isinstance(events[0].error, StreamDecodeError)

    def test_error_chunk(self):
        """Test an inline error payload terminates the stream."""
        events = _feed(OpenAINormalizer(), {"error": {"message": "context length exceeded"}})

        assert isinstance(events[0], ErrorEvent)
        assert isinstance(events[0].error, StreamError)
        assert "context length exceeded" in str(events[0].error)

    def test_garbage_ignored(self):
        """Test undecodable payloads yield nothing."""
        assert _feed(OpenAINormalizer(), "{not json", '"just a string"') == []

    def test_replay(self):
        """Test a non-streaming completion is replayed."""
        body = json.dumps(
            {
                "choices": [
                    {
                        "index": 0,
                        "message": {
                            "content": "done",
                            "tool_calls": [
                                {"id": "c1", "function": {"name": "shell", "arguments": '{"command": "pwd"}'}}
                            ],
                        },
                    }
                ],
                "usage": {"prompt_tokens": 1, "completion_tokens": 2},
            }
        ).encode()

        events = OpenAINormalizer().replay(body)

        assert events[0] == TokenEvent("done")
        assert events[1].tool_call.input == {"command": "pwd"}
        assert events[2].usage.total_tokens == 3


class TestConvertMessage:
    """Tests for OpenAI message conversion."""

    def test_tool_calls_serialize_arguments(self):
        """Test tool call arguments are sent as a JSON string."""
        msg = ChatMessage.assistant("", [ToolCall(id="c1", name="shell", input={"command": "ls"})])

        converted = convert_message(msg)

        assert converted[0]["content"] is None
        assert json.loads(converted[0]["tool_calls"][0]["function"]["arguments"]) == {"command": "ls"}

    def test_tool_results_expand(self):
        """Test each result becomes its own tool message."""
        msg = ChatMessage.from_tool_results(
            [ToolResult(tool_call_id="a", content="1"), ToolResult(tool_call_id="b", content="2")]
        )

        converted = convert_message(msg)

        assert [m["role"] for m in converted] == ["tool", "tool"]
        assert [m["tool_call_id"] for m in converted] == ["a", "b"]


class TestOpenAIProvider:
    """End-to-end tests through a mock HTTP transport."""

    @pytest.mark.asyncio
    async def test_streaming_turn(self, transport_factory, sse):
        """Test a streamed turn and the request that produced it."""
        transport = transport_factory(
            content=sse(
                _chunk(content="Sure."),
                _chunk(tool_calls=[_call_delta(0, '{"command": "ls"}', id="call_1", name="shell")]),
                _chunk(finish_reason="tool_calls"),
                USAGE_CHUNK,
                "[DONE]",
            )
        )
        provider = OpenAIProvider(api_key="sk-openai", client=transport.client())
        request = ChatRequest(
            messages=[ChatMessage.user("list")],
            system="You are Pincer.",
            temperature=0.2,
            tools=[ToolDefinition(name="shell", description="Run a command")],
        )

        response = await (await provider.chat(request)).collect()

        assert response.text == "Sure."
        assert response.tool_calls == [ToolCall(id="call_1", name="shell", input={"command": "ls"})]
        assert response.usage.output_tokens == 9

        sent = transport.requests[0]
        assert str(sent.url) == OPENAI_API_URL
        assert sent.headers["authorization"] == "Bearer sk-openai"

        payload = transport.last_json
        assert payload["model"] == "gpt-4o"
        assert payload["messages"][0] == {"role": "system", "content": "You are Pincer."}
        assert payload["messages"][1] == {"role": "user", "content": "list"}
        assert payload["stream_options"] == {"include_usage": True}
        assert payload["temperature"] == 0.2
        assert payload["tools"][0]["function"]["parameters"] == {"type": "object"}

    @pytest.mark.asyncio
    async def test_non_streaming_omits_stream_options(self, transport_factory):
        """Test stream=False sends no stream_options."""
        transport = transport_factory(
            content=json.dumps({"choices": [{"message": {"content": "ok"}}]}).encode(),
            headers={"content-type": "application/json"},
        )
        provider = OpenAIProvider(api_key="k", client=transport.client())

        response = await (await provider.chat(ChatRequest(messages=[ChatMessage.user("hi")], stream=False))).collect()

        assert response.text == "ok"
        assert "stream_options" not in transport.last_json

    @pytest.mark.asyncio
    async def test_rate_limit_retry_after(self, transport_factory):
        """Test 429 carries the Retry-After seconds."""
        transport = transport_factory(
            status_code=429,
            content=b"slow down",
            headers={"retry-after": "12"},
        )
        provider = OpenAIProvider(api_key="k", client=transport.client())

        with pytest.raises(RateLimitError) as exc_info:
            await provider.chat(ChatRequest(messages=[ChatMessage.user("hi")]))

        assert exc_info.value.retry_after == 12
        assert "slow down" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_bad_request(self, transport_factory):
        """Test other 4xx statuses raise InvalidRequestError."""
        transport = transport_factory(status_code=400, content=b"bad model")
        provider = OpenAIProvider(api_key="k", client=transport.client())

        with pytest.raises(InvalidRequestError, match="bad model"):
            await provider.chat(ChatRequest(messages=[ChatMessage.user("hi")]))


class TestOllamaProvider:
    """Tests for OllamaProvider."""

    def test_defaults(self, monkeypatch):
        """Test the local endpoint and default model."""
        monkeypatch.delenv("OLLAMA_BASE_URL", raising=False)
        provider = OllamaProvider()

        assert provider.base_url == OLLAMA_DEFAULT_URL
        assert provider.default_model == "llama3"
        assert [m.id for m in provider.models()] == ["llama3"]

    def test_env_base_url(self, monkeypatch):
        """Test OLLAMA_BASE_URL overrides the default endpoint."""
        monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434/v1/chat/completions")

        assert OllamaProvider().base_url == "http://gpu-box:11434/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_streams_like_openai(self, transport_factory, sse):
        """Test Ollama uses the OpenAI wire format and fills in its model."""
        transport = transport_factory(content=sse(_chunk(content="local"), _chunk(finish_reason="stop"), "[DONE]"))
        provider = OllamaProvider(base_url="http://localhost:11434/v1/chat/completions", model="qwen2", client=transport.client())

        response = await (await provider.chat(ChatRequest(messages=[ChatMessage.user("hi")]))).collect()

        assert response.text == "local"
        assert transport.last_json["model"] == "qwen2"
        assert str(transport.requests[0].url) == "http://localhost:11434/v1/chat/completions"
