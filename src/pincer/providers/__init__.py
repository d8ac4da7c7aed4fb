"""
pincer provider layer.

Vendor-neutral access to LLM APIs with:
- One ordered event stream per model turn (tokens, tool calls, done/error)
- Normalizers for Anthropic, OpenAI, Gemini and OpenAI-compatible servers
- Provider/model resolution and API key lookup
"""

from pincer.providers.anthropic import AnthropicProvider
from pincer.providers.base import DEFAULT_MAX_TOKENS, HTTPProvider, Provider
from pincer.providers.exceptions import (
    AuthenticationError,
    InvalidRequestError,
    NetworkError,
    ProviderError,
    RateLimitError,
    ServerError,
    StreamCancelledError,
    StreamDecodeError,
    StreamError,
    StreamReadError,
)
from pincer.providers.gemini import GeminiProvider
from pincer.providers.manager import ProviderManager, create_provider
from pincer.providers.models import (
    ChatEvent,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    DoneEvent,
    ErrorEvent,
    MessageRole,
    ModelInfo,
    TokenEvent,
    ToolCall,
    ToolCallEvent,
    ToolDefinition,
    ToolResult,
    Usage,
)
from pincer.providers.ollama import OllamaProvider
from pincer.providers.openai import OpenAIProvider
from pincer.providers.stream import CancelToken, ChatStream

__all__ = [
    # Providers
    "AnthropicProvider",
    "GeminiProvider",
    "HTTPProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "Provider",
    "ProviderManager",
    "create_provider",
    "DEFAULT_MAX_TOKENS",
    # Streaming
    "CancelToken",
    "ChatStream",
    # Models
    "ChatEvent",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "DoneEvent",
    "ErrorEvent",
    "MessageRole",
    "ModelInfo",
    "TokenEvent",
    "ToolCall",
    "ToolCallEvent",
    "ToolDefinition",
    "ToolResult",
    "Usage",
    # Exceptions
    "AuthenticationError",
    "InvalidRequestError",
    "NetworkError",
    "ProviderError",
    "RateLimitError",
    "ServerError",
    "StreamCancelledError",
    "StreamDecodeError",
    "StreamError",
    "StreamReadError",
]
