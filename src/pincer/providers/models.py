"""
Provider data models for pincer.

Defines the vendor-neutral message, tool and event types shared by every
provider and by the tool layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class MessageRole(str, Enum):
    """Valid message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def _default_schema() -> dict[str, Any]:
    return {"type": "object"}


@dataclass
class ToolDefinition:
    """Schema of a tool as advertised to a model."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=_default_schema)

    def __post_init__(self) -> None:
        if self.input_schema is None:
            self.input_schema = _default_schema()


@dataclass
class ToolCall:
    """A fully assembled tool invocation emitted by a model."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.input.items())
        return f"{self.name}({args})"


@dataclass
class ToolResult:
    """Outcome of one tool invocation, fed back to the model."""

    tool_call_id: str
    content: str
    is_error: bool = False


@dataclass
class ChatMessage:
    """Conversation message."""

    role: str  # "system" | "user" | "assistant"
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.tool_calls and self.tool_results:
            raise ValueError("A message carries either tool calls or tool results, not both")
        if self.tool_calls and self.role != MessageRole.ASSISTANT.value:
            raise ValueError("Only assistant messages may carry tool calls")
        if self.tool_results and self.role != MessageRole.USER.value:
            raise ValueError("Only user messages may carry tool results")

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM.value, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        """Create a user message."""
        return cls(role=MessageRole.USER.value, content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: list[ToolCall] | None = None) -> "ChatMessage":
        """Create an assistant message, optionally carrying tool calls."""
        return cls(role=MessageRole.ASSISTANT.value, content=content, tool_calls=list(tool_calls or []))

    @classmethod
    def from_tool_results(cls, results: list[ToolResult]) -> "ChatMessage":
        """Create the user message that reports completed tool invocations."""
        return cls(role=MessageRole.USER.value, tool_results=list(results))


@dataclass
class ChatRequest:
    """A single model turn request."""

    messages: list[ChatMessage]
    model: str = ""
    system: str = ""
    max_tokens: int = 0
    temperature: float | None = None
    tools: list[ToolDefinition] = field(default_factory=list)
    stream: bool = True

    def system_prompt(self) -> str:
        """Combine the explicit system prompt with any system-role messages."""
        parts = [self.system] if self.system else []
        parts.extend(
            m.content for m in self.messages if m.role == MessageRole.SYSTEM.value and m.content
        )
        return "\n\n".join(parts)

    def conversation(self) -> list[ChatMessage]:
        """Messages that are sent as conversational turns (system excluded)."""
        return [m for m in self.messages if m.role != MessageRole.SYSTEM.value]


@dataclass
class Usage:
    """Token usage statistics, best-effort."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def merge(self, input_tokens: int | None = None, output_tokens: int | None = None) -> None:
        """Fold in counts reported by the vendor; zero or missing counts never erase earlier ones."""
        if input_tokens:
            self.input_tokens = input_tokens
        if output_tokens:
            self.output_tokens = output_tokens


@dataclass
class ModelInfo:
    """A model offered by a provider."""

    id: str
    name: str
    max_context_tokens: int


# =============================================================================
# Stream events
# =============================================================================


@dataclass
class TokenEvent:
    """Incremental assistant text."""

    text: str
    terminal = False


@dataclass
class ToolCallEvent:
    """A completely reassembled tool call."""

    tool_call: ToolCall
    terminal = False


@dataclass
class DoneEvent:
    """Successful end of stream."""

    usage: Usage = field(default_factory=Usage)
    terminal = True


@dataclass
class ErrorEvent:
    """Failed end of stream."""

    error: Exception
    terminal = True


ChatEvent = Union[TokenEvent, ToolCallEvent, DoneEvent, ErrorEvent]


@dataclass
class ChatResponse:
    """A drained event stream."""

    text: str
    tool_calls: list[ToolCall]
    usage: Usage

    def to_message(self) -> ChatMessage:
        """Convert the reply into the assistant message for the next request."""
        return ChatMessage.assistant(self.text, self.tool_calls)
