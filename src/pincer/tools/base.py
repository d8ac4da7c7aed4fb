"""Base classes for tool implementation."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Optional, Protocol, TypeVar, Union, runtime_checkable

from pydantic import ValidationError

from pincer.providers.models import ToolDefinition
from pincer.security.policy import Policy
from pincer.security.sandbox import Sandbox
from pincer.tools.models import ToolInput, ToolParameter

RawInput = Union[str, bytes, dict[str, Any], None]

InputT = TypeVar("InputT", bound=ToolInput)


class ToolError(Exception):
    """Base exception for tool errors."""

    pass


class ToolNotFoundError(ToolError):
    """No tool is registered under the requested name."""

    pass


class InvalidToolInputError(ToolError):
    """Tool input could not be parsed or failed validation."""

    pass


class ToolExecutionError(ToolError):
    """Raised when tool execution fails."""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        """Initialize error.

        Args:
            message: Error message
            exit_code: Optional exit code
        """
        super().__init__(message)
        self.exit_code = exit_code


@dataclass(frozen=True)
class ToolContext:
    """Identity of the conversation a tool runs for."""

    session_id: str = ""
    agent_id: str = "default"


@runtime_checkable
class Tool(Protocol):
    """A capability the model can invoke."""

    def definition(self) -> ToolDefinition:
        """Name, description and input schema advertised to the model."""
        ...

    async def execute(
        self,
        raw_input: RawInput,
        sandbox: Sandbox,
        policy: Policy,
        context: ToolContext = ...,
    ) -> str:
        """Run the tool and return its textual result."""
        ...


def parse_input(raw_input: RawInput, model: type[InputT], tool_name: str) -> InputT:
    """Parse raw tool input into its pydantic model.

    Args:
        raw_input: JSON text, JSON bytes, an already decoded dict, or None.
        model: Input model to validate against.
        tool_name: Used as error message prefix.

    Returns:
        The validated input.

    Raises:
        InvalidToolInputError: If the input is not a JSON object or fails validation.
    """
    if raw_input is None or (isinstance(raw_input, (str, bytes)) and not raw_input.strip()):
        raw_input = {}

    try:
        if isinstance(raw_input, (str, bytes)):
            decoded = json.loads(raw_input)
        else:
            decoded = raw_input
        if not isinstance(decoded, dict):
            raise InvalidToolInputError(f"{tool_name}: invalid input: expected a JSON object")
        return model.model_validate(decoded)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidToolInputError(f"{tool_name}: invalid input: {e}") from e
    except ValidationError as e:
        raise InvalidToolInputError(f"{tool_name}: invalid input: {_summarize(e)}") from e


def _summarize(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail["loc"]) or "input"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


class BaseTool(ABC, Generic[InputT]):
    """Base class for built-in tools.

    A tool defines:
    - Name and description (for the model to understand when to use it)
    - Input parameters (rendered as a JSON schema)
    - An input model the raw input is validated against before anything runs
    - Execution logic, always under the caller's sandbox and policy
    """

    input_model: ClassVar[type[ToolInput]]

    def __init__(self):
        """Initialize the tool."""
        self._validate_definition()

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name (must be unique)."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does (for the model)."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> list[ToolParameter]:
        """List of tool parameters."""
        pass

    @property
    def is_dangerous(self) -> bool:
        """Whether the tool changes state outside the conversation.

        Returns:
            True if the tool writes, executes, or reaches the network
        """
        return False

    def get_input_schema(self) -> dict[str, Any]:
        """Get JSON schema for tool input.

        Returns:
            JSON schema describing tool parameters
        """
        properties = {}
        required = []

        for param in self.parameters:
            param_schema: dict[str, Any] = {
                "type": param.type,
                "description": param.description,
            }

            if param.enum:
                param_schema["enum"] = param.enum

            if param.default is not None:
                param_schema["default"] = param.default

            properties[param.name] = param_schema

            if param.required:
                required.append(param.name)

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema

    def definition(self) -> ToolDefinition:
        """Get the tool definition sent to providers."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.get_input_schema(),
        )

    async def execute(
        self,
        raw_input: RawInput,
        sandbox: Sandbox,
        policy: Policy,
        context: ToolContext = ToolContext(),
    ) -> str:
        """Validate the input, then run the tool.

        Raises:
            InvalidToolInputError: If the input is invalid. Nothing has run yet.
            PolicyViolationError: If the policy forbids the operation.
            ToolExecutionError: If the operation itself fails.
        """
        params = parse_input(raw_input, self.input_model, self.name)
        return await self.run(params, sandbox, policy, context)  # type: ignore[arg-type]

    @abstractmethod
    async def run(self, params: InputT, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Execute the tool with validated parameters."""
        pass

    def _validate_definition(self) -> None:
        """Validate tool definition is correct.

        Raises:
            ValueError: If tool definition is invalid
        """
        if not self.name:
            raise ValueError("Tool name cannot be empty")

        if not self.description:
            raise ValueError("Tool description cannot be empty")

        param_names = [p.name for p in self.parameters]
        if len(param_names) != len(set(param_names)):
            raise ValueError("Parameter names must be unique")

    def __str__(self) -> str:
        """String representation."""
        return f"Tool({self.name})"

    def __repr__(self) -> str:
        """Representation."""
        return f"<Tool name={self.name} dangerous={self.is_dangerous}>"
