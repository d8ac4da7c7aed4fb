"""Data models for tool parameters and inputs."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolParameter(BaseModel):
    """Defines a parameter for a tool."""

    name: str
    type: str  # "string", "integer", "boolean", "array", "object"
    description: str
    required: bool = True
    default: Optional[Any] = None
    enum: Optional[list[str]] = None  # For restricted choices


class ToolInput(BaseModel):
    """Base for parsed tool inputs. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")


class ShellInput(ToolInput):
    command: str = Field(min_length=1)
    work_dir: str = ""


class FileReadInput(ToolInput):
    path: str = Field(min_length=1)


class FileWriteInput(ToolInput):
    path: str = Field(min_length=1)
    content: str
    append: bool = False


class HttpRequestInput(ToolInput):
    url: str = Field(min_length=1)
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


class MemoryInput(ToolInput):
    action: Literal["get", "set", "delete", "list", "search"]
    key: str = ""
    value: str = ""
    query: str = ""


class CredentialInput(ToolInput):
    action: Literal["get", "set", "delete", "list"]
    name: str = ""
    value: str = ""


class NotifyInput(ToolInput):
    action: Literal["schedule", "send"]
    message: str = ""
    delay: str = ""


class SoulInput(ToolInput):
    section: Literal["identity", "values", "tone", "boundaries", "expertise", "all", ""] = ""
