"""
Pydantic configuration schema for pincer.

This module defines all configuration models with validation.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Provider Configuration
# =============================================================================


class ProviderConfig(BaseModel):
    """Provider and model configuration."""

    model_config = ConfigDict(extra="allow")

    # "provider/model"; a bare provider name uses that provider's default model
    default: str = "anthropic/claude-sonnet-4-20250514"
    aliases: dict[str, str] = Field(default_factory=dict)
    base_urls: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Sandbox & Policy Configuration
# =============================================================================


class ContainerConfig(BaseModel):
    """Container sandbox settings."""

    runtime: str | None = None  # probed when unset
    image: str = "alpine:latest"
    memory: str = "256m"
    cpus: str = "1"
    pids_limit: int = Field(default=64, ge=1)
    tmpfs_size: str = "64m"


class SandboxConfig(BaseModel):
    """Where tool commands run."""

    mode: Literal["process", "container"] = "process"
    work_dir: str | None = None
    container: ContainerConfig = Field(default_factory=ContainerConfig)


class PolicyConfig(BaseModel):
    """Security policy applied to every tool execution."""

    timeout_seconds: float = Field(default=30.0, ge=0)
    max_output_bytes: int = Field(default=1024 * 1024, ge=0)
    network_access: Literal["deny", "allow_list", "allow"] = "deny"
    allowed_hosts: list[str] = Field(default_factory=list)
    allowed_paths: list[str] = Field(default_factory=list)
    read_only_paths: list[str] = Field(default_factory=list)
    require_approval: bool = True


# =============================================================================
# Agent & Logging Configuration
# =============================================================================


class AgentConfig(BaseModel):
    """Agent identity."""

    id: str = "default"
    soul_file: str | None = None  # defaults to ~/.pincer/soul.yaml


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"


# =============================================================================
# Root Configuration Model
# =============================================================================


class Config(BaseModel):
    """
    Root configuration model for pincer.

    Configuration can be loaded from YAML files and environment variables,
    merged in order of priority.
    """

    model_config = ConfigDict(extra="allow")

    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def resolve_model_alias(self, model: str) -> str:
        """Resolve a model name or alias to the full model identifier."""
        return self.providers.aliases.get(model, model)

    def get_default_model(self) -> str:
        """Get the default model, resolving aliases if needed."""
        return self.resolve_model_alias(self.providers.default)
