"""pincer configuration."""

from pincer.config.loader import ConfigurationError, load_config
from pincer.config.schema import (
    AgentConfig,
    Config,
    ContainerConfig,
    LoggingConfig,
    PolicyConfig,
    ProviderConfig,
    SandboxConfig,
)

__all__ = [
    "AgentConfig",
    "Config",
    "ConfigurationError",
    "ContainerConfig",
    "LoggingConfig",
    "PolicyConfig",
    "ProviderConfig",
    "SandboxConfig",
    "load_config",
]
