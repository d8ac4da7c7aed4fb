"""
Configuration loader for pincer.

Loads and merges configuration from multiple sources:
1. Default values
2. Global config (~/.pincer/config.yaml)
3. Project config (nearest .pincer/config.yaml up from cwd)
4. Environment variables (PINCER_<SECTION>__<KEY>)
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from pincer.config.merger import deep_merge, set_nested_value
from pincer.config.schema import Config
from pincer.storage.paths import find_project_config, get_global_config_path

logger = logging.getLogger(__name__)

ENV_PREFIX = "PINCER_"
ENV_SEPARATOR = "__"

# Environment variables with the prefix that are not configuration keys.
_RESERVED_ENV = {"PINCER_HOME"}


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed configuration dictionary; empty if the file does not exist.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return content


def apply_env_overrides(config: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Variables follow the pattern ``PINCER_<SECTION>__<KEY>=<value>``; a double
    underscore separates levels because keys themselves contain underscores.
    ``PINCER_POLICY__TIMEOUT_SECONDS=10`` sets ``policy.timeout_seconds``.

    Args:
        config: Configuration dictionary to modify.
        environ: Environment to read. Defaults to ``os.environ``.

    Returns:
        Configuration with environment overrides applied.
    """
    environ = os.environ if environ is None else environ

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or key in _RESERVED_ENV:
            continue
        if ENV_SEPARATOR not in key:
            continue

        config_key = ".".join(part.lower() for part in key[len(ENV_PREFIX):].split(ENV_SEPARATOR))
        logger.debug(f"Config override from {key}")
        config = set_nested_value(config, config_key, _parse_env_value(value))

    return config


def _parse_env_value(value: str) -> Any:
    """
    Parse an environment variable value to the appropriate type.

    Args:
        value: String value from environment.

    Returns:
        Parsed value (bool, int, float, list or string).
    """
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    if re.match(r"^-?\d+$", value):
        return int(value)

    if re.match(r"^-?\d+\.\d+$", value):
        return float(value)

    # Comma-separated list
    if "," in value:
        return [item.strip() for item in value.split(",") if item.strip()]

    return value


def load_config(
    project_path: Path | None = None,
    skip_project: bool = False,
    skip_env: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Loading order (later overrides earlier):
    1. Default values from Config model
    2. Global config (~/.pincer/config.yaml)
    3. Project config (.pincer/config.yaml) if found
    4. Environment variables (PINCER_*)

    Args:
        project_path: Starting path to search for project config. Defaults to cwd.
        skip_project: Skip loading project configuration.
        skip_env: Skip environment variable overrides.

    Returns:
        Merged and validated Config object.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    config_dict = Config().model_dump()

    global_path = get_global_config_path()
    if global_path.exists():
        config_dict = deep_merge(config_dict, load_yaml_file(global_path))

    if not skip_project:
        project_config_path = find_project_config(project_path)
        if project_config_path is not None:
            logger.debug(f"Loading project config from {project_config_path}")
            config_dict = deep_merge(config_dict, load_yaml_file(project_config_path))

    if not skip_env:
        config_dict = apply_env_overrides(config_dict)

    try:
        return Config.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e
