"""
Path utilities for pincer.

Provides consistent path resolution for configuration, secrets, and the
agent persona file.
"""

import os
from pathlib import Path

PROJECT_DIR_NAME = ".pincer"
CONFIG_FILE_NAME = "config.yaml"


def get_pincer_home() -> Path:
    """
    Get the pincer home directory.

    Resolution order:
    1. PINCER_HOME environment variable
    2. Default: ~/.pincer

    Returns:
        Path to the pincer home directory.
    """
    env_home = os.environ.get("PINCER_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".pincer"


def get_global_config_path() -> Path:
    """
    Get the path to the global configuration file.

    Returns:
        Path to ~/.pincer/config.yaml
    """
    return get_pincer_home() / CONFIG_FILE_NAME


def get_secrets_dir() -> Path:
    """
    Get the secrets directory.

    Returns:
        Path to ~/.pincer/secrets/
    """
    return get_pincer_home() / "secrets"


def get_soul_path() -> Path:
    """
    Get the agent persona file.

    Returns:
        Path to ~/.pincer/soul.yaml
    """
    return get_pincer_home() / "soul.yaml"


def find_project_config(start_path: Path | None = None) -> Path | None:
    """
    Find the project configuration file by traversing up the directory tree.

    Looks for .pincer/config.yaml starting from the given path
    (or current directory) and moving up to the root.

    Args:
        start_path: Starting directory to search from. Defaults to cwd.

    Returns:
        Path to the project config if found, None otherwise.
    """
    current = Path.cwd() if start_path is None else Path(start_path).resolve()

    while True:
        project_config = current / PROJECT_DIR_NAME / CONFIG_FILE_NAME
        if project_config.is_file():
            return project_config
        if current == current.parent:
            return None
        current = current.parent


def expand_path(path: str | Path) -> Path:
    """
    Expand a path string, handling ~ and environment variables.

    Args:
        path: Path string or Path object.

    Returns:
        Expanded absolute Path. Symlinks are not resolved here.
    """
    if isinstance(path, str):
        path = os.path.expandvars(path)
        path = os.path.expanduser(path)
    return Path(os.path.abspath(path))
