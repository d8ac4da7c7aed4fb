"""Storage utilities for pincer."""

from pincer.storage.paths import (
    expand_path,
    find_project_config,
    get_global_config_path,
    get_pincer_home,
    get_secrets_dir,
    get_soul_path,
)

__all__ = [
    "expand_path",
    "find_project_config",
    "get_global_config_path",
    "get_pincer_home",
    "get_secrets_dir",
    "get_soul_path",
]
