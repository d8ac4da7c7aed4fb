"""
Shared setup used by every CLI command.
"""

import logging

import typer
from rich.logging import RichHandler

from pincer.cli.output import console, print_error
from pincer.config import Config, ConfigurationError, load_config
from pincer.credentials import CredentialStore
from pincer.memory import InMemoryStore
from pincer.soul import Soul, SoulError
from pincer.storage import expand_path, get_soul_path
from pincer.tools import ToolRegistry, default_registry

LOG_FORMAT = "%(name)s: %(message)s"


def configure_logging(level: str | int) -> None:
    """Route all pincer logging through a rich handler at ``level``."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=False)],
        force=True,
    )


def load_cli_config(ctx: typer.Context) -> Config:
    """
    Load configuration for a command and apply its log level.

    ``--verbose`` on the root command keeps DEBUG regardless of config.

    Raises:
        typer.Exit: With code 2 if the configuration is invalid.
    """
    try:
        config = load_config()
    except ConfigurationError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(2) from e

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    if not verbose:
        logging.getLogger().setLevel(config.logging.level)
    return config


def load_soul(config: Config) -> Soul:
    """
    Load the agent persona from ``agent.soul_file`` or the default location.

    Raises:
        typer.Exit: With code 2 if the persona file is invalid.
    """
    path = expand_path(config.agent.soul_file) if config.agent.soul_file else get_soul_path()
    try:
        return Soul.load(path)
    except SoulError as e:
        print_error(str(e))
        raise typer.Exit(2) from e


def build_registry(config: Config) -> ToolRegistry:
    """Registry with every built-in tool that can run without a live session."""
    memory = InMemoryStore()
    soul = load_soul(config)
    soul.seed_memory(memory, config.agent.id)
    return default_registry(memory=memory, credentials=CredentialStore(), soul=soul)
