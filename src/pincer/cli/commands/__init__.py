"""CLI command modules."""

from pincer.cli.commands import chat, execute, secrets, tools

__all__ = ["chat", "execute", "secrets", "tools"]
