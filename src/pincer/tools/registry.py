"""Tool registry for managing available tools."""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Optional

from pincer.providers.models import ToolDefinition
from pincer.tools.base import Tool, ToolNotFoundError

if TYPE_CHECKING:
    from pincer.credentials import CredentialStore
    from pincer.memory import MemoryStore
    from pincer.soul import Soul
    from pincer.tools.builtin.notify import Deliver, RunAndDeliver

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Waiting writers block new readers, so a steady stream of lookups cannot
    starve registration.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ToolRegistry:
    """Registry for managing available tools.

    Safe to share between threads and tasks. Lookups return the tool itself;
    execution always happens outside the registry lock.
    """

    def __init__(self):
        """Initialize the tool registry."""
        self._tools: dict[str, Tool] = {}
        self._lock = ReadWriteLock()

    def register(self, tool: Tool) -> None:
        """Register a tool, replacing any tool with the same name.

        Args:
            tool: Tool instance to register
        """
        name = tool.definition().name
        with self._lock.write():
            replaced = name in self._tools
            self._tools[name] = tool
        if replaced:
            logger.info(f"Replaced tool: {name}")
        else:
            logger.info(f"Registered tool: {name}")

    def unregister(self, name: str) -> bool:
        """Unregister a tool.

        Args:
            name: Tool name to unregister

        Returns:
            True if tool was unregistered, False if not found
        """
        with self._lock.write():
            removed = self._tools.pop(name, None) is not None
        if removed:
            logger.info(f"Unregistered tool: {name}")
        return removed

    def get(self, name: str) -> Tool:
        """Get a tool by name.

        Args:
            name: Tool name

        Returns:
            Tool instance

        Raises:
            ToolNotFoundError: If no tool has this name
        """
        with self._lock.read():
            tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(f"tool {name!r} not found")
        return tool

    def definitions(self) -> list[ToolDefinition]:
        """Get definitions of all registered tools, in registration order.

        Returns:
            Snapshot list; later registrations do not change it
        """
        with self._lock.read():
            tools = list(self._tools.values())
        return [tool.definition() for tool in tools]

    def names(self) -> list[str]:
        """Get list of all registered tool names."""
        with self._lock.read():
            return list(self._tools)

    def __len__(self) -> int:
        """Get number of registered tools."""
        with self._lock.read():
            return len(self._tools)

    def __contains__(self, name: object) -> bool:
        """Check if tool is registered."""
        with self._lock.read():
            return name in self._tools

    def __repr__(self) -> str:
        """Representation."""
        return f"<ToolRegistry tools=[{', '.join(self.names())}]>"


def default_registry(
    memory: Optional["MemoryStore"] = None,
    credentials: Optional["CredentialStore"] = None,
    soul: Optional["Soul"] = None,
    send: Optional["Deliver"] = None,
    run_and_deliver: Optional["RunAndDeliver"] = None,
) -> ToolRegistry:
    """Build a registry with the built-in tools.

    shell, file_read, file_write and http_request are always registered. The
    other tools are registered only when their collaborator is supplied.

    Args:
        memory: Memory store for the ``memory`` tool
        credentials: Credential store for the ``credential`` tool
        soul: Persona for the ``soul`` tool
        send: Immediate delivery callback for the ``notify`` tool
        run_and_deliver: Delayed-turn callback for the ``notify`` tool

    Returns:
        A new registry
    """
    from pincer.tools.builtin import (
        CredentialTool,
        FileReadTool,
        FileWriteTool,
        HttpRequestTool,
        MemoryTool,
        NotifyTool,
        ShellTool,
        SoulTool,
    )

    registry = ToolRegistry()
    registry.register(ShellTool())
    registry.register(FileReadTool())
    registry.register(FileWriteTool())
    registry.register(HttpRequestTool())

    if memory is not None:
        registry.register(MemoryTool(memory))
    if credentials is not None:
        registry.register(CredentialTool(credentials))
    if soul is not None:
        registry.register(SoulTool(soul))
    if send is not None or run_and_deliver is not None:
        registry.register(NotifyTool(send=send, run_and_deliver=run_and_deliver))

    return registry
