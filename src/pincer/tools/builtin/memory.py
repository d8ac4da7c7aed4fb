"""Persistent key-value memory tool."""

import logging

from pincer.memory import MemoryEntry, MemoryStore
from pincer.security.policy import Policy
from pincer.security.sandbox import Sandbox
from pincer.tools.base import BaseTool, InvalidToolInputError, ToolContext
from pincer.tools.models import MemoryInput, ToolParameter

logger = logging.getLogger(__name__)


def _format_entries(entries: list[MemoryEntry]) -> str:
    return "".join(f"[{e.key}]: {e.value}\n" for e in entries)


class MemoryTool(BaseTool[MemoryInput]):
    """Store and recall values across sessions, scoped to the calling agent."""

    input_model = MemoryInput

    def __init__(self, memory: MemoryStore):
        """Initialize memory tool.

        Args:
            memory: Store the actions run against
        """
        self._memory = memory
        super().__init__()

    @property
    def name(self) -> str:
        """Tool name."""
        return "memory"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Persistent key-value memory for storing and retrieving information "
            "across sessions. Actions: get, set, delete, list, search."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="action",
                type="string",
                description="The action to perform",
                required=True,
                enum=["get", "set", "delete", "list", "search"],
            ),
            ToolParameter(
                name="key",
                type="string",
                description="The memory key (required for get, set, delete)",
                required=False,
            ),
            ToolParameter(
                name="value",
                type="string",
                description="The value to store (required for set)",
                required=False,
            ),
            ToolParameter(
                name="query",
                type="string",
                description="Search query (required for search)",
                required=False,
            ),
        ]

    def _require(self, value: str, field: str, action: str) -> None:
        if not value:
            raise InvalidToolInputError(f"memory: {field} is required for {action}")

    async def run(self, params: MemoryInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Run one memory action for ``context.agent_id``.

        Raises:
            InvalidToolInputError: If a field the action needs is missing
            MemoryStoreError: If the store refuses the action
        """
        agent_id = context.agent_id

        if params.action == "get":
            self._require(params.key, "key", "get")
            return self._memory.get(agent_id, params.key).value

        if params.action == "set":
            self._require(params.key, "key", "set")
            self._require(params.value, "value", "set")
            self._memory.set(agent_id, params.key, params.value)
            return f"stored {params.key!r}"

        if params.action == "delete":
            self._require(params.key, "key", "delete")
            self._memory.delete(agent_id, params.key)
            return f"deleted {params.key!r}"

        if params.action == "list":
            entries = self._memory.list(agent_id)
            return _format_entries(entries) if entries else "no memory entries"

        self._require(params.query, "query", "search")
        entries = self._memory.search(agent_id, params.query)
        return _format_entries(entries) if entries else "no matching entries"
