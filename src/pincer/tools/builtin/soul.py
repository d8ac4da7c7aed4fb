"""Persona introspection tool."""

from pincer.security.policy import Policy
from pincer.security.sandbox import Sandbox
from pincer.soul import SECTIONS, Soul
from pincer.tools.base import BaseTool, ToolContext
from pincer.tools.models import SoulInput, ToolParameter


class SoulTool(BaseTool[SoulInput]):
    """Let the agent read back its own persona."""

    input_model = SoulInput

    def __init__(self, soul: Soul):
        self._soul = soul
        super().__init__()

    @property
    def name(self) -> str:
        """Tool name."""
        return "soul"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Introspect your own identity, values, tone, boundaries, and expertise. "
            "Use this to recall who you are and how you should behave."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="section",
                type="string",
                description="Which section of the soul to retrieve (defaults to all)",
                required=False,
                enum=[*SECTIONS, "all"],
            ),
        ]

    async def run(self, params: SoulInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        if params.section in ("", "all"):
            return self._soul.render()
        return self._soul.section(params.section)
