"""Shell command execution tool."""

import logging

from pincer.security.exceptions import SandboxError
from pincer.security.policy import Command, Policy, Result
from pincer.security.sandbox import Sandbox
from pincer.tools.base import BaseTool, ToolContext, ToolExecutionError
from pincer.tools.models import ShellInput, ToolParameter

logger = logging.getLogger(__name__)

SHELL = "/bin/sh"


def format_result(result: Result) -> str:
    """Render a sandbox result as tool output.

    Stdout comes first, followed by a STDERR section, the exit code when it is
    non-zero and the sandbox error, each only when present.
    """
    output = result.stdout
    if result.stderr:
        output += "\nSTDERR:\n" + result.stderr
    if result.exit_code != 0:
        output += f"\n(exit code: {result.exit_code})"
    if result.error:
        output += "\nError: " + result.error
    return output


class ShellTool(BaseTool[ShellInput]):
    """Execute shell commands through the sandbox.

    Every command is subject to the policy it runs under:
    - Work directory confinement
    - Timeout limits
    - Output caps
    """

    input_model = ShellInput

    @property
    def name(self) -> str:
        """Tool name."""
        return "shell"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Execute a shell command and return its output. "
            "Use this for running programs, scripts, system commands, and CLI tools."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="command",
                type="string",
                description="The shell command to execute",
                required=True,
            ),
            ToolParameter(
                name="work_dir",
                type="string",
                description="Optional working directory for the command",
                required=False,
            ),
        ]

    @property
    def is_dangerous(self) -> bool:
        """Shell commands can modify system state."""
        return True

    async def run(self, params: ShellInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Run the command with ``/bin/sh -c``.

        A non-zero exit or a timeout is part of the returned text, not an error.

        Raises:
            PathNotAllowedError: If the work directory is outside the allowed roots
            ToolExecutionError: If the sandbox cannot run the command at all
        """
        logger.info(f"Executing shell command: {params.command[:100]}")

        command = Command(
            name=self.name,
            program=SHELL,
            args=["-c", params.command],
            work_dir=params.work_dir,
        )

        try:
            result = await sandbox.exec(command, policy)
        except SandboxError as e:
            raise ToolExecutionError(f"shell: execution failed: {e}") from e

        if not result.ok:
            logger.debug(f"Shell command exited with {result.exit_code}: {result.error or ''}")

        return format_result(result)
