"""File operation tools."""

import logging
import os
from pathlib import Path

from pincer.security.paths import check_allowed, check_writable
from pincer.security.policy import Policy
from pincer.security.sandbox import Sandbox
from pincer.tools.base import BaseTool, ToolContext, ToolExecutionError
from pincer.tools.models import FileReadInput, FileWriteInput, ToolParameter

logger = logging.getLogger(__name__)

FILE_TRUNCATION_MARKER = "\n... (file truncated)"


class FileReadTool(BaseTool[FileReadInput]):
    """Read file contents.

    Read-only operation. The path must lie under the policy's allowed roots
    after symlink resolution.
    """

    input_model = FileReadInput

    @property
    def name(self) -> str:
        """Tool name."""
        return "file_read"

    @property
    def description(self) -> str:
        """Tool description."""
        return "Read the contents of a file at the given path. Returns the file content as text."

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="path",
                type="string",
                description="Absolute or relative path to the file to read",
                required=True,
            ),
        ]

    async def run(self, params: FileReadInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Read the file, capped at the policy's output limit.

        Raises:
            PathNotAllowedError: If the path is outside the allowed roots
            ToolExecutionError: If the file cannot be read
        """
        resolved = check_allowed(params.path, policy.allowed_paths)
        limit = policy.effective_max_output_bytes

        logger.debug(f"Reading file: {resolved}")

        try:
            with open(resolved, "rb") as f:
                data = f.read(limit + 1)
        except OSError as e:
            raise ToolExecutionError(f"file_read: {e}") from e

        truncated = len(data) > limit
        content = data[:limit].decode("utf-8", errors="replace")
        if truncated:
            content += FILE_TRUNCATION_MARKER
        return content


class FileWriteTool(BaseTool[FileWriteInput]):
    """Write content to a file.

    Creates the file and any missing parent directories. The path must be
    under an allowed root and outside every read-only root.
    """

    input_model = FileWriteInput

    @property
    def name(self) -> str:
        """Tool name."""
        return "file_write"

    @property
    def description(self) -> str:
        """Tool description."""
        return (
            "Write content to a file at the given path. "
            "Creates the file and parent directories if they don't exist. "
            "Set append=true to append instead of overwrite."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        """Tool parameters."""
        return [
            ToolParameter(
                name="path",
                type="string",
                description="Absolute or relative path to the file to write",
                required=True,
            ),
            ToolParameter(
                name="content",
                type="string",
                description="The content to write to the file",
                required=True,
            ),
            ToolParameter(
                name="append",
                type="boolean",
                description="If true, append to the file instead of overwriting",
                required=False,
            ),
        ]

    @property
    def is_dangerous(self) -> bool:
        """Writing files modifies the filesystem."""
        return True

    async def run(self, params: FileWriteInput, sandbox: Sandbox, policy: Policy, context: ToolContext) -> str:
        """Write or append to the file.

        Raises:
            PathNotAllowedError: If the path is outside the allowed roots
            ReadOnlyPathError: If the path is under a read-only root
            ToolExecutionError: If the file cannot be written
        """
        check_allowed(params.path, policy.allowed_paths)
        resolved = check_writable(params.path, policy.read_only_paths)

        data = params.content.encode("utf-8")
        flags = os.O_WRONLY | os.O_CREAT | (os.O_APPEND if params.append else os.O_TRUNC)
        flags |= getattr(os, "O_NOFOLLOW", 0)

        try:
            Path(resolved).parent.mkdir(parents=True, exist_ok=True)
            # A link planted while the parents were created must not redirect the write.
            check_allowed(resolved, policy.allowed_paths)
            check_writable(resolved, policy.read_only_paths)
            with os.fdopen(os.open(resolved, flags, 0o666), "wb") as f:
                written = f.write(data)
        except OSError as e:
            raise ToolExecutionError(f"file_write: {e}") from e

        logger.debug(f"Wrote {written} bytes to {resolved} (append={params.append})")
        return f"wrote {written} bytes to {os.path.normpath(params.path)}"
