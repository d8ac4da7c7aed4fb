"""Built-in tools for pincer.

This module provides the standard tools that let the agent:
- Execute shell commands through the sandbox
- Read and write files under the policy's path guard
- Make HTTP requests subject to the network policy
- Remember values, manage credentials and introspect its persona
- Message the user now or after a delay
"""

from pincer.tools.builtin.credential import CredentialTool
from pincer.tools.builtin.file import FileReadTool, FileWriteTool
from pincer.tools.builtin.http import HttpRequestTool
from pincer.tools.builtin.memory import MemoryTool
from pincer.tools.builtin.notify import NotifyTool, parse_duration
from pincer.tools.builtin.shell import ShellTool
from pincer.tools.builtin.soul import SoulTool

__all__ = [
    "CredentialTool",
    "FileReadTool",
    "FileWriteTool",
    "HttpRequestTool",
    "MemoryTool",
    "NotifyTool",
    "ShellTool",
    "SoulTool",
    "parse_duration",
]
