"""
Execution policy and command types for pincer.

A ``Policy`` is an immutable description of what a single tool execution may
do. It is passed explicitly to every sandbox call and tool invocation.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pincer.config.schema import PolicyConfig

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024
TRUNCATION_MARKER = "\n... (output truncated)"


class NetworkAccess(str, Enum):
    """Network permission levels."""

    DENY = "deny"
    ALLOW_LIST = "allow_list"
    ALLOW = "allow"


@dataclass(frozen=True)
class Policy:
    """
    Security policy for one execution.

    ``timeout`` and ``max_output_bytes`` fall back to their defaults at the
    point of use when unset or not positive. Empty ``allowed_paths`` allows
    every path; empty ``read_only_paths`` makes nothing read-only.
    """

    timeout: float | None = DEFAULT_TIMEOUT
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    network_access: NetworkAccess = NetworkAccess.DENY
    allowed_paths: tuple[str, ...] = ()
    read_only_paths: tuple[str, ...] = ()
    allowed_hosts: tuple[str, ...] = ()
    require_approval: bool = True

    @property
    def effective_timeout(self) -> float:
        if self.timeout is None or self.timeout <= 0:
            return DEFAULT_TIMEOUT
        return self.timeout

    @property
    def effective_max_output_bytes(self) -> int:
        if self.max_output_bytes <= 0:
            return DEFAULT_MAX_OUTPUT_BYTES
        return self.max_output_bytes

    @classmethod
    def from_config(cls, config: "PolicyConfig") -> "Policy":
        """Build a policy from the ``policy`` configuration section."""
        return cls(
            timeout=config.timeout_seconds,
            max_output_bytes=config.max_output_bytes,
            network_access=NetworkAccess(config.network_access),
            allowed_paths=tuple(os.path.expanduser(p) for p in config.allowed_paths),
            read_only_paths=tuple(os.path.expanduser(p) for p in config.read_only_paths),
            allowed_hosts=tuple(config.allowed_hosts),
            require_approval=config.require_approval,
        )


def default_policy() -> Policy:
    """30 s timeout, 1 MiB output cap, no network, approval required."""
    return Policy()


@dataclass
class Command:
    """A program invocation to run in a sandbox."""

    program: str
    args: list[str] = field(default_factory=list)
    stdin: str = ""
    work_dir: str = ""
    # Replaces the inherited environment when not None.
    env: dict[str, str] | None = None
    name: str = ""


@dataclass
class Result:
    """Outcome of a sandboxed execution."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    duration: float = 0.0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.error


def truncate_output(data: bytes, limit: int, truncated: bool = False) -> str:
    """
    Decode captured output, appending the truncation marker when capped.

    Args:
        data: Captured bytes, at most ``limit`` long when ``truncated`` is set.
        limit: Byte cap.
        truncated: Whether bytes beyond ``data`` were discarded.
    """
    if len(data) > limit:
        data, truncated = data[:limit], True
    text = data.decode("utf-8", errors="replace")
    return text + TRUNCATION_MARKER if truncated else text
