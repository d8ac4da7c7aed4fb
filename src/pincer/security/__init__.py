"""
Security and sandboxing for pincer.

This package provides the execution policy, the symlink-safe path guard,
and the process and container sandboxes that tools run through.
"""

from pincer.security.container import ContainerSandbox, detect_runtime
from pincer.security.exceptions import (
    NetworkDeniedError,
    PathNotAllowedError,
    PolicyViolationError,
    ReadOnlyPathError,
    SandboxError,
    SecurityError,
)
from pincer.security.factory import create_sandbox
from pincer.security.paths import check_allowed, check_writable, is_subpath, resolve_path
from pincer.security.policy import (
    DEFAULT_MAX_OUTPUT_BYTES,
    DEFAULT_TIMEOUT,
    TRUNCATION_MARKER,
    Command,
    NetworkAccess,
    Policy,
    Result,
    default_policy,
)
from pincer.security.sandbox import ProcessSandbox, Sandbox, run_process

__all__ = [
    "DEFAULT_MAX_OUTPUT_BYTES",
    "DEFAULT_TIMEOUT",
    "TRUNCATION_MARKER",
    "Command",
    "ContainerSandbox",
    "NetworkAccess",
    "NetworkDeniedError",
    "PathNotAllowedError",
    "Policy",
    "PolicyViolationError",
    "ProcessSandbox",
    "ReadOnlyPathError",
    "Result",
    "Sandbox",
    "SandboxError",
    "SecurityError",
    "check_allowed",
    "check_writable",
    "create_sandbox",
    "default_policy",
    "detect_runtime",
    "is_subpath",
    "resolve_path",
    "run_process",
]
