"""
Security exceptions for pincer.

Policy violations are raised before any side effect happens. Execution
outcomes such as a non-zero exit or a timeout are never exceptions; they are
reported in ``Result``.
"""


class SecurityError(Exception):
    """Base exception for the security layer."""

    pass


class PolicyViolationError(SecurityError):
    """An operation was refused by the active policy."""

    pass


class PathNotAllowedError(PolicyViolationError):
    """Path is outside every allowed root."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class ReadOnlyPathError(PolicyViolationError):
    """Path is under a read-only root."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class NetworkDeniedError(PolicyViolationError):
    """Network access is not permitted for this destination."""

    pass


class SandboxError(SecurityError):
    """The sandbox could not run the command at all (empty program, no runtime)."""

    pass
