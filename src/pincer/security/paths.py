"""
Path guard for pincer.

Every path is compared in canonical form: absolute, normalized, and with
symlinks resolved. Links are followed even when their target does not exist
yet, and missing components are kept as written, so neither a symlinked
directory nor a dangling link can smuggle a new file out of an allowed root.
"""

import os
from collections.abc import Iterable

from pincer.security.exceptions import PathNotAllowedError, ReadOnlyPathError


def resolve_path(path: str | os.PathLike[str]) -> str:
    """
    Canonicalize a path.

    Args:
        path: Absolute or relative path. It does not need to exist.

    Returns:
        The absolute, symlink-resolved path.
    """
    # Non-strict realpath follows dangling links to their target and keeps
    # components that do not exist.
    return os.path.realpath(os.path.abspath(os.fspath(path)))


def is_subpath(child: str, parent: str) -> bool:
    """Whether ``child`` equals ``parent`` or lies beneath it. Both must be canonical."""
    if child == parent:
        return True
    prefix = parent if parent.endswith(os.sep) else parent + os.sep
    return child.startswith(prefix)


def check_allowed(path: str | os.PathLike[str], allowed_paths: Iterable[str]) -> str:
    """
    Ensure a path lies under one of the allowed roots.

    Args:
        path: Path to check.
        allowed_paths: Allowed roots. Empty allows everything.

    Returns:
        The canonical path.

    Raises:
        PathNotAllowedError: If the path is outside every root.
    """
    resolved = resolve_path(path)
    roots = list(allowed_paths)
    if not roots:
        return resolved

    if any(is_subpath(resolved, resolve_path(root)) for root in roots):
        return resolved

    raise PathNotAllowedError(f"sandbox: path {os.fspath(path)!r} is not under any allowed directory", os.fspath(path))


def check_writable(path: str | os.PathLike[str], read_only_paths: Iterable[str]) -> str:
    """
    Ensure a path is not under a read-only root.

    Args:
        path: Path to check.
        read_only_paths: Read-only roots. Empty makes nothing read-only.

    Returns:
        The canonical path.

    Raises:
        ReadOnlyPathError: If the path is under a read-only root.
    """
    resolved = resolve_path(path)
    for root in read_only_paths:
        if is_subpath(resolved, resolve_path(root)):
            raise ReadOnlyPathError(
                f"sandbox: path {os.fspath(path)!r} is under read-only directory {root!r}", os.fspath(path)
            )
    return resolved
