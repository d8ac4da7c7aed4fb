"""
Agent memory for pincer.

A key-value store scoped per agent, used by the ``memory`` tool. Persistent
backends implement ``MemoryStore``; ``InMemoryStore`` keeps entries in
process.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from datetime import datetime, timezone
from typing import Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class MemoryStoreError(Exception):
    """Base exception for memory store errors."""

    pass


class MemoryKeyNotFoundError(MemoryStoreError):
    """The key is not stored for this agent."""

    pass


class ImmutableKeyError(MemoryStoreError):
    """The key is immutable and already set."""

    pass


def content_hash(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()


class MemoryEntry(BaseModel):
    """A stored memory value."""

    agent_id: str
    key: str
    value: str
    hash: str = ""
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MemoryStore(Protocol):
    """Storage boundary for agent memory."""

    def get(self, agent_id: str, key: str) -> MemoryEntry: ...

    def set(self, agent_id: str, key: str, value: str) -> None: ...

    def delete(self, agent_id: str, key: str) -> None: ...

    def list(self, agent_id: str) -> list[MemoryEntry]: ...

    def search(self, agent_id: str, query: str) -> list[MemoryEntry]: ...


class InMemoryStore:
    """
    Thread-safe in-process memory store.

    Keys listed in ``immutable_keys`` can be set once and never changed or
    deleted.
    """

    def __init__(self, immutable_keys: list[str] | None = None):
        self._entries: dict[tuple[str, str], MemoryEntry] = {}
        self._immutable = set(immutable_keys or [])
        self._lock = threading.Lock()

    def get(self, agent_id: str, key: str) -> MemoryEntry:
        """
        Get an entry.

        Raises:
            MemoryKeyNotFoundError: If the key is not stored.
        """
        with self._lock:
            entry = self._entries.get((agent_id, key))
        if entry is None:
            raise MemoryKeyNotFoundError(f"memory: {key!r} not found for agent {agent_id!r}")
        return entry

    def set(self, agent_id: str, key: str, value: str) -> None:
        """
        Store or replace an entry.

        Raises:
            ImmutableKeyError: If the key is immutable and already set.
        """
        with self._lock:
            if key in self._immutable and (agent_id, key) in self._entries:
                raise ImmutableKeyError(f"memory: key {key!r} is immutable and already set")
            self._entries[(agent_id, key)] = MemoryEntry(
                agent_id=agent_id, key=key, value=value, hash=content_hash(value)
            )
        logger.debug(f"Stored memory {key!r} for agent {agent_id!r}")

    def delete(self, agent_id: str, key: str) -> None:
        """
        Delete an entry.

        Raises:
            ImmutableKeyError: If the key is immutable.
            MemoryKeyNotFoundError: If the key is not stored.
        """
        if key in self._immutable:
            raise ImmutableKeyError(f"memory: key {key!r} is immutable and cannot be deleted")
        with self._lock:
            if self._entries.pop((agent_id, key), None) is None:
                raise MemoryKeyNotFoundError(f"memory: {key!r} not found for agent {agent_id!r}")

    def list(self, agent_id: str) -> list[MemoryEntry]:
        """All entries of an agent, ordered by key."""
        with self._lock:
            entries = [e for (owner, _), e in self._entries.items() if owner == agent_id]
        return sorted(entries, key=lambda e: e.key)

    def search(self, agent_id: str, query: str) -> list[MemoryEntry]:
        """Entries whose key or value contains ``query`` (case-insensitive), newest first."""
        needle = query.lower()
        with self._lock:
            entries = [
                e
                for (owner, _), e in self._entries.items()
                if owner == agent_id and (needle in e.key.lower() or needle in e.value.lower())
            ]
        return sorted(entries, key=lambda e: e.updated_at, reverse=True)
