"""pincer agent memory."""

from pincer.memory.store import (
    ImmutableKeyError,
    InMemoryStore,
    MemoryEntry,
    MemoryKeyNotFoundError,
    MemoryStore,
    MemoryStoreError,
)

__all__ = [
    "ImmutableKeyError",
    "InMemoryStore",
    "MemoryEntry",
    "MemoryKeyNotFoundError",
    "MemoryStore",
    "MemoryStoreError",
]
