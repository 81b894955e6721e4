"""Persistence layer: repository contract and key-value backends."""

from .repository import KeyValueSecurityRepository, SecurityRepository
from .stores import JsonFileStore, KeyValueStore, MemoryStore, SqlStore, StorageError

__all__ = [
    "JsonFileStore",
    "KeyValueSecurityRepository",
    "KeyValueStore",
    "MemoryStore",
    "SecurityRepository",
    "SqlStore",
    "StorageError",
]
