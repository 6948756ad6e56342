"""Session persistence backends."""

from storage.base import SessionStore, StorageError
from storage.json_store import JsonSessionStore
from storage.memory_store import InMemorySessionStore

__all__ = ["SessionStore", "StorageError", "JsonSessionStore", "InMemorySessionStore"]
