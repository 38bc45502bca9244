"""Storage connector interface and the in-memory reference connector."""
from __future__ import annotations

from aumos_gatekeeper.storage.base import StorageConnector, StorageError
from aumos_gatekeeper.storage.memory import InMemoryStorage

__all__ = ["InMemoryStorage", "StorageConnector", "StorageError"]
