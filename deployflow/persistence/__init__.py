"""Persistence layer for deployflow entities."""

from __future__ import annotations

from typing import Optional

from ..config import DeployflowConfig, load_config
from .inmemory import InMemoryEntityStore
from .jsonfile import JsonFileEntityStore
from .repository import EntityRepository
from .sqlite import SQLiteEntityStore
from .store import EntityStore


def get_store(
    store_url: Optional[str] = None, config: Optional[DeployflowConfig] = None
) -> EntityStore:
    """Factory function to build an entity store.

    The backend is selected from ``store_url`` (explicit, or from the loaded
    configuration which already honours ``DEPLOYFLOW_STORE_URL``):
    ``file://<directory>`` for JSON documents, ``sqlite://<path>`` for SQLite
    and ``memory://`` for a throwaway in-memory store. Each call returns a new
    instance; the caller owns it.
    """

    if store_url is None:
        config = config or load_config()
        store_url = config.store_url

    if store_url.startswith("memory://"):
        return InMemoryEntityStore()
    if store_url.startswith("sqlite://"):
        return SQLiteEntityStore(store_url.replace("sqlite://", "", 1))
    if store_url.startswith("file://"):
        return JsonFileEntityStore(store_url.replace("file://", "", 1))
    raise ValueError(f"Unsupported store backend: {store_url}")


__all__ = [
    "EntityRepository",
    "EntityStore",
    "InMemoryEntityStore",
    "JsonFileEntityStore",
    "SQLiteEntityStore",
    "get_store",
]
