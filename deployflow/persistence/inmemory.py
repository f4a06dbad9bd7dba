"""In-memory implementation of the entity store."""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Union

from pydantic import BaseModel

from ..status import EntityKind
from .codec import as_kind, decode_collection, encode_collection
from .store import EntityStore

logger = logging.getLogger(__name__)


class InMemoryEntityStore(EntityStore):
    """Store collections in local memory.

    Useful for tests or throwaway runs. Collections are kept as encoded JSON
    so loads hand back fresh objects with the same typing guarantees as the
    durable backends. Data is not persisted across process restarts.
    """

    def __init__(self) -> None:
        self._documents: Dict[EntityKind, str] = {}

    def load(self, kind: Union[EntityKind, str]) -> List[BaseModel]:
        kind = as_kind(kind)
        raw = self._documents.get(kind)
        if raw is None:
            return []
        try:
            return decode_collection(kind, raw)
        except ValueError as e:
            logger.error(f"Discarding unreadable {kind.value} collection: {e}")
            return []

    def save(self, kind: Union[EntityKind, str], collection: Sequence[BaseModel]) -> None:
        kind = as_kind(kind)
        self._documents[kind] = encode_collection(kind, collection)
