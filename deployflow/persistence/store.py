"""Entity store abstraction for durable collections."""

from __future__ import annotations

from typing import List, Protocol, Sequence, Union

from pydantic import BaseModel

from ..status import EntityKind


class EntityStore(Protocol):
    """Protocol for keyed collection persistence backends.

    ``load`` never raises for absent or corrupt data; it returns an empty
    collection instead. ``save`` replaces the whole collection atomically.
    """

    def load(self, kind: Union[EntityKind, str]) -> List[BaseModel]:
        """Return every stored entity of ``kind`` in insertion order."""

    def save(self, kind: Union[EntityKind, str], collection: Sequence[BaseModel]) -> None:
        """Persist ``collection`` as the complete set of entities of ``kind``."""
