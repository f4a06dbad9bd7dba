"""Serialization of entity collections to plain JSON records."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence, Type, Union

from pydantic import BaseModel

from ..models import Execution, Notification, Project, Template
from ..status import EntityKind

MODELS: Dict[EntityKind, Type[BaseModel]] = {
    EntityKind.PROJECTS: Project,
    EntityKind.TEMPLATES: Template,
    EntityKind.EXECUTIONS: Execution,
    EntityKind.NOTIFICATIONS: Notification,
}


def as_kind(kind: Union[EntityKind, str]) -> EntityKind:
    return kind if isinstance(kind, EntityKind) else EntityKind(kind)


def to_record(item: BaseModel) -> Dict[str, Any]:
    """Dump a model with ISO-8601 timestamps and plain enum values."""
    return item.model_dump(mode="json")


def from_record(kind: EntityKind, record: Dict[str, Any]) -> BaseModel:
    return MODELS[kind].model_validate(record)


def to_records(kind: EntityKind, collection: Sequence[BaseModel]) -> List[Dict[str, Any]]:
    model = MODELS[kind]
    records = []
    for item in collection:
        if not isinstance(item, model):
            raise TypeError(
                f"Cannot store {type(item).__name__} in {kind.value} collection"
            )
        records.append(to_record(item))
    return records


def encode_collection(kind: EntityKind, collection: Sequence[BaseModel]) -> str:
    return json.dumps(to_records(kind, collection))


def decode_collection(kind: EntityKind, raw: str) -> List[BaseModel]:
    """Parse a stored collection. Raises ``ValueError`` on corrupt data."""
    records = json.loads(raw)
    if not isinstance(records, list):
        raise ValueError(f"Stored {kind.value} collection is not a list")
    return [from_record(kind, record) for record in records]
