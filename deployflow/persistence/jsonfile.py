"""JSON document store: one file per entity kind."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Sequence, Union

from pydantic import BaseModel

from ..errors import StoreError
from ..status import EntityKind
from .codec import as_kind, decode_collection, encode_collection
from .store import EntityStore

logger = logging.getLogger(__name__)


class JsonFileEntityStore(EntityStore):
    """Persist each collection as ``<directory>/<kind>.json``.

    Writes go to a temporary file in the same directory which then replaces
    the previous document, so a failed save leaves the old data intact.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, kind: EntityKind) -> Path:
        return self.directory / f"{kind.value}.json"

    def load(self, kind: Union[EntityKind, str]) -> List[BaseModel]:
        kind = as_kind(kind)
        path = self._path(kind)
        if not path.exists():
            return []
        try:
            return decode_collection(kind, path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load {kind.value} from {path}: {e}")
            return []

    def save(self, kind: Union[EntityKind, str], collection: Sequence[BaseModel]) -> None:
        kind = as_kind(kind)
        document = encode_collection(kind, collection)
        path = self._path(kind)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=f".{kind.value}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(document)
                os.replace(tmp_name, path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error(f"Failed to save {kind.value} to {path}: {e}")
            raise StoreError(f"Could not write {path}: {e}") from e
