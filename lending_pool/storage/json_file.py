"""JSON-file state store — MemoryStateStore that persists on commit."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any

from ..interfaces.state_store import Key
from ..models import RECORD_TYPES
from .memory import MemoryStateStore

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def _encode_value(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        name = type(value).__name__
        if name not in RECORD_TYPES:
            raise TypeError(f"Unsupported record type: {name}")
        return {"__type__": name, **asdict(value)}
    if value is None or isinstance(value, (bool, int, str)):
        return value
    raise TypeError(f"Unsupported value type: {type(value).__name__}")


def _decode_value(raw: Any) -> Any:
    if isinstance(raw, dict):
        fields = dict(raw)
        cls = RECORD_TYPES[fields.pop("__type__")]
        return cls(**fields)
    return raw


class JsonStateStore(MemoryStateStore):
    """Persistent store kept in a single JSON file.

    The file is rewritten atomically after every committed transaction; a
    rolled-back transaction never reaches disk, and a failed write rolls the
    in-memory state back too. Writes outside a transaction are persisted
    immediately.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(self._load())

    def set(self, key: Key, value: Any) -> None:
        if self._depth:
            super().set(key, value)
            return
        with self.transaction():
            super().set(key, value)

    def _load(self) -> dict[Key, Any]:
        if not self.path.exists():
            logger.info("State file %s not found, starting empty", self.path)
            return {}

        with open(self.path) as f:
            raw = json.load(f)

        version = raw.get("version")
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported state file version: {version}")

        data = {tuple(entry["key"]): _decode_value(entry["value"]) for entry in raw["entries"]}
        logger.info("Loaded %d state entries from %s", len(data), self.path)
        return data

    def _commit(self) -> None:
        payload = {
            "version": FORMAT_VERSION,
            "entries": [
                {"key": list(key), "value": _encode_value(self._data[key])}
                for key in self.keys()
            ],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            os.unlink(tmp_name)
            raise
