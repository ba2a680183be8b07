"""In-memory state store with snapshot/rollback transactions."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from ..interfaces.state_store import Key

logger = logging.getLogger(__name__)

# Keys are grouped by their first two parts, e.g. ("position", user).
_INDEX_DEPTH = 2


def _sort_key(key: Key) -> tuple[str, ...]:
    return tuple(str(part) for part in key)


class MemoryStateStore:
    """Dict-backed store. Values are immutable, so a shallow copy is a snapshot."""

    def __init__(self, data: dict[Key, Any] | None = None) -> None:
        self._data: dict[Key, Any] = dict(data or {})
        self._index = self._build_index(self._data)
        self._depth = 0

    @staticmethod
    def _build_index(keys: Iterable[Key]) -> dict[Key, set[Key]]:
        index: dict[Key, set[Key]] = {}
        for key in keys:
            index.setdefault(key[:_INDEX_DEPTH], set()).add(key)
        return index

    def get(self, key: Key, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: Key, value: Any) -> None:
        if key not in self._data:
            self._index.setdefault(key[:_INDEX_DEPTH], set()).add(key)
        self._data[key] = value

    def has(self, key: Key) -> bool:
        return key in self._data

    def keys(self, prefix: Key = ()) -> list[Key]:
        n = len(prefix)
        if n >= _INDEX_DEPTH:
            candidates: Iterable[Key] = self._index.get(prefix[:_INDEX_DEPTH], ())
        else:
            candidates = self._data
        return sorted((k for k in candidates if k[:n] == prefix), key=_sort_key)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All-or-nothing block; nested blocks join the outermost one.

        A failing ``_commit`` rolls the in-memory state back as well.
        """
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshot = dict(self._data)
        self._depth = 1
        try:
            yield
            self._depth = 0
            self._commit()
        except BaseException:
            self._data = snapshot
            self._index = self._build_index(snapshot)
            logger.debug("Transaction rolled back")
            raise
        finally:
            self._depth = 0

    def _commit(self) -> None:
        """Hook for persistent backends; called after a successful outermost block."""
