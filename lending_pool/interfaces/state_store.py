"""State store protocol — owned key/value state with atomic transactions."""
from contextlib import AbstractContextManager
from typing import Any, Hashable, Protocol

Key = tuple[Hashable, ...]


class StateStore(Protocol):
    """Abstract interface for the persistent state behind the pool.

    Keys are tuples such as ``("position", user, symbol)``. Values must be
    immutable. Changes made inside ``transaction()`` are discarded if the
    block raises.
    """

    def get(self, key: Key, default: Any = None) -> Any: ...

    def set(self, key: Key, value: Any) -> None: ...

    def has(self, key: Key) -> bool: ...

    def keys(self, prefix: Key = ()) -> list[Key]: ...

    def transaction(self) -> AbstractContextManager[None]: ...
