"""State store backends."""
from .json_file import JsonStateStore
from .memory import MemoryStateStore

__all__ = ["JsonStateStore", "MemoryStateStore"]
