from kbforge.storage.kv.base import BaseKVStore
from kbforge.storage.kv.in_memory import InMemoryKV
from kbforge.storage.kv.sqlite import SQLiteKV

__all__ = ["BaseKVStore", "InMemoryKV", "SQLiteKV"]
