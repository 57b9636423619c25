from kbforge.storage.content_store import ContentStore
from kbforge.storage.kv import BaseKVStore, InMemoryKV, SQLiteKV

__all__ = ["ContentStore", "BaseKVStore", "InMemoryKV", "SQLiteKV"]
