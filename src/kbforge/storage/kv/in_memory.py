import threading

from kbforge.storage.kv.base import BaseKVStore


class InMemoryKV(BaseKVStore):
    """
    Thread-safe in-memory key-value store.
    Not persistent; used by tests and the demo.
    """

    def __init__(self):
        self._store: dict[str, str] = {}
        self._lock = threading.Lock()

    def mget(self, keys: list[str]) -> list[str | None]:
        with self._lock:
            return [self._store.get(k) for k in keys]

    def mset(self, data: dict[str, str]) -> None:
        with self._lock:
            self._store.update(data)

    def delete(self, keys: list[str]) -> None:
        with self._lock:
            for k in keys:
                self._store.pop(k, None)

    def __len__(self) -> int:
        return len(self._store)
