from abc import ABC, abstractmethod


class BaseKVStore(ABC):
    """
    Abstract Base Class for Key-Value Stores.

    Values are strings; callers serialize structured data themselves.
    Used by the ContentStore to keep extracted chunk sets.
    """

    @abstractmethod
    def mget(self, keys: list[str]) -> list[str | None]:
        """Get multiple values, None for missing keys."""
        pass

    @abstractmethod
    def mset(self, data: dict[str, str]) -> None:
        """Set multiple values, replacing existing ones."""
        pass

    @abstractmethod
    def delete(self, keys: list[str]) -> None:
        """Delete multiple keys. Missing keys are ignored."""
        pass

    def get(self, key: str) -> str | None:
        results = self.mget([key])
        return results[0] if results else None

    def set(self, key: str, value: str) -> None:
        self.mset({key: value})
