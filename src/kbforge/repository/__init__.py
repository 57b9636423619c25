from kbforge.repository.base import BaseSourceRepository
from kbforge.repository.in_memory import InMemorySourceRepository
from kbforge.repository.sql import SQLSourceRepository

__all__ = ["BaseSourceRepository", "InMemorySourceRepository", "SQLSourceRepository"]
