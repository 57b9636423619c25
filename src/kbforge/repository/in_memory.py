import threading
from datetime import datetime, timezone
from typing import Callable

from kbforge.entities.chunk import SourceType
from kbforge.entities.source import BotConfig, SourceRecord, SourceStatus
from kbforge.errors import NotFoundError
from kbforge.repository.base import BaseSourceRepository


class InMemorySourceRepository(BaseSourceRepository):
    """Dictionary-backed repository for tests and the demo."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        self._bots: dict[str, str | None] = {}
        self._sources: dict[tuple[SourceType, str], SourceRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def add_bot(self, bot_id: str, embedding_provider: str | None = None) -> None:
        with self._lock:
            self._bots[bot_id] = embedding_provider

    def bot_exists(self, bot_id: str) -> bool:
        return bot_id in self._bots

    def get_bot_config(self, bot_id: str) -> BotConfig | None:
        provider = self._bots.get(bot_id)
        if provider is None:
            return None
        return BotConfig(bot_id=bot_id, embedding_provider=provider)

    def add_source(self, record: SourceRecord) -> SourceRecord:
        with self._lock:
            self._sources[(record.source_type, record.id)] = record
        return record

    def get_source(self, source_type: SourceType | str, source_id: str) -> SourceRecord | None:
        return self._sources.get((SourceType(source_type), source_id))

    def list_sources(
        self,
        bot_id: str,
        source_type: SourceType | str | None = None,
        status: SourceStatus | None = None,
    ) -> list[SourceRecord]:
        with self._lock:
            records = list(self._sources.values())
        return [
            r for r in records
            if r.bot_id == bot_id
            and (source_type is None or r.source_type == SourceType(source_type))
            and (status is None or r.status == status)
        ]

    def update_status(
        self,
        source_type: SourceType | str,
        source_id: str,
        status: SourceStatus,
        *,
        content_ref: str | None = None,
        error: str | None = None,
        last_scraped: datetime | None = None,
    ) -> SourceRecord:
        key = (SourceType(source_type), source_id)
        with self._lock:
            record = self._sources.get(key)
            if record is None:
                raise NotFoundError(f"Source not found: {source_type}/{source_id}")

            changes = {"status": status, "error": error, "updated_at": self._clock()}
            if content_ref is not None:
                changes["content_ref"] = content_ref
            if last_scraped is not None:
                changes["last_scraped"] = last_scraped

            record = record.model_copy(update=changes)
            self._sources[key] = record
        return record
