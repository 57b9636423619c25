from abc import ABC, abstractmethod
from datetime import datetime

from kbforge.entities.chunk import SourceType
from kbforge.entities.source import BotConfig, SourceRecord, SourceStatus


class BaseSourceRepository(ABC):
    """
    Abstract status sink for source and bot records.

    The surrounding application owns these records; the pipeline reads bot
    configuration through this interface and is the only writer of a
    source's ``status``, ``content_ref``, ``error`` and ``last_scraped``.
    """

    @abstractmethod
    def add_bot(self, bot_id: str, embedding_provider: str | None = None) -> None:
        """Register a bot, optionally with its embedding provider."""
        pass

    @abstractmethod
    def bot_exists(self, bot_id: str) -> bool:
        pass

    @abstractmethod
    def get_bot_config(self, bot_id: str) -> BotConfig | None:
        """Return the bot's embedding configuration, None if it has none."""
        pass

    @abstractmethod
    def add_source(self, record: SourceRecord) -> SourceRecord:
        pass

    @abstractmethod
    def get_source(self, source_type: SourceType | str, source_id: str) -> SourceRecord | None:
        pass

    @abstractmethod
    def list_sources(
        self,
        bot_id: str,
        source_type: SourceType | str | None = None,
        status: SourceStatus | None = None,
    ) -> list[SourceRecord]:
        pass

    @abstractmethod
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
        """
        Transition a source to ``status``.

        ``error`` is cleared unless given; ``content_ref`` and
        ``last_scraped`` are only overwritten when given.

        Raises:
            NotFoundError: If the source does not exist
        """
        pass
