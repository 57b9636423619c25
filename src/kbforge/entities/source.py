"""Source and bot records owned by the surrounding application."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from kbforge.entities.chunk import SourceType


class SourceStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SourceRecord(BaseModel):
    """
    A document or website whose content is ingested into a bot's knowledge base.

    The pipeline is the only writer of ``status``, ``content_ref`` and ``error``.
    """

    id: str
    bot_id: str
    source_type: SourceType
    locator: str  # file path for documents, URL for websites
    status: SourceStatus = SourceStatus.PENDING
    content_type: str | None = None
    content_ref: str | None = None
    error: str | None = None
    last_scraped: datetime | None = None
    updated_at: datetime | None = None


class BotConfig(BaseModel):
    """Embedding settings of a bot."""

    bot_id: str
    embedding_provider: str
