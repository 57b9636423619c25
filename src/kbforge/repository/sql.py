"""SQLModel-backed source repository."""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import UniqueConstraint
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine, select

from kbforge.entities.chunk import SourceType
from kbforge.entities.source import BotConfig, SourceRecord, SourceStatus
from kbforge.errors import NotFoundError
from kbforge.repository.base import BaseSourceRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Bot(SQLModel, table=True):
    """Chatbot owning a knowledge base."""
    __tablename__ = "bots"

    id: Optional[int] = Field(default=None, primary_key=True)
    bot_id: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=_utcnow)


class BotEmbeddingConfig(SQLModel, table=True):
    """Embedding provider selected for a bot."""
    __tablename__ = "bot_embedding_configs"

    id: Optional[int] = Field(default=None, primary_key=True)
    bot_id: str = Field(index=True, unique=True)
    embedding_provider: str  # openai, cohere, mock


class Source(SQLModel, table=True):
    """Uploaded document or scraped website."""
    __tablename__ = "sources"
    __table_args__ = (UniqueConstraint("source_type", "source_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    source_id: str = Field(index=True)
    source_type: str  # document, website
    bot_id: str = Field(index=True)
    locator: str
    status: str = SourceStatus.PENDING.value
    content_type: Optional[str] = None
    content_ref: Optional[str] = None
    error: Optional[str] = None
    last_scraped: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_record(self) -> SourceRecord:
        return SourceRecord(
            id=self.source_id,
            bot_id=self.bot_id,
            source_type=SourceType(self.source_type),
            locator=self.locator,
            status=SourceStatus(self.status),
            content_type=self.content_type,
            content_ref=self.content_ref,
            error=self.error,
            last_scraped=self.last_scraped,
            updated_at=self.updated_at,
        )


class SQLSourceRepository(BaseSourceRepository):
    """
    Repository over the application's relational database.

    Every operation runs in its own short session, so one instance can be
    shared between worker threads.

    Example:
        >>> repo = SQLSourceRepository.from_url("sqlite:///storage/kbforge.db")
        >>> repo.get_source("document", "doc-1")
    """

    def __init__(self, engine: Engine, clock: Callable[[], datetime] | None = None):
        self.engine = engine
        self._clock = clock or _utcnow
        SQLModel.metadata.create_all(engine)
        logger.info(f"Database initialized at {engine.url}")

    @classmethod
    def from_url(cls, database_url: str) -> "SQLSourceRepository":
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        return cls(create_engine(database_url, echo=False, connect_args=connect_args))

    def add_bot(self, bot_id: str, embedding_provider: str | None = None) -> None:
        with Session(self.engine) as session:
            if session.exec(select(Bot).where(Bot.bot_id == bot_id)).first() is None:
                session.add(Bot(bot_id=bot_id))
            if embedding_provider is not None:
                config = session.exec(
                    select(BotEmbeddingConfig).where(BotEmbeddingConfig.bot_id == bot_id)
                ).first()
                if config is None:
                    config = BotEmbeddingConfig(bot_id=bot_id, embedding_provider=embedding_provider)
                config.embedding_provider = embedding_provider
                session.add(config)
            session.commit()

    def bot_exists(self, bot_id: str) -> bool:
        with Session(self.engine) as session:
            return session.exec(select(Bot).where(Bot.bot_id == bot_id)).first() is not None

    def get_bot_config(self, bot_id: str) -> BotConfig | None:
        with Session(self.engine) as session:
            config = session.exec(
                select(BotEmbeddingConfig).where(BotEmbeddingConfig.bot_id == bot_id)
            ).first()
            if config is None:
                return None
            return BotConfig(bot_id=bot_id, embedding_provider=config.embedding_provider)

    def add_source(self, record: SourceRecord) -> SourceRecord:
        with Session(self.engine) as session:
            session.add(Source(
                source_id=record.id,
                source_type=record.source_type.value,
                bot_id=record.bot_id,
                locator=record.locator,
                status=record.status.value,
                content_type=record.content_type,
                content_ref=record.content_ref,
                error=record.error,
                last_scraped=record.last_scraped,
                updated_at=record.updated_at,
            ))
            session.commit()
        return record

    def _find(self, session: Session, source_type: SourceType | str, source_id: str) -> Source | None:
        statement = select(Source).where(
            Source.source_type == SourceType(source_type).value,
            Source.source_id == source_id,
        )
        return session.exec(statement).first()

    def get_source(self, source_type: SourceType | str, source_id: str) -> SourceRecord | None:
        with Session(self.engine) as session:
            row = self._find(session, source_type, source_id)
            return row.to_record() if row else None

    def list_sources(
        self,
        bot_id: str,
        source_type: SourceType | str | None = None,
        status: SourceStatus | None = None,
    ) -> list[SourceRecord]:
        statement = select(Source).where(Source.bot_id == bot_id)
        if source_type is not None:
            statement = statement.where(Source.source_type == SourceType(source_type).value)
        if status is not None:
            statement = statement.where(Source.status == status.value)
        with Session(self.engine) as session:
            return [row.to_record() for row in session.exec(statement).all()]

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
        with Session(self.engine) as session:
            row = self._find(session, source_type, source_id)
            if row is None:
                raise NotFoundError(f"Source not found: {source_type}/{source_id}")

            row.status = status.value
            row.error = error
            row.updated_at = self._clock()
            if content_ref is not None:
                row.content_ref = content_ref
            if last_scraped is not None:
                row.last_scraped = last_scraped

            session.add(row)
            session.commit()
            session.refresh(row)
            return row.to_record()
