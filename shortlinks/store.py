"""Alias registry: the storage abstraction behind every link operation.

The service never talks to a database directly. It is handed a ``LinkStore``
whose contract is small enough to back with a dict in tests and with
PostgreSQL in production.

Store Contract
==============
::
    LinkStore
    ├─ get(alias)                -> LinkRecord | None
    ├─ put_if_absent(record)     -> bool   (True = inserted, False = alias taken)
    ├─ register_click(alias, at) -> bool   (False = alias unknown)
    ├─ list_recent(offset, limit)-> list[LinkRecord]   newest first
    ├─ count()                   -> int
    ├─ ping()                    -> bool
    └─ initialize() / close()

Concurrent Create Diagram
=========================
::
    caller A ──┐                 ┌──> True  (201 Created)
               ├─ put_if_absent ─┤
    caller B ──┘   (atomic per   └──> False (409 Conflict)
                    alias key)

Key Behaviours
===============
- put_if_absent is the only write path for new aliases and is atomic per
  alias. In memory there is no await between the check and the insert; in
  SQL the unique index on ``links.alias`` decides the winner.
- LinkRecord is frozen. Click registration swaps in a new record (memory) or
  runs one UPDATE with ``click_count + 1`` (SQL), so readers never see a
  half-written record.
- target_url is never rewritten after insert.

Classes:
    LinkRecord:  Immutable stored link.
    LinkStore:  Abstract store interface.
    InMemoryLinkStore:  Dict-backed store for tests and local runs.
    SqlAlchemyLinkStore:  Async SQLAlchemy store for production.
"""

import datetime
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shortlinks.config import Settings
from shortlinks.database import close_db, create_engine, create_session_factory, init_db
from shortlinks.enums import LinkStatus
from shortlinks.models import Link

__all__ = ["LinkRecord", "LinkStore", "InMemoryLinkStore", "SqlAlchemyLinkStore", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class LinkRecord:
    alias: str
    target_url: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None
    click_count: int = 0
    last_accessed_at: datetime.datetime | None = None

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) >= self.expires_at

    def status(self, now: datetime.datetime | None = None) -> LinkStatus:
        return LinkStatus.EXPIRED if self.is_expired(now) else LinkStatus.ACTIVE


class LinkStore(ABC):
    """Interface for link stores.

    Subclassing:
        Backend-specific implementations must implement every abstract
        method. ``initialize`` and ``close`` default to no-ops.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open pools)."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def get(self, alias: str) -> LinkRecord | None:
        """Return the record stored under ``alias``, or None."""

    @abstractmethod
    async def put_if_absent(self, record: LinkRecord) -> bool:
        """Insert ``record`` unless its alias is already stored.

        Returns:
            bool: True if this call inserted the record, False if the alias
            was already taken. Exactly one of several concurrent callers for
            the same alias gets True.
        """

    @abstractmethod
    async def register_click(self, alias: str, at: datetime.datetime) -> bool:
        """Increment the click count and set ``last_accessed_at`` to ``at``."""

    @abstractmethod
    async def list_recent(self, offset: int, limit: int) -> list[LinkRecord]:
        """Return up to ``limit`` records, newest first, skipping ``offset``."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored records."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the backend answers."""


class InMemoryLinkStore(LinkStore):
    """Dict-backed store.

    Safe for any number of concurrent coroutines on one event loop: no method
    suspends between reading and writing ``_records``.
    """

    def __init__(self) -> None:
        self._records: dict[str, LinkRecord] = {}
        self._sequence: dict[str, int] = {}
        self._counter = itertools.count()

    async def get(self, alias: str) -> LinkRecord | None:
        return self._records.get(alias)

    async def put_if_absent(self, record: LinkRecord) -> bool:
        stored = self._records.setdefault(record.alias, record)
        if stored is not record:
            return False
        self._sequence[record.alias] = next(self._counter)
        return True

    async def register_click(self, alias: str, at: datetime.datetime) -> bool:
        current = self._records.get(alias)
        if current is None:
            return False
        self._records[alias] = replace(
            current,
            click_count=current.click_count + 1,
            last_accessed_at=at,
        )
        return True

    async def list_recent(self, offset: int, limit: int) -> list[LinkRecord]:
        ordered = sorted(
            self._records.values(),
            key=lambda record: (record.created_at, self._sequence[record.alias]),
            reverse=True,
        )
        return ordered[offset : offset + limit]

    async def count(self) -> int:
        return len(self._records)

    async def ping(self) -> bool:
        return True


class SqlAlchemyLinkStore(LinkStore):
    """Async SQLAlchemy store; one short-lived session per operation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "SqlAlchemyLinkStore":
        engine = create_engine(settings)
        return cls(create_session_factory(engine), engine=engine)

    async def initialize(self) -> None:
        if self._engine is not None:
            await init_db(self._engine)

    async def close(self) -> None:
        if self._engine is not None:
            await close_db(self._engine)

    async def get(self, alias: str) -> LinkRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(select(Link).where(Link.alias == alias))
            link = result.scalar_one_or_none()
        return _to_record(link) if link is not None else None

    async def put_if_absent(self, record: LinkRecord) -> bool:
        async with self._session_factory() as session:
            session.add(
                Link(
                    alias=record.alias,
                    target_url=record.target_url,
                    created_at=record.created_at,
                    expires_at=record.expires_at,
                    click_count=record.click_count,
                    last_accessed_at=record.last_accessed_at,
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
        return True

    async def register_click(self, alias: str, at: datetime.datetime) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(Link)
                .where(Link.alias == alias)
                .values(click_count=Link.click_count + 1, last_accessed_at=at)
            )
            await session.commit()
        return result.rowcount > 0

    async def list_recent(self, offset: int, limit: int) -> list[LinkRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Link).order_by(Link.created_at.desc(), Link.id.desc()).offset(offset).limit(limit)
            )
            links = result.scalars().all()
        return [_to_record(link) for link in links]

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(Link))
            return int(result.scalar_one())

    async def ping(self) -> bool:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True


def _ensure_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    # Some drivers hand back naive datetimes for TIMESTAMPTZ columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def _to_record(link: Link) -> LinkRecord:
    return LinkRecord(
        alias=link.alias,
        target_url=link.target_url,
        created_at=_ensure_utc(link.created_at),
        expires_at=_ensure_utc(link.expires_at),
        click_count=link.click_count or 0,
        last_accessed_at=_ensure_utc(link.last_accessed_at),
    )
