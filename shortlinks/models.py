"""SQLAlchemy ORM models for the shortlinks service.

This module defines the database schema used by ``SqlAlchemyLinkStore``.

Data Model Layout
=================
::
    links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ alias (VARCHAR(50) UNIQUE, INDEXED)
    ├─ target_url (VARCHAR(2048) NOT NULL)
    ├─ created_at (TIMESTAMPTZ NOT NULL)
    ├─ expires_at (TIMESTAMPTZ NULL)
    ├─ click_count (INTEGER DEFAULT 0)
    └─ last_accessed_at (TIMESTAMPTZ NULL)

How to Use
===========
**Step 1 - Import**::
    from shortlinks.models import Link

**Step 2 - Query by alias**::
    result = await session.execute(select(Link).where(Link.alias == "mario-long"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- The unique index on alias is what makes concurrent inserts of one alias
  resolve to a single row; the losing insert raises IntegrityError.
- created_at is written by the service, not by the database, so both store
  backends report identical timestamps.
- target_url has no update path.

Classes:
    Link:  A stored short link with its click statistics.
"""

import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shortlinks.database import Base

__all__ = ["Link"]


class Link(Base):
    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    alias: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    target_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_accessed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, alias='{self.alias}', click_count={self.click_count})>"
