"""Unit tests for the link stores."""

import asyncio
import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.enums import LinkStatus
from shortlinks.models import Link
from shortlinks.store import InMemoryLinkStore, LinkRecord, SqlAlchemyLinkStore, utcnow

CREATED_AT = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)


def make_record(alias: str = "abc123", target_url: str = "https://example.com", **kwargs) -> LinkRecord:
    kwargs.setdefault("created_at", CREATED_AT)
    return LinkRecord(alias=alias, target_url=target_url, **kwargs)


# ============================================================================
# LINK RECORD
# ============================================================================


def test_record_without_expiry_never_expires() -> None:
    record = make_record()
    assert not record.is_expired()
    assert record.status() is LinkStatus.ACTIVE


def test_record_expiry_boundary() -> None:
    expires_at = CREATED_AT + datetime.timedelta(days=1)
    record = make_record(expires_at=expires_at)
    assert not record.is_expired(expires_at - datetime.timedelta(seconds=1))
    assert record.is_expired(expires_at)
    assert record.status(expires_at) is LinkStatus.EXPIRED


# ============================================================================
# IN-MEMORY STORE
# ============================================================================


class TestInMemoryLinkStore:
    @pytest.mark.asyncio
    async def test_put_if_absent_keeps_first(self) -> None:
        store = InMemoryLinkStore()
        assert await store.put_if_absent(make_record(target_url="https://first.example"))
        assert not await store.put_if_absent(make_record(target_url="https://second.example"))
        assert (await store.get("abc123")).target_url == "https://first.example"
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_get_unknown(self) -> None:
        assert await InMemoryLinkStore().get("nope") is None

    @pytest.mark.asyncio
    async def test_register_click_swaps_record(self) -> None:
        store = InMemoryLinkStore()
        original = make_record()
        await store.put_if_absent(original)
        at = utcnow()

        assert await store.register_click("abc123", at)

        updated = await store.get("abc123")
        assert updated.click_count == 1
        assert updated.last_accessed_at == at
        assert updated.target_url == original.target_url
        # Readers holding the old record still see a consistent snapshot.
        assert original.click_count == 0
        assert original.last_accessed_at is None

    @pytest.mark.asyncio
    async def test_register_click_unknown(self) -> None:
        assert not await InMemoryLinkStore().register_click("nope", utcnow())

    @pytest.mark.asyncio
    async def test_list_recent_orders_by_created_then_insertion(self) -> None:
        store = InMemoryLinkStore()
        await store.put_if_absent(make_record("older", created_at=CREATED_AT - datetime.timedelta(hours=1)))
        await store.put_if_absent(make_record("same-1"))
        await store.put_if_absent(make_record("same-2"))

        recent = await store.list_recent(offset=0, limit=10)
        assert [r.alias for r in recent] == ["same-2", "same-1", "older"]
        assert [r.alias for r in await store.list_recent(offset=1, limit=1)] == ["same-1"]

    @pytest.mark.asyncio
    async def test_concurrent_put_single_winner(self) -> None:
        store = InMemoryLinkStore()
        results = await asyncio.gather(
            *(store.put_if_absent(make_record(target_url=f"https://example.com/{i}")) for i in range(50))
        )
        assert results.count(True) == 1
        assert await store.count() == 1


# ============================================================================
# SQLALCHEMY STORE
# ============================================================================


@pytest.fixture
def mock_session() -> AsyncMock:
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def sql_store(mock_session: AsyncMock) -> SqlAlchemyLinkStore:
    session_factory = MagicMock()
    session_factory.return_value.__aenter__.return_value = mock_session
    session_factory.return_value.__aexit__.return_value = False
    return SqlAlchemyLinkStore(session_factory)


class TestSqlAlchemyLinkStore:
    @pytest.mark.asyncio
    async def test_put_if_absent_inserts(self, sql_store, mock_session) -> None:
        assert await sql_store.put_if_absent(make_record())

        mock_session.add.assert_called_once()
        added = mock_session.add.call_args.args[0]
        assert isinstance(added, Link)
        assert added.alias == "abc123"
        assert added.target_url == "https://example.com"
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_put_if_absent_conflict(self, sql_store, mock_session) -> None:
        mock_session.commit.side_effect = IntegrityError("INSERT INTO links", {}, Exception("duplicate key"))

        assert not await sql_store.put_if_absent(make_record())
        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_maps_row_and_normalizes_timezone(self, sql_store, mock_session) -> None:
        row = Link(
            alias="abc123",
            target_url="https://example.com",
            created_at=datetime.datetime(2024, 1, 1),
            expires_at=None,
            click_count=4,
            last_accessed_at=None,
        )
        result = MagicMock()
        result.scalar_one_or_none.return_value = row
        mock_session.execute.return_value = result

        record = await sql_store.get("abc123")

        assert record == LinkRecord(
            alias="abc123",
            target_url="https://example.com",
            created_at=CREATED_AT,
            click_count=4,
        )

    @pytest.mark.asyncio
    async def test_get_unknown(self, sql_store, mock_session) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = result

        assert await sql_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_register_click(self, sql_store, mock_session) -> None:
        result = MagicMock()
        result.rowcount = 1
        mock_session.execute.return_value = result

        assert await sql_store.register_click("abc123", utcnow())
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_register_click_unknown(self, sql_store, mock_session) -> None:
        result = MagicMock()
        result.rowcount = 0
        mock_session.execute.return_value = result

        assert not await sql_store.register_click("nope", utcnow())

    @pytest.mark.asyncio
    async def test_count(self, sql_store, mock_session) -> None:
        result = MagicMock()
        result.scalar_one.return_value = 3
        mock_session.execute.return_value = result

        assert await sql_store.count() == 3

    @pytest.mark.asyncio
    async def test_ping(self, sql_store, mock_session) -> None:
        assert await sql_store.ping()
        mock_session.execute.assert_awaited_once()
