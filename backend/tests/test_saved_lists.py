"""Tests for saved shopping list stores."""

import asyncio
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from preppal.database import Database
from preppal.models.contracts import MatchedItem, SaveListRequest
from preppal.pipeline.saved_lists import (
    SQL_INSERT_ITEM,
    SQL_INSERT_LIST,
    SQL_LISTS_FOR_USER,
    InMemorySavedListStore,
    PostgresSavedListStore,
)


def _item(name="Flashlight", price="12.99", qty=2, catalog_id=16):
    return MatchedItem(
        name=name,
        category="Safety",
        unit_price=Decimal(price),
        quantity=qty,
        catalog_id=catalog_id,
        resolved_price=Decimal(price),
        in_stock=catalog_id is not None,
        available_stock=10 if catalog_id is not None else 0,
    )


def _request(name="Camping weekend", items=None):
    return SaveListRequest(
        list_name=name,
        prompt="camping",
        items=items or [_item(), _item("Insect Repellent", "8.99", 1, 17)],
    )


def _pool_with(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__ = AsyncMock(return_value=conn)
    pool.acquire.return_value.__aexit__ = AsyncMock(return_value=False)
    return pool


class TestInMemorySavedListStore:
    def test_save_returns_summary(self):
        store = InMemorySavedListStore()
        summary = asyncio.run(store.save("user-1", _request()))
        uuid.UUID(summary.id)
        assert summary.name == "Camping weekend"
        assert summary.item_count == 2
        assert summary.estimated_cost == Decimal("34.97")

    def test_lists_are_per_user_newest_first(self):
        store = InMemorySavedListStore()
        asyncio.run(store.save("user-1", _request("first")))
        asyncio.run(store.save("user-1", _request("second")))
        asyncio.run(store.save("user-2", _request("other")))
        names = [s.name for s in asyncio.run(store.list_for_user("user-1"))]
        assert names == ["second", "first"]

    def test_listed_summary_matches_saved(self):
        """Only the summary is kept; listing returns exactly what save returned."""
        store = InMemorySavedListStore()
        saved = asyncio.run(store.save("user-1", _request()))
        listed = asyncio.run(store.list_for_user("user-1"))
        assert listed == [saved]
        listed.clear()
        assert asyncio.run(store.list_for_user("user-1")) == [saved]

    def test_unknown_user_has_no_lists(self):
        assert asyncio.run(InMemorySavedListStore().list_for_user("nobody")) == []

    def test_clear(self):
        store = InMemorySavedListStore()
        asyncio.run(store.save("user-1", _request()))
        store.clear()
        assert asyncio.run(store.list_for_user("user-1")) == []


class TestPostgresSavedListStore:
    def test_save_inserts_list_and_items(self):
        created = datetime(2026, 1, 1, tzinfo=UTC)
        conn = MagicMock()
        conn.fetchval = AsyncMock(return_value=created)
        conn.executemany = AsyncMock()
        conn.transaction.return_value.__aenter__ = AsyncMock(return_value=None)
        conn.transaction.return_value.__aexit__ = AsyncMock(return_value=False)
        store = PostgresSavedListStore(Database(dsn="postgresql://test", pool=_pool_with(conn)))

        items = [_item(), _item("Mystery", "4.99", 1, None)]
        summary = asyncio.run(store.save("user-1", _request(items=items)))

        assert summary.created_at == created
        assert summary.item_count == 2
        assert summary.estimated_cost == Decimal("30.97")
        args = conn.fetchval.call_args.args
        assert args[0] == SQL_INSERT_LIST
        assert args[2:] == ("user-1", "Camping weekend", "camping", Decimal("30.97"))

        sql, rows = conn.executemany.call_args.args
        assert sql == SQL_INSERT_ITEM
        assert [r[2] for r in rows] == [0, 1]
        assert [r[3] for r in rows] == [16, None]
        assert all(r[1] == args[1] for r in rows)

    def test_list_for_user(self):
        list_id = uuid.uuid4()
        created = datetime(2026, 1, 1, tzinfo=UTC)
        conn = AsyncMock()
        conn.fetch.return_value = [
            {
                "id": list_id,
                "name": "Party",
                "prompt": None,
                "estimated_cost": Decimal("46.93"),
                "created_at": created,
                "item_count": 6,
            }
        ]
        store = PostgresSavedListStore(Database(dsn="postgresql://test", pool=_pool_with(conn)))
        result = asyncio.run(store.list_for_user("user-1"))
        assert len(result) == 1
        assert result[0].id == str(list_id)
        assert result[0].item_count == 6
        conn.fetch.assert_awaited_once_with(SQL_LISTS_FOR_USER, "user-1")
