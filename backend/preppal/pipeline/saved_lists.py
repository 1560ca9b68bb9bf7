"""Saved shopping lists: per-user storage for generated lists.

The in-memory store backs development and tests; ``PostgresSavedListStore``
writes to ``saved_shopping_lists`` / ``saved_list_items``.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Protocol

import structlog

from preppal.database import Database
from preppal.models.contracts import SavedListSummary, SaveListRequest
from preppal.pipeline.shopping import summarize

logger = structlog.get_logger()


class SavedListStore(Protocol):
    async def save(self, user_id: str, request: SaveListRequest) -> SavedListSummary: ...

    async def list_for_user(self, user_id: str) -> list[SavedListSummary]: ...


class InMemorySavedListStore:
    def __init__(self) -> None:
        self._lists: dict[str, list[SavedListSummary]] = {}

    def clear(self) -> None:
        self._lists.clear()

    async def save(self, user_id: str, request: SaveListRequest) -> SavedListSummary:
        summary = SavedListSummary(
            id=str(uuid.uuid4()),
            name=request.list_name,
            prompt=request.prompt,
            item_count=len(request.items),
            estimated_cost=summarize(request.items).estimated_cost,
            created_at=datetime.now(UTC),
        )
        self._lists.setdefault(user_id, []).append(summary)
        logger.info("saved_list_created", list_id=summary.id, item_count=summary.item_count)
        return summary

    async def list_for_user(self, user_id: str) -> list[SavedListSummary]:
        return list(reversed(self._lists.get(user_id, [])))


SQL_INSERT_LIST = """
    INSERT INTO saved_shopping_lists (id, user_id, name, prompt, estimated_cost)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING created_at
"""

SQL_INSERT_ITEM = """
    INSERT INTO saved_list_items
        (id, shopping_list_id, position, product_id, name, category, quantity, price)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
"""

SQL_LISTS_FOR_USER = """
    SELECT l.id, l.name, l.prompt, l.estimated_cost, l.created_at,
           (SELECT count(*) FROM saved_list_items i WHERE i.shopping_list_id = l.id) AS item_count
    FROM saved_shopping_lists l
    WHERE l.user_id = $1
    ORDER BY l.created_at DESC
"""


class PostgresSavedListStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    async def save(self, user_id: str, request: SaveListRequest) -> SavedListSummary:
        list_id = uuid.uuid4()
        estimated_cost = summarize(request.items).estimated_cost
        pool = await self._db.get_pool()
        async with pool.acquire() as conn, conn.transaction():
            created_at = await conn.fetchval(
                SQL_INSERT_LIST, list_id, user_id, request.list_name, request.prompt, estimated_cost
            )
            await conn.executemany(
                SQL_INSERT_ITEM,
                [
                    (
                        uuid.uuid4(),
                        list_id,
                        position,
                        item.catalog_id,
                        item.name,
                        item.category,
                        item.quantity,
                        item.resolved_price,
                    )
                    for position, item in enumerate(request.items)
                ],
            )
        logger.info("saved_list_created", list_id=str(list_id), item_count=len(request.items))
        return SavedListSummary(
            id=str(list_id),
            name=request.list_name,
            prompt=request.prompt,
            item_count=len(request.items),
            estimated_cost=estimated_cost,
            created_at=created_at,
        )

    async def list_for_user(self, user_id: str) -> list[SavedListSummary]:
        pool = await self._db.get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_LISTS_FOR_USER, user_id)
        return [
            SavedListSummary(
                id=str(row["id"]),
                name=row["name"],
                prompt=row["prompt"],
                item_count=row["item_count"],
                estimated_cost=row["estimated_cost"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
