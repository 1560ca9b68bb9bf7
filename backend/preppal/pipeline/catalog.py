"""Catalog lookups consumed by the shopping-list matcher.

``CatalogLookup`` is the read-only interface the matcher depends on. Every
finder returns the first *active* record by ascending catalog id, or None.

- ``InMemoryCatalog``: a fixed record set (sample catalog in development).
- ``PostgresCatalog``: queries the ``products`` / ``product_keywords`` tables
  through the shared asyncpg pool.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from preppal.database import CONNECTION_ERRORS, Database, DatabaseUnavailableError
from preppal.models.contracts import CatalogRecord

if TYPE_CHECKING:
    from collections.abc import Set

logger = structlog.get_logger()


class CatalogUnavailableError(Exception):
    """The catalog cannot be reached at all; no list can be resolved."""


class CatalogLookupError(Exception):
    """A single lookup failed. Scoped to one item, never to the whole list."""


class CatalogLookup(Protocol):
    async def ping(self) -> None: ...

    async def find_by_code(self, code: str) -> CatalogRecord | None: ...

    async def find_by_name_pattern(self, text: str) -> CatalogRecord | None: ...

    async def find_by_keywords(self, tokens: Set[str]) -> CatalogRecord | None: ...


# === In-memory ===


class InMemoryCatalog:
    def __init__(self, records: Iterable[CatalogRecord]) -> None:
        self._records = sorted(records, key=lambda r: r.id)

    def __len__(self) -> int:
        return len(self._records)

    def _active(self) -> Iterable[CatalogRecord]:
        return (r for r in self._records if r.is_active)

    async def ping(self) -> None:
        return None

    async def find_by_code(self, code: str) -> CatalogRecord | None:
        return next((r for r in self._active() if r.reference_code == code), None)

    async def find_by_name_pattern(self, text: str) -> CatalogRecord | None:
        needle = text.lower()
        return next((r for r in self._active() if needle in r.name.lower()), None)

    async def find_by_keywords(self, tokens: Set[str]) -> CatalogRecord | None:
        if not tokens:
            return None
        return next((r for r in self._active() if r.keywords & tokens), None)


# === PostgreSQL ===

_SELECT_PRODUCT = """
    SELECT p.id, p.sku, p.name, p.category, p.price, p.discount, p.stock,
           p.is_active, p.primary_image_url,
           COALESCE(
               (SELECT array_agg(k.keyword) FROM product_keywords k WHERE k.product_id = p.id),
               ARRAY[]::text[]
           ) AS keywords
    FROM products p
"""

SQL_FIND_BY_CODE = _SELECT_PRODUCT + """
    WHERE p.is_active AND p.sku = $1
    ORDER BY p.id
    LIMIT 1
"""

SQL_FIND_BY_NAME = _SELECT_PRODUCT + """
    WHERE p.is_active AND p.name ILIKE '%' || $1 || '%' ESCAPE '\\'
    ORDER BY p.id
    LIMIT 1
"""

SQL_FIND_BY_KEYWORDS = _SELECT_PRODUCT + """
    WHERE p.is_active AND EXISTS (
        SELECT 1 FROM product_keywords pk
        WHERE pk.product_id = p.id AND pk.keyword = ANY($1::text[])
    )
    ORDER BY p.id
    LIMIT 1
"""


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the suggested name is matched literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def record_from_row(row: Any) -> CatalogRecord:
    return CatalogRecord(
        id=row["id"],
        reference_code=row["sku"],
        name=row["name"],
        category=row["category"],
        price=row["price"],
        discount=row["discount"] or 0,
        stock=row["stock"],
        is_active=row["is_active"],
        keywords=frozenset(k.lower() for k in (row["keywords"] or [])),
        primary_image_ref=row["primary_image_url"],
    )


class PostgresCatalog:
    """Catalog reads through the shared asyncpg pool."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def ping(self) -> None:
        try:
            pool = await self._db.get_pool()
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
        except (DatabaseUnavailableError, *CONNECTION_ERRORS) as exc:
            logger.warning("catalog_ping_failed", error=str(exc)[:200])
            raise CatalogUnavailableError(f"Catalog database unreachable: {exc}") from exc

    async def _fetch_one(self, query: str, arg: Any) -> CatalogRecord | None:
        try:
            pool = await self._db.get_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow(query, arg)
        except (DatabaseUnavailableError, *CONNECTION_ERRORS) as exc:
            raise CatalogLookupError(str(exc)) from exc
        return record_from_row(row) if row is not None else None

    async def find_by_code(self, code: str) -> CatalogRecord | None:
        return await self._fetch_one(SQL_FIND_BY_CODE, code)

    async def find_by_name_pattern(self, text: str) -> CatalogRecord | None:
        return await self._fetch_one(SQL_FIND_BY_NAME, escape_like(text))

    async def find_by_keywords(self, tokens: Set[str]) -> CatalogRecord | None:
        if not tokens:
            return None
        return await self._fetch_one(SQL_FIND_BY_KEYWORDS, sorted(tokens))
