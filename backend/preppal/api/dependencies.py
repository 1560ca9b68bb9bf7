"""Collaborators wired into the API, chosen from settings at startup."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from fastapi import Request

from preppal.config import settings
from preppal.database import Database
from preppal.pipeline.catalog import CatalogLookup, InMemoryCatalog, PostgresCatalog
from preppal.pipeline.intent import IntentResolver, get_intent_resolver
from preppal.pipeline.sample_catalog import SAMPLE_PRODUCTS
from preppal.pipeline.saved_lists import (
    InMemorySavedListStore,
    PostgresSavedListStore,
    SavedListStore,
)

logger = structlog.get_logger()


@dataclass
class Services:
    resolver: IntentResolver
    catalog: CatalogLookup
    saved_lists: SavedListStore
    database: Database | None = None

    async def aclose(self) -> None:
        if self.database is not None:
            await self.database.close()


def build_services() -> Services:
    resolver = get_intent_resolver()
    if settings.catalog_backend == "postgres":
        db = Database()
        services = Services(
            resolver=resolver,
            catalog=PostgresCatalog(db),
            saved_lists=PostgresSavedListStore(db),
            database=db,
        )
    else:
        services = Services(
            resolver=resolver,
            catalog=InMemoryCatalog(SAMPLE_PRODUCTS),
            saved_lists=InMemorySavedListStore(),
        )
    logger.info(
        "services_configured",
        catalog_backend=settings.catalog_backend,
        resolver=type(resolver).__name__,
    )
    return services


def get_services(request: Request) -> Services:
    return request.app.state.services
