"""Shared fixtures: an in-process API client over in-memory collaborators."""

import pytest
from httpx import ASGITransport, AsyncClient

from preppal.api.dependencies import Services
from preppal.main import app
from preppal.pipeline.catalog import InMemoryCatalog
from preppal.pipeline.intent import KeywordIntentResolver
from preppal.pipeline.sample_catalog import SAMPLE_PRODUCTS
from preppal.pipeline.saved_lists import InMemorySavedListStore


@pytest.fixture
def services() -> Services:
    """Fresh in-memory services per test (ASGITransport does not run lifespan)."""
    return Services(
        resolver=KeywordIntentResolver(),
        catalog=InMemoryCatalog(SAMPLE_PRODUCTS),
        saved_lists=InMemorySavedListStore(),
    )


@pytest.fixture
async def client(services):
    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
