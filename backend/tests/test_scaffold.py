"""Tests verifying the app scaffold: health, request IDs, error handlers, logging."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from preppal.config import Settings
from preppal.database import pg_dsn
from preppal.models.contracts import ErrorResponse


class TestHealthEndpoint:
    """Verify the health endpoint returns the expected shape."""

    @pytest.mark.asyncio
    async def test_health_returns_200(self, client):
        """Health endpoint returns 200 with status, version, environment and catalog fields."""
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["version"] == "0.1.0"
        assert body["environment"] == "development"
        assert body["catalog"] == "connected"

    @pytest.mark.asyncio
    async def test_health_catalog_disconnected(self, client, services):
        """A failing catalog ping is reported, but health still returns ok."""
        services.catalog = AsyncMock()
        services.catalog.ping.side_effect = OSError("connection refused")
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["catalog"] == "disconnected"


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated_when_absent(self, client):
        resp = await client.get("/health")
        uuid.UUID(resp.headers["X-Request-ID"])

    @pytest.mark.asyncio
    async def test_echoed_when_present(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "req-abc"})
        assert resp.headers["X-Request-ID"] == "req-abc"


class TestExceptionHandler:
    """Verify unhandled exceptions return consistent ErrorResponse JSON."""

    @pytest.mark.asyncio
    async def test_unhandled_exception_returns_500_json(self, services):
        """Unhandled exception returns 500 with ErrorResponse shape, not HTML."""
        from httpx import ASGITransport, AsyncClient

        from preppal.main import app

        app.state.services = services
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        with patch(
            "preppal.api.routes.shopping_lists.generate_shopping_list",
            side_effect=RuntimeError("unexpected bug"),
        ):
            async with AsyncClient(transport=transport, base_url="http://test") as c:
                resp = await c.post(
                    "/api/v1/shopping-lists/generate",
                    json={"prompt": "camping"},
                    headers={"X-User-ID": "user-1"},
                )
        assert resp.status_code == 500
        er = ErrorResponse.model_validate(resp.json())
        assert er.error == "internal_error"
        assert er.retryable is True
        assert er.message != ""
        assert resp.headers["X-Request-ID"] != ""
        uuid.UUID(resp.headers["X-Request-ID"])


class TestValidationErrorHandler:
    @pytest.mark.asyncio
    async def test_validation_returns_error_response_shape(self, client):
        """Wrong field type returns 422 with ErrorResponse shape, not FastAPI's detail array."""
        resp = await client.post(
            "/api/v1/shopping-lists/generate",
            json={"prompt": "camping", "preferences": {"max_budget": "lots"}},
            headers={"X-User-ID": "user-1"},
        )
        assert resp.status_code == 422
        er = ErrorResponse.model_validate(resp.json())
        assert er.error == "validation_error"
        assert er.retryable is False
        assert "max_budget" in er.message


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("CATALOG_BACKEND", "USE_MOCK_RESOLVER", "MAX_PROMPT_LENGTH"):
            monkeypatch.delenv(name, raising=False)
        s = Settings(_env_file=None)
        assert s.catalog_backend == "memory"
        assert s.use_mock_resolver is True
        assert s.max_prompt_length == 500

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CATALOG_BACKEND", "postgres")
        monkeypatch.setenv("MATCH_CONCURRENCY", "2")
        s = Settings(_env_file=None)
        assert s.catalog_backend == "postgres"
        assert s.match_concurrency == 2

    def test_pg_dsn_strips_driver(self):
        assert pg_dsn("postgresql+asyncpg://u:p@db:5432/x") == "postgresql://u:p@db:5432/x"


class TestBuildServices:
    def test_memory_backend(self):
        from preppal.api.dependencies import build_services
        from preppal.pipeline.catalog import InMemoryCatalog
        from preppal.pipeline.saved_lists import InMemorySavedListStore

        with patch("preppal.api.dependencies.settings") as mock_settings:
            mock_settings.catalog_backend = "memory"
            services = build_services()
        assert isinstance(services.catalog, InMemoryCatalog)
        assert isinstance(services.saved_lists, InMemorySavedListStore)
        assert services.database is None

    def test_postgres_backend(self):
        from preppal.api.dependencies import build_services
        from preppal.pipeline.catalog import PostgresCatalog
        from preppal.pipeline.saved_lists import PostgresSavedListStore

        with patch("preppal.api.dependencies.settings") as mock_settings:
            mock_settings.catalog_backend = "postgres"
            services = build_services()
        assert isinstance(services.catalog, PostgresCatalog)
        assert isinstance(services.saved_lists, PostgresSavedListStore)
        assert services.database is not None


class TestLogging:
    def test_configure_logging_json(self):
        import structlog

        from preppal.logging import configure_logging

        with patch("preppal.logging.settings") as mock_settings:
            mock_settings.environment = "production"
            mock_settings.log_level = "INFO"
            mock_settings.log_file = ""
            configure_logging()
        try:
            processors = structlog.get_config()["processors"]
            assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        finally:
            configure_logging()

    def test_tee_writer_appends_to_file(self, tmp_path, capsys):
        from preppal.logging import _TeeWriter

        path = tmp_path / "preppal.log"
        writer = _TeeWriter(str(path))
        writer.write("shopping_pipeline_start\n")
        writer.flush()
        assert path.read_text() == "shopping_pipeline_start\n"
        assert "shopping_pipeline_start" in capsys.readouterr().out

    def test_tee_writer_unopenable_file(self, tmp_path, capsys):
        from preppal.logging import _TeeWriter

        writer = _TeeWriter(str(tmp_path / "missing-dir" / "preppal.log"))
        writer.write("still to stdout\n")
        captured = capsys.readouterr()
        assert "still to stdout" in captured.out
        assert "Could not open log file" in captured.err
