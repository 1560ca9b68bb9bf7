"""Tests for the initial Alembic migration: structure and completeness."""

from __future__ import annotations

import importlib
import inspect
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    import types

from preppal.models.db import Base


@pytest.fixture
def migration() -> types.ModuleType:
    """Import the initial migration module."""
    return importlib.import_module("migrations.versions.001_initial_schema")


class TestMigrationStructure:
    """Verify migration metadata and functions."""

    def test_revision_id(self, migration: types.ModuleType) -> None:
        """Migration has correct revision ID."""
        assert migration.revision == "001"

    def test_down_revision_is_none(self, migration: types.ModuleType) -> None:
        """Initial migration has no parent."""
        assert migration.down_revision is None

    def test_upgrade_and_downgrade_callable(self, migration: types.ModuleType) -> None:
        assert callable(migration.upgrade)
        assert callable(migration.downgrade)


class TestMigrationCompleteness:
    """Verify migration covers all tables and indexes defined in db.py models."""

    def test_all_tables_created(self, migration: types.ModuleType) -> None:
        """Migration must create tables for every model in Base.metadata."""
        source = inspect.getsource(migration.upgrade)
        for table_name in Base.metadata.tables:
            assert f'"{table_name}"' in source, (
                f"Table '{table_name}' exists in db.py but is missing from migration"
            )

    def test_all_indexes_created(self, migration: types.ModuleType) -> None:
        source = inspect.getsource(migration.upgrade)
        for table in Base.metadata.tables.values():
            for index in table.indexes:
                assert f'"{index.name}"' in source, f"Index '{index.name}' missing from migration"

    def test_downgrade_drops_all_tables(self, migration: types.ModuleType) -> None:
        source = inspect.getsource(migration.downgrade)
        for table_name in Base.metadata.tables:
            assert f'op.drop_table("{table_name}")' in source

    def test_downgrade_drops_children_first(self, migration: types.ModuleType) -> None:
        """Dependent tables are dropped before the tables they reference."""
        source = inspect.getsource(migration.downgrade)
        assert source.index('"saved_list_items"') < source.index('"saved_shopping_lists"')
        assert source.index('"saved_list_items"') < source.index('"products"')
        assert source.index('"product_keywords"') < source.index('"products"')
