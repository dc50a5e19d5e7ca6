"""Test fixtures and utilities."""

from pathlib import Path

import pytest

from fixtures import SAMPLE_PRODUCTS
from inventory_loss.config import ExportConfig, ImportConfig
from inventory_loss.repository import EntryRepository
from inventory_loss.store import InMemoryStore, SQLiteStore


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary database path for testing."""
    return tmp_path / "test_state.db"


@pytest.fixture(params=["sqlite", "memory"])
def store(request, temp_db):
    """Fresh seeded store, once per backend."""
    if request.param == "sqlite":
        return SQLiteStore(temp_db)
    return InMemoryStore()


@pytest.fixture
def repository(store) -> EntryRepository:
    return EntryRepository(store)


@pytest.fixture
def catalog_repository(repository) -> EntryRepository:
    """Repository whose catalog holds the sample products."""
    for product in SAMPLE_PRODUCTS:
        repository.store.upsert_product(product)
    return repository


@pytest.fixture
def export_config(tmp_path) -> ExportConfig:
    return ExportConfig(base_dir=tmp_path / "export")


@pytest.fixture
def import_config() -> ImportConfig:
    return ImportConfig()
