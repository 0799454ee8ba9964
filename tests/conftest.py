# tests/conftest.py
import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from libris.kv import KeyValueStore
from libris.models import BookInput
from libris.repositories import BookRepository
from libris.schema import COLLECTIONS, SCHEMA_VERSION, SchemaManager, upgrade_schema
from libris.seed import SeedData


@pytest.fixture
def db_url(tmp_path):
    """URL of a fresh on-disk database"""
    return f"sqlite:///{tmp_path / 'library.db'}"


@pytest.fixture
def schema():
    """An in-memory store with the library schema and an empty default dataset"""
    store = KeyValueStore.open("sqlite:///:memory:", SCHEMA_VERSION, collections=COLLECTIONS, upgrade=upgrade_schema)
    manager = SchemaManager(store)
    manager.ensure_seeded(SeedData())
    yield manager
    store.close()


@pytest.fixture
def store(schema):
    return schema.store


@pytest.fixture
def book_repo(store):
    return BookRepository(store)


@pytest.fixture
def sample_book(book_repo):
    """A book by Alice and Bob tagged sci-fi"""
    return book_repo.create(BookInput(
        title="Test Book",
        publisher="Test Publisher",
        release="2001",
        authors=["Alice", "Bob"],
        tags=[{"label": "sci-fi", "color": "#2980b9"}],
    ))
