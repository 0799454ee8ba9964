# libris/library.py
from typing import Optional

from .config import Settings, load_settings
from .repositories import BookRepository
from .schema import SchemaManager
from .utils.logging import get_logger

logger = get_logger(__name__)


class Library:
    """Entry point for collaborators: an initialized store and its repositories"""

    def __init__(self, schema: SchemaManager, settings: Optional[Settings] = None):
        """Wrap an opened schema.

        Args:
            schema: SchemaManager whose store has been upgraded and seeded
            settings: Settings supplying the orphan policy

        Raises:
            StoreNotReadyError: If the store was not initialized or seeded yet
        """
        schema.ensure_ready()
        self.schema = schema
        self.store = schema.store
        self.settings = settings
        self.books = BookRepository(self.store, settings.orphans if settings else None)
        self.authors = self.books.authors
        self.tags = self.books.tags
        self.book_authors = self.books.book_authors
        self.book_tags = self.books.book_tags

    @classmethod
    def open(cls, settings: Optional[Settings] = None) -> "Library":
        """Open (creating and seeding on first use) the library described by settings"""
        settings = settings or load_settings()
        logger.debug("Opening library at %s", settings.database_url)
        schema = SchemaManager.open(
            settings.database_url,
            seed_source=settings.seed_source,
            busy_timeout=settings.busy_timeout,
        )
        return cls(schema, settings)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "Library":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
