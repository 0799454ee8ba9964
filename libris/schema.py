# libris/schema.py
from typing import Dict, List, Optional

from sqlalchemy import Integer, String

from .errors import StoreNotReadyError
from .kv import READONLY, READWRITE, CollectionSpec, IndexSpec, KeyValueStore, VersionChange
from .seed import SeedData, load_seed
from .utils.logging import get_logger

logger = get_logger(__name__)

# Bump only when the collection/index set changes
SCHEMA_VERSION = 1

BOOKS = "books"
AUTHORS = "authors"
TAGS = "tags"
BOOK_AUTHORS = "book_authors"
BOOK_TAGS = "book_tags"
SEED_MARKER = "default_data"

COLLECTIONS: List[CollectionSpec] = [
    CollectionSpec(BOOKS, [
        IndexSpec("title", "title"),
        IndexSpec("publisher", "publisher"),
        IndexSpec("release", "release"),
    ]),
    CollectionSpec(AUTHORS, [
        IndexSpec("label", "label", unique=True),
    ]),
    CollectionSpec(TAGS, [
        IndexSpec("label", "label", unique=True),
        IndexSpec("color", "color"),
    ]),
    CollectionSpec(BOOK_AUTHORS, [
        IndexSpec("id_book", "id_book", type_=Integer),
        IndexSpec("id_author", "id_author", type_=Integer),
    ]),
    CollectionSpec(BOOK_TAGS, [
        IndexSpec("id_book", "id_book", type_=Integer),
        IndexSpec("id_tag", "id_tag", type_=Integer),
    ]),
    CollectionSpec(SEED_MARKER, [
        IndexSpec("exists", "exists", unique=True, type_=String(8)),
    ]),
]

ALL_COLLECTIONS = [spec.name for spec in COLLECTIONS]

MARKER_VALUE = "true"


def upgrade_schema(change: VersionChange) -> None:
    """Create the collections missing from the stored schema version"""
    if change.old_version < 1:
        for name in ALL_COLLECTIONS:
            change.create_collection(name)


class SchemaManager:
    """Owns the store's collection layout and the one-time default data import"""

    def __init__(self, store: KeyValueStore, seed_source: Optional[str] = None):
        self.store = store
        self.seed_source = seed_source

    @classmethod
    def open(cls, url: str, seed_source: Optional[str] = None, seed: bool = True, **store_kwargs) -> "SchemaManager":
        """Open the store at SCHEMA_VERSION and import the default data if it never was.

        Args:
            url: Database URL
            seed_source: Path or URL of the seed document. Defaults to the bundled file.
            seed: Whether to run the default data import
            store_kwargs: Passed through to KeyValueStore
        """
        store = KeyValueStore.open(url, SCHEMA_VERSION, collections=COLLECTIONS, upgrade=upgrade_schema, **store_kwargs)
        manager = cls(store, seed_source)
        if seed:
            manager.ensure_seeded()
        return manager

    def is_seeded(self) -> bool:
        with self.store.transaction(SEED_MARKER, READONLY) as txn:
            return bool(txn.collection(SEED_MARKER).get_keys_by_index("exists", MARKER_VALUE))

    def marker_count(self) -> int:
        with self.store.transaction(SEED_MARKER, READONLY) as txn:
            return txn.collection(SEED_MARKER).count()

    def ensure_seeded(self, data: Optional[SeedData] = None) -> bool:
        """Import the default dataset unless the seed marker says it already was.

        Books, authors, tags, junction rows and the marker are written in one
        transaction, so a failed import leaves nothing behind and is retried
        on the next open.

        Returns:
            True if the data was imported by this call
        """
        if self.is_seeded():
            logger.debug("Default data already present")
            return False

        if data is None:
            data = load_seed(self.seed_source)

        with self.store.write_lock, self.store.transaction(ALL_COLLECTIONS, READWRITE) as txn:
            marker = txn.collection(SEED_MARKER)
            # Another writer may have seeded between the check and the lock
            if marker.get_keys_by_index("exists", MARKER_VALUE):
                return False

            counts = self._import(txn, data)
            marker.insert({"exists": MARKER_VALUE})

        logger.info(
            "Imported default data: %d books, %d authors, %d tags",
            counts[BOOKS], counts[AUTHORS], counts[TAGS],
        )
        return True

    def _import(self, txn, data: SeedData) -> Dict[str, int]:
        books = txn.collection(BOOKS)
        book_keys = [books.insert({**book.to_record(), "progress": 0}) for book in data.books]

        authors = txn.collection(AUTHORS)
        author_keys = [authors.insert(author.to_record()) for author in data.authors]

        tags = txn.collection(TAGS)
        tag_keys = [tags.insert(tag.to_record()) for tag in data.tags]

        book_authors = txn.collection(BOOK_AUTHORS)
        for book_pos, author_pos in data.book_authors:
            book_authors.insert({"id_book": book_keys[book_pos - 1], "id_author": author_keys[author_pos - 1]})

        book_tags = txn.collection(BOOK_TAGS)
        for book_pos, tag_pos in data.book_tags:
            book_tags.insert({"id_book": book_keys[book_pos - 1], "id_tag": tag_keys[tag_pos - 1]})

        return {BOOKS: len(book_keys), AUTHORS: len(author_keys), TAGS: len(tag_keys)}

    def ensure_ready(self) -> None:
        """Raise StoreNotReadyError until the schema is current and the default data is in"""
        if self.store.version < SCHEMA_VERSION:
            raise StoreNotReadyError("Store schema is not initialized")
        if not self.is_seeded():
            raise StoreNotReadyError("Default data has not been imported yet")

    def collection_counts(self) -> Dict[str, int]:
        with self.store.transaction(ALL_COLLECTIONS, READONLY) as txn:
            return {name: txn.collection(name).count() for name in ALL_COLLECTIONS}
