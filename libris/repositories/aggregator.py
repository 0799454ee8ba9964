# libris/repositories/aggregator.py
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..kv import READONLY, CollectionHandle, KeyValueStore, Record, Transaction
from ..models import Author, Book, Tag
from ..schema import AUTHORS, BOOK_AUTHORS, BOOK_TAGS, TAGS
from ..utils.logging import get_logger

logger = get_logger(__name__)

HYDRATE_SCOPE = [BOOK_AUTHORS, AUTHORS, BOOK_TAGS, TAGS]


class BookAggregator:
    """Joins bare book records with their authors and tags.

    All books of one hydrate call are read from the same transaction, so they
    see one consistent snapshot. Each junction collection is scanned once
    through its id_book index and grouped in memory; referenced entities are
    then fetched by key, each at most once per call.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def hydrate(self, books: Iterable[Record], txn: Optional[Transaction] = None) -> List[Book]:
        books = list(books)
        if not books:
            return []

        with self.store.transaction(HYDRATE_SCOPE, READONLY, txn) as txn:
            author_links = self._group_by_book(txn.collection(BOOK_AUTHORS), "id_author")
            tag_links = self._group_by_book(txn.collection(BOOK_TAGS), "id_tag")

            authors = _EntityCache(txn.collection(AUTHORS))
            tags = _EntityCache(txn.collection(TAGS))

            result = []
            for record in books:
                book_id = record["id"]
                result.append(Book.from_record(
                    record,
                    authors=[Author.from_record(r) for r in authors.resolve(author_links.get(book_id, []))],
                    tags=[Tag.from_record(r) for r in tags.resolve(tag_links.get(book_id, []))],
                ))
        return result

    @staticmethod
    def _group_by_book(links: CollectionHandle, other_field: str) -> Dict[int, List[int]]:
        grouped: Dict[int, List[int]] = defaultdict(list)
        for link in links.get_all_by_index("id_book"):
            grouped[link["id_book"]].append(link[other_field])
        return grouped


class _EntityCache:
    def __init__(self, handle: CollectionHandle):
        self.handle = handle
        self._records: Dict[int, Optional[Record]] = {}

    def resolve(self, keys: List[int]) -> List[Record]:
        records = []
        for key in keys:
            if key not in self._records:
                self._records[key] = self.handle.get(key)
            record = self._records[key]
            if record is None:
                logger.warning("Dangling reference to %s %s", self.handle.name, key)
                continue
            records.append(record)
        return records
