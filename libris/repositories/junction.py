# libris/repositories/junction.py
from typing import List, Optional, Type

from pydantic import BaseModel

from ..kv import READONLY, READWRITE, KeyValueStore, Transaction
from ..models import BookAuthor, BookTag
from ..schema import BOOK_AUTHORS, BOOK_TAGS
from ..utils.logging import get_logger

logger = get_logger(__name__)


class JunctionRepository:
    """Association rows linking a book to another entity.

    Every method takes an optional enclosing transaction; without one it runs
    in a transaction of its own.
    """

    collection: str = ""
    other_field: str = ""
    model: Type[BaseModel] = BaseModel

    def __init__(self, store: KeyValueStore):
        self.store = store

    def create(self, book_id: int, other_id: int, txn: Optional[Transaction] = None) -> int:
        """Link a book to another entity and return the new row's key"""
        with self.store.transaction(self.collection, READWRITE, txn) as txn:
            return txn.collection(self.collection).insert({"id_book": book_id, self.other_field: other_id})

    def find_by_book(self, book_id: int, txn: Optional[Transaction] = None) -> List[BaseModel]:
        with self.store.transaction(self.collection, READONLY, txn) as txn:
            records = txn.collection(self.collection).get_all_by_index("id_book", book_id)
        return [self.model.from_record(record) for record in records]

    def find_by_other(self, other_id: int, txn: Optional[Transaction] = None) -> List[BaseModel]:
        with self.store.transaction(self.collection, READONLY, txn) as txn:
            records = txn.collection(self.collection).get_all_by_index(self.other_field, other_id)
        return [self.model.from_record(record) for record in records]

    def count_by_other(self, other_id: int, txn: Optional[Transaction] = None) -> int:
        with self.store.transaction(self.collection, READONLY, txn) as txn:
            return txn.collection(self.collection).count(self.other_field, other_id)

    def _delete_matching(self, index_name: str, value: int, txn: Optional[Transaction]) -> int:
        # Lookup and deletes share one transaction: all matching rows go, or none
        with self.store.transaction(self.collection, READWRITE, txn) as txn:
            handle = txn.collection(self.collection)
            keys = handle.get_keys_by_index(index_name, value)
            deleted = handle.delete_many(keys)
        logger.debug("Deleted %d %s rows where %s=%s", deleted, self.collection, index_name, value)
        return deleted

    def delete_by_book(self, book_id: int, txn: Optional[Transaction] = None) -> int:
        """Delete every row for a book.

        Returns:
            Number of rows deleted
        """
        return self._delete_matching("id_book", book_id, txn)

    def delete_by_other(self, other_id: int, txn: Optional[Transaction] = None) -> int:
        """Delete every row pointing at the other entity"""
        return self._delete_matching(self.other_field, other_id, txn)


class BookAuthorRepository(JunctionRepository):
    collection = BOOK_AUTHORS
    other_field = "id_author"
    model = BookAuthor

    def find_by_author(self, author_id: int, txn: Optional[Transaction] = None) -> List[BookAuthor]:
        return self.find_by_other(author_id, txn)

    def delete_by_author(self, author_id: int, txn: Optional[Transaction] = None) -> int:
        return self.delete_by_other(author_id, txn)


class BookTagRepository(JunctionRepository):
    collection = BOOK_TAGS
    other_field = "id_tag"
    model = BookTag

    def find_by_tag(self, tag_id: int, txn: Optional[Transaction] = None) -> List[BookTag]:
        return self.find_by_other(tag_id, txn)

    def delete_by_tag(self, tag_id: int, txn: Optional[Transaction] = None) -> int:
        """Delete every association of a tag, used when the tag itself goes away"""
        return self.delete_by_other(tag_id, txn)
