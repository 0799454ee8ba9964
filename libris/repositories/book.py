# libris/repositories/book.py
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union

from ..config import OrphanPolicy
from ..errors import CascadeDeleteError, LibrisError, NotFoundError
from ..kv import READONLY, READWRITE, KeyValueStore, Transaction
from ..models import AuthorInput, Book, BookInput, TagInput
from ..models.book import Progress
from ..schema import AUTHORS, BOOK_AUTHORS, BOOK_TAGS, BOOKS, TAGS
from ..utils.logging import get_logger
from .aggregator import BookAggregator
from .label import AuthorRepository, TagRepository

logger = get_logger(__name__)

BOOK_SCOPE = [BOOKS, BOOK_AUTHORS, AUTHORS, BOOK_TAGS, TAGS]


class BookRepository:
    """Books plus the orchestration of their author and tag associations.

    create and update run as one transaction each: the book row, the
    find-or-create of every author and tag label and the fresh junction rows
    commit together. delete is a sequence of separately committed steps; see
    delete() for its failure contract.
    """

    def __init__(self, store: KeyValueStore, orphans: Optional[OrphanPolicy] = None):
        self.store = store
        self.orphans = orphans or OrphanPolicy()
        self.authors = AuthorRepository(store)
        self.tags = TagRepository(store)
        self.book_authors = self.authors.links
        self.book_tags = self.tags.links
        self.aggregator = BookAggregator(store)

    # --- reads ---

    def list_all(self) -> List[Book]:
        """Every book, hydrated with authors and tags"""
        with self.store.transaction(BOOK_SCOPE, READONLY) as txn:
            return self.aggregator.hydrate(txn.collection(BOOKS).get_all(), txn)

    def find_by_id(self, book_id: int) -> Book:
        with self.store.transaction(BOOK_SCOPE, READONLY) as txn:
            record = txn.collection(BOOKS).get(book_id)
            if record is None:
                raise NotFoundError(BOOKS, book_id)
            return self.aggregator.hydrate([record], txn)[0]

    def find_by_title(self, title: str) -> List[Book]:
        """Books whose title matches exactly"""
        with self.store.transaction(BOOK_SCOPE, READONLY) as txn:
            records = txn.collection(BOOKS).get_all_by_index("title", title)
            return self.aggregator.hydrate(records, txn)

    def find_by_author_label(self, label: str) -> List[Book]:
        """Books of the author with this label. Unknown labels give an empty list."""
        return self._find_by_label(AUTHORS, BOOK_AUTHORS, "id_author", label)

    def find_by_tag_label(self, label: str) -> List[Book]:
        """Books carrying the tag with this label. Unknown labels give an empty list."""
        return self._find_by_label(TAGS, BOOK_TAGS, "id_tag", label)

    def _find_by_label(self, collection: str, junction: str, other_field: str, label: str) -> List[Book]:
        with self.store.transaction(BOOK_SCOPE, READONLY) as txn:
            keys = txn.collection(collection).get_keys_by_index("label", label.strip())
            if not keys:
                return []
            links = txn.collection(junction).get_all_by_index(other_field, keys[0])
            books = txn.collection(BOOKS)
            records = [record for record in (books.get(link["id_book"]) for link in links) if record]
            return self.aggregator.hydrate(records, txn)

    # --- writes ---

    def _validate(self, fields: Union[BookInput, Mapping[str, Any]]) -> BookInput:
        return fields if isinstance(fields, BookInput) else BookInput.model_validate(fields)

    def create(self, fields: Union[BookInput, Mapping[str, Any]]) -> int:
        """Insert a book with progress 0 and link its authors and tags.

        Returns:
            The new book's key
        """
        data = self._validate(fields)
        with self.store.write_lock, self.store.transaction(BOOK_SCOPE, READWRITE) as txn:
            book_id = txn.collection(BOOKS).insert({**data.to_record(), "progress": 0})
            self._save_authors(txn, book_id, data.authors)
            self._save_tags(txn, book_id, data.tags)
        logger.info("Created book %s (%s)", book_id, data.title)
        return book_id

    def update(self, book_id: int, fields: Union[BookInput, Mapping[str, Any]]) -> int:
        """Overwrite a book's plain fields and replace its authors and tags.

        Progress is kept. Authors (and tags, when the orphan policy says so)
        that lose their last book here are deleted.

        Raises:
            NotFoundError: If the book does not exist
        """
        data = self._validate(fields)
        with self.store.write_lock, self.store.transaction(BOOK_SCOPE, READWRITE) as txn:
            books = txn.collection(BOOKS)
            record = books.get(book_id)
            if record is None:
                raise NotFoundError(BOOKS, book_id)

            books.put({**record, **data.to_record()})
            old_authors = self._save_authors(txn, book_id, data.authors)
            old_tags = self._save_tags(txn, book_id, data.tags)
            self._prune(txn, old_authors, old_tags)
        logger.info("Updated book %s", book_id)
        return book_id

    def update_progress(self, book_id: int, progress: Progress) -> None:
        """Store a new reading position for a book, leaving everything else alone

        Raises:
            NotFoundError: If the book does not exist
        """
        with self.store.transaction(BOOKS, READWRITE) as txn:
            books = txn.collection(BOOKS)
            record = books.get(book_id)
            if record is None:
                raise NotFoundError(BOOKS, book_id)
            record["progress"] = progress
            books.put(record)

    def delete(self, book_id: int) -> None:
        """Delete a book and cascade to its associations.

        Steps, each committed on its own while the store's write lock is held:

        1. snapshot the book's authors and tags
        2. ``unlink``: delete its BookAuthor and BookTag rows
        3. ``prune``: delete snapshotted authors (and tags, per the orphan
           policy) no other book references
        4. ``delete_book``: delete the book row

        The first failing step aborts the cascade with CascadeDeleteError.
        Steps that already committed are not rolled back.

        Raises:
            NotFoundError: If the book does not exist; nothing is touched
            CascadeDeleteError: If a step fails
        """
        with self.store.write_lock:
            book = self.find_by_id(book_id)
            author_ids = [author.id for author in book.authors]
            tag_ids = [tag.id for tag in book.tags]

            steps: List[Tuple[str, Callable[[], Any]]] = [
                ("unlink", lambda: self._unlink(book_id)),
                ("prune", lambda: self._prune_in_transaction(author_ids, tag_ids)),
                ("delete_book", lambda: self._delete_row(book_id)),
            ]
            completed: List[str] = []
            for name, step in steps:
                try:
                    step()
                except LibrisError as exc:
                    logger.error("Deleting book %s failed at %s: %s", book_id, name, exc)
                    raise CascadeDeleteError(book_id, name, completed) from exc
                completed.append(name)

        logger.info("Deleted book %s", book_id)

    # --- helpers ---

    def _save_authors(self, txn: Transaction, book_id: int, authors: Iterable[AuthorInput]) -> List[int]:
        """Replace the book's author links. Returns the author keys linked before."""
        previous = [link.id_author for link in self.book_authors.find_by_book(book_id, txn)]
        self.book_authors.delete_by_book(book_id, txn)

        linked: List[int] = []
        for author in authors:
            author_id = self.authors.find_or_create(author, txn)
            if author_id in linked:
                continue
            self.book_authors.create(book_id, author_id, txn)
            linked.append(author_id)
        return previous

    def _save_tags(self, txn: Transaction, book_id: int, tags: Iterable[TagInput]) -> List[int]:
        """Replace the book's tag links. Returns the tag keys linked before."""
        previous = [link.id_tag for link in self.book_tags.find_by_book(book_id, txn)]
        self.book_tags.delete_by_book(book_id, txn)

        linked: List[int] = []
        for tag in tags:
            tag_id = self.tags.find_or_create(tag, txn)
            if tag_id in linked:
                continue
            self.book_tags.create(book_id, tag_id, txn)
            linked.append(tag_id)
        return previous

    def _prune(self, txn: Transaction, author_ids: Iterable[int], tag_ids: Iterable[int]) -> None:
        if self.orphans.authors:
            for author_id in dict.fromkeys(author_ids):
                self.authors.delete_if_orphaned(author_id, txn)
        if self.orphans.tags:
            for tag_id in dict.fromkeys(tag_ids):
                self.tags.delete_if_orphaned(tag_id, txn)

    def _unlink(self, book_id: int) -> None:
        with self.store.transaction([BOOK_AUTHORS, BOOK_TAGS], READWRITE) as txn:
            self.book_authors.delete_by_book(book_id, txn)
            self.book_tags.delete_by_book(book_id, txn)

    def _prune_in_transaction(self, author_ids: List[int], tag_ids: List[int]) -> None:
        with self.store.transaction(BOOK_SCOPE, READWRITE) as txn:
            self._prune(txn, author_ids, tag_ids)

    def _delete_row(self, book_id: int) -> None:
        with self.store.transaction(BOOKS, READWRITE) as txn:
            txn.collection(BOOKS).delete(book_id)
