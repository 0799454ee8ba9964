# libris/errors.py
from typing import List, Optional


class LibrisError(Exception):
    """Base class for all library data layer errors"""
    pass


class NotFoundError(LibrisError):
    """Raised when an operation targets a key absent from its collection"""

    def __init__(self, collection: str, key):
        self.collection = collection
        self.key = key
        super().__init__(f"{collection} record {key!r} not found")


class ConstraintViolationError(LibrisError):
    """Raised when an insert or put collides on a unique index"""

    def __init__(self, collection: str, message: str):
        self.collection = collection
        super().__init__(f"Constraint violation in {collection}: {message}")


class TransactionFailedError(LibrisError):
    """Raised when the backend aborts a transaction"""
    pass


class CollectionNotFoundError(LibrisError):
    """Raised when a collection is unknown or outside the transaction scope"""

    def __init__(self, name: str, reason: str = "not defined"):
        self.name = name
        super().__init__(f"Collection '{name}' {reason}")


class ReadOnlyTransactionError(LibrisError):
    """Raised when a write is attempted inside a readonly transaction"""
    pass


class StoreNotReadyError(LibrisError):
    """Raised when the store is used before initialization and seeding completed.

    Callers should wait for initialization rather than treat this as fatal.
    """
    pass


class SeedError(LibrisError):
    """Raised when the seed document cannot be loaded or is malformed"""
    pass


class CascadeDeleteError(LibrisError):
    """Raised when a step of the book delete cascade fails.

    Steps that completed before the failure stay committed.

    Attributes:
        book_id: The book being deleted
        step: Name of the step that failed
        completed: Names of the steps that committed before the failure
    """

    def __init__(self, book_id: int, step: str, completed: Optional[List[str]] = None):
        self.book_id = book_id
        self.step = step
        self.completed = list(completed or [])
        super().__init__(
            f"Deleting book {book_id} failed at step '{step}' "
            f"(completed: {', '.join(self.completed) or 'none'})"
        )
