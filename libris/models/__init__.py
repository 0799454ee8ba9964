# libris/models/__init__.py
from .author import Author, AuthorInput
from .book import BOOK_FIELDS, Book, BookInput
from .junction import BookAuthor, BookTag
from .tag import Tag, TagInput

__all__ = [
    'Author',
    'AuthorInput',
    'Book',
    'BookInput',
    'BOOK_FIELDS',
    'BookAuthor',
    'BookTag',
    'Tag',
    'TagInput',
]
