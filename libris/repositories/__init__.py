# libris/repositories/__init__.py
from .aggregator import BookAggregator
from .book import BookRepository
from .junction import BookAuthorRepository, BookTagRepository, JunctionRepository
from .label import AuthorRepository, LabelEntityRepository, TagRepository

__all__ = [
    'AuthorRepository',
    'BookAggregator',
    'BookAuthorRepository',
    'BookRepository',
    'BookTagRepository',
    'JunctionRepository',
    'LabelEntityRepository',
    'TagRepository',
]
