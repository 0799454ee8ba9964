from .author import author
from .book import book
from .tag import tag

__all__ = ['author', 'book', 'tag']
