# libris/kv/__init__.py
from .collection import CollectionHandle, CollectionSpec, IndexSpec, Record
from .store import READONLY, READWRITE, KeyValueStore, Transaction, VersionChange

__all__ = [
    'CollectionHandle',
    'CollectionSpec',
    'IndexSpec',
    'Record',
    'KeyValueStore',
    'Transaction',
    'VersionChange',
    'READONLY',
    'READWRITE',
]
