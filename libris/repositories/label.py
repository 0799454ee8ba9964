# libris/repositories/label.py
from typing import Any, List, Mapping, Optional, Type, Union

from pydantic import BaseModel

from ..errors import NotFoundError
from ..kv import READONLY, READWRITE, KeyValueStore, Transaction
from ..models import Author, AuthorInput, Tag, TagInput
from ..schema import AUTHORS, BOOK_AUTHORS, BOOK_TAGS, TAGS
from ..utils.logging import get_logger
from .junction import BookAuthorRepository, BookTagRepository, JunctionRepository

logger = get_logger(__name__)

Fields = Union[BaseModel, Mapping[str, Any], str]


class LabelEntityRepository:
    """CRUD over an entity identified by a unique label.

    Subclasses name the collection, its junction collection and the models.
    """

    collection: str = ""
    junction: str = ""
    model: Type[BaseModel] = BaseModel
    input_model: Type[BaseModel] = BaseModel

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.links = self._links(store)

    def _links(self, store: KeyValueStore) -> JunctionRepository:
        raise NotImplementedError

    def _validate(self, fields: Fields) -> BaseModel:
        if isinstance(fields, self.input_model):
            return fields
        if isinstance(fields, str):
            fields = {"label": fields}
        elif isinstance(fields, BaseModel):
            fields = fields.model_dump()
        return self.input_model.model_validate(fields)

    def list_all(self, txn: Optional[Transaction] = None) -> List[BaseModel]:
        with self.store.transaction(self.collection, READONLY, txn) as txn:
            records = txn.collection(self.collection).get_all()
        return [self.model.from_record(record) for record in records]

    def find_by_id(self, entity_id: int, txn: Optional[Transaction] = None) -> BaseModel:
        with self.store.transaction(self.collection, READONLY, txn) as txn:
            record = txn.collection(self.collection).get(entity_id)
        if record is None:
            raise NotFoundError(self.collection, entity_id)
        return self.model.from_record(record)

    def find_by_label(self, label: str, txn: Optional[Transaction] = None) -> List[BaseModel]:
        """Exact-match lookup of the trimmed label on the label index. Returns zero or one entity."""
        with self.store.transaction(self.collection, READONLY, txn) as txn:
            records = txn.collection(self.collection).get_all_by_index("label", label.strip())
        return [self.model.from_record(record) for record in records]

    def find_by_book_id(self, book_id: int, txn: Optional[Transaction] = None) -> List[BaseModel]:
        """Entities linked to a book, in junction row order"""
        with self.store.transaction([self.junction, self.collection], READONLY, txn) as txn:
            links = txn.collection(self.junction).get_all_by_index("id_book", book_id)
            entities = txn.collection(self.collection)
            result = []
            for link in links:
                record = entities.get(link[self.links.other_field])
                if record is None:
                    logger.warning(
                        "%s row %s points at missing %s %s",
                        self.junction, link["id"], self.collection, link[self.links.other_field],
                    )
                    continue
                result.append(self.model.from_record(record))
        return result

    def create(self, fields: Fields, txn: Optional[Transaction] = None) -> int:
        """Insert a new entity and return its key.

        Raises:
            ConstraintViolationError: If the label is already taken
        """
        data = self._validate(fields)
        with self.store.transaction(self.collection, READWRITE, txn) as txn:
            key = txn.collection(self.collection).insert(data.to_record())
        logger.debug("Created %s %s (%s)", self.collection, key, data.label)
        return key

    def find_or_create(self, fields: Fields, txn: Optional[Transaction] = None) -> int:
        """Key of the entity with this label, inserting it if there is none.

        Lookup and insert share one readwrite transaction, so two callers
        cannot both insert the same label.
        """
        data = self._validate(fields)
        with self.store.transaction(self.collection, READWRITE, txn) as txn:
            handle = txn.collection(self.collection)
            keys = handle.get_keys_by_index("label", data.label)
            if keys:
                return keys[0]
            key = handle.insert(data.to_record())
        logger.debug("Created %s %s (%s)", self.collection, key, data.label)
        return key

    def update(self, entity_id: int, fields: Mapping[str, Any], txn: Optional[Transaction] = None) -> None:
        """Overwrite fields of an existing entity. Fields not given keep their value.

        Raises:
            NotFoundError: If no entity has this key
            ConstraintViolationError: If the new label belongs to another entity
        """
        with self.store.transaction(self.collection, READWRITE, txn) as txn:
            handle = txn.collection(self.collection)
            record = handle.get(entity_id)
            if record is None:
                raise NotFoundError(self.collection, entity_id)
            merged = {k: v for k, v in record.items() if k != "id"}
            merged.update(fields)
            data = self._validate(merged)
            handle.put({"id": entity_id, **data.to_record()})

    def delete(self, entity_id: int, txn: Optional[Transaction] = None) -> bool:
        """Delete the entity row only. Junction rows are the caller's concern."""
        with self.store.transaction(self.collection, READWRITE, txn) as txn:
            return txn.collection(self.collection).delete(entity_id)

    def delete_cascade(self, entity_id: int, txn: Optional[Transaction] = None) -> int:
        """Delete the entity and every junction row pointing at it in one transaction.

        Returns:
            Number of junction rows removed

        Raises:
            NotFoundError: If no entity has this key
        """
        with self.store.transaction([self.junction, self.collection], READWRITE, txn) as txn:
            if txn.collection(self.collection).get(entity_id) is None:
                raise NotFoundError(self.collection, entity_id)
            unlinked = self.links.delete_by_other(entity_id, txn)
            txn.collection(self.collection).delete(entity_id)
        logger.info("Deleted %s %s and %d links", self.collection, entity_id, unlinked)
        return unlinked

    def count_references(self, entity_id: int, txn: Optional[Transaction] = None) -> int:
        return self.links.count_by_other(entity_id, txn)

    def delete_if_orphaned(self, entity_id: int, txn: Optional[Transaction] = None) -> bool:
        """Delete the entity when no junction row references it any more"""
        with self.store.transaction([self.junction, self.collection], READWRITE, txn) as txn:
            if self.links.count_by_other(entity_id, txn):
                return False
            deleted = txn.collection(self.collection).delete(entity_id)
        if deleted:
            logger.info("Deleted orphaned %s %s", self.collection, entity_id)
        return deleted


class AuthorRepository(LabelEntityRepository):
    collection = AUTHORS
    junction = BOOK_AUTHORS
    model = Author
    input_model = AuthorInput

    def _links(self, store: KeyValueStore) -> BookAuthorRepository:
        return BookAuthorRepository(store)

    def count_books(self, author_id: int, txn: Optional[Transaction] = None) -> int:
        return self.count_references(author_id, txn)


class TagRepository(LabelEntityRepository):
    collection = TAGS
    junction = BOOK_TAGS
    model = Tag
    input_model = TagInput

    def _links(self, store: KeyValueStore) -> BookTagRepository:
        return BookTagRepository(store)

    def find_by_color(self, color: str, txn: Optional[Transaction] = None) -> List[Tag]:
        with self.store.transaction(TAGS, READONLY, txn) as txn:
            records = txn.collection(TAGS).get_all_by_index("color", color)
        return [Tag.from_record(record) for record in records]
