# libris/kv/collection.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, Index, Integer, MetaData, String, Table, delete, func, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from ..errors import ConstraintViolationError, ReadOnlyTransactionError
from ..utils.logging import get_logger

logger = get_logger(__name__)

KEY_FIELD = "id"

Record = Dict[str, Any]


@dataclass(frozen=True)
class IndexSpec:
    """Secondary index over one top-level field of a record"""
    name: str
    field: str
    unique: bool = False
    type_: Any = String

    @property
    def column(self) -> str:
        return f"ix_{self.name}"


@dataclass(frozen=True)
class CollectionSpec:
    """A named collection: auto-incrementing integer keys plus its indexes"""
    name: str
    indexes: List[IndexSpec] = field(default_factory=list)

    def index(self, name: str) -> IndexSpec:
        for index in self.indexes:
            if index.name == name:
                return index
        raise KeyError(f"Collection '{self.name}' has no index '{name}'")

    def build_table(self, metadata: MetaData) -> Table:
        """Map the collection onto a table: key, JSON payload, one column per index"""
        columns = [
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("data", JSON, nullable=False),
        ]
        for index in self.indexes:
            type_ = index.type_() if isinstance(index.type_, type) else index.type_
            columns.append(Column(index.column, type_, nullable=True))

        table = Table(self.name, metadata, *columns, sqlite_autoincrement=True)
        for index in self.indexes:
            Index(f"idx_{self.name}_{index.name}", table.c[index.column], unique=index.unique)
        return table


class CollectionHandle:
    """Operations on one collection, bound to the connection of a transaction.

    Records are plain dicts. The "id" field is the key: it is assigned on
    insert and stripped from the stored payload.
    """

    def __init__(self, spec: CollectionSpec, table: Table, connection: Connection, readonly: bool):
        self.spec = spec
        self.table = table
        self._conn = connection
        self._readonly = readonly

    @property
    def name(self) -> str:
        return self.spec.name

    def _check_writable(self) -> None:
        if self._readonly:
            raise ReadOnlyTransactionError(f"Cannot write to '{self.name}' in a readonly transaction")

    def _execute(self, statement):
        try:
            return self._conn.execute(statement)
        except IntegrityError as exc:
            raise ConstraintViolationError(self.name, str(exc.orig)) from exc

    def _values(self, record: Record) -> Dict[str, Any]:
        payload = {k: v for k, v in record.items() if k != KEY_FIELD}
        values: Dict[str, Any] = {"data": payload}
        for index in self.spec.indexes:
            values[index.column] = payload.get(index.field)
        return values

    @staticmethod
    def _to_record(row) -> Record:
        record = dict(row.data or {})
        record[KEY_FIELD] = row.id
        return record

    def _index_column(self, index_name: str):
        return self.table.c[self.spec.index(index_name).column]

    def get(self, key: int) -> Optional[Record]:
        """Get a record by key, or None"""
        row = self._execute(select(self.table).where(self.table.c.id == key)).first()
        return self._to_record(row) if row is not None else None

    def get_all(self) -> List[Record]:
        """Get every record in key order"""
        rows = self._execute(select(self.table).order_by(self.table.c.id))
        return [self._to_record(row) for row in rows]

    def _index_query(self, query, index_name: str, value: Any):
        column = self._index_column(index_name)
        if value is None:
            # Records without the indexed field are not part of the index
            return query.where(column.is_not(None)).order_by(column, self.table.c.id)
        return query.where(column == value).order_by(self.table.c.id)

    def get_all_by_index(self, index_name: str, value: Any = None) -> List[Record]:
        """Get records through an index.

        Args:
            index_name: Name of the index
            value: Exact value to match. When None every indexed record is
                returned, ordered by index key then by record key.

        Returns:
            List of records
        """
        query = self._index_query(select(self.table), index_name, value)
        return [self._to_record(row) for row in self._execute(query)]

    def get_keys_by_index(self, index_name: str, value: Any = None) -> List[int]:
        """Same lookup as get_all_by_index, returning only the keys"""
        query = self._index_query(select(self.table.c.id), index_name, value)
        return [row.id for row in self._execute(query)]

    def count(self, index_name: Optional[str] = None, value: Any = None) -> int:
        query = select(func.count()).select_from(self.table)
        if index_name is not None:
            column = self._index_column(index_name)
            query = query.where(column.is_not(None) if value is None else column == value)
        return self._execute(query).scalar_one()

    def insert(self, record: Record) -> int:
        """Insert a new record and return its key.

        Raises:
            ConstraintViolationError: If the key or a unique index value already exists
        """
        self._check_writable()
        values = self._values(record)
        if record.get(KEY_FIELD) is not None:
            values["id"] = record[KEY_FIELD]
        result = self._execute(insert(self.table).values(**values))
        key = result.inserted_primary_key[0]
        logger.debug("insert %s[%s]", self.name, key)
        return key

    def put(self, record: Record) -> int:
        """Replace the record stored under record["id"], inserting it when absent"""
        self._check_writable()
        key = record.get(KEY_FIELD)
        if key is None:
            return self.insert(record)

        result = self._execute(
            update(self.table).where(self.table.c.id == key).values(**self._values(record))
        )
        if result.rowcount == 0:
            return self.insert(record)
        logger.debug("put %s[%s]", self.name, key)
        return key

    def delete(self, key: int) -> bool:
        """Delete a record by key. Deleting an absent key is not an error.

        Returns:
            True if a record was removed
        """
        self._check_writable()
        result = self._execute(delete(self.table).where(self.table.c.id == key))
        logger.debug("delete %s[%s] (%d row)", self.name, key, result.rowcount)
        return result.rowcount > 0

    def delete_many(self, keys: List[int]) -> int:
        """Delete several records in one statement and return how many were removed"""
        self._check_writable()
        if not keys:
            return 0
        result = self._execute(delete(self.table).where(self.table.c.id.in_(list(keys))))
        return result.rowcount
