# libris/kv/store.py
import threading
from contextlib import contextmanager, nullcontext
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Union

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, event, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool, StaticPool

from ..errors import CollectionNotFoundError, LibrisError, ReadOnlyTransactionError, TransactionFailedError
from ..utils.logging import get_logger
from .collection import CollectionHandle, CollectionSpec

logger = get_logger(__name__)

READONLY = "readonly"
READWRITE = "readwrite"
MODES = (READONLY, READWRITE)

_MODE_OPTION = "libris_txn_mode"


class Transaction:
    """A set of collections opened together on one connection.

    Everything done through the handles commits together when the
    transaction's block exits normally and is rolled back otherwise.
    """

    def __init__(self, store: "KeyValueStore", connection: Connection, names: List[str], mode: str):
        self.store = store
        self.connection = connection
        self.names = list(names)
        self.mode = mode
        self._handles: Dict[str, CollectionHandle] = {}

    @property
    def readonly(self) -> bool:
        return self.mode == READONLY

    def collection(self, name: str) -> CollectionHandle:
        if name not in self.names:
            raise CollectionNotFoundError(name, "is not part of this transaction")
        if name not in self._handles:
            spec, table = self.store._lookup(name)
            self._handles[name] = CollectionHandle(spec, table, self.connection, self.readonly)
        return self._handles[name]

    def covers(self, names: Iterable[str], mode: str) -> bool:
        return set(names) <= set(self.names) and not (mode == READWRITE and self.readonly)


class VersionChange:
    """Handed to the upgrade callback while the schema version is being raised"""

    def __init__(self, store: "KeyValueStore", connection: Connection, old_version: int, new_version: int):
        self.store = store
        self.connection = connection
        self.old_version = old_version
        self.new_version = new_version

    def create_collection(self, name: str) -> None:
        _, table = self.store._lookup(name)
        table.create(bind=self.connection, checkfirst=True)
        logger.info("Created collection %s", name)

    def delete_collection(self, name: str) -> None:
        _, table = self.store._lookup(name)
        table.drop(bind=self.connection, checkfirst=True)
        logger.info("Dropped collection %s", name)


UpgradeCallback = Callable[[VersionChange], None]


class KeyValueStore:
    def __init__(self, url: str = "sqlite:///:memory:", busy_timeout: float = 5.0, **engine_kwargs):
        """Open the backing database.

        Args:
            url: SQLAlchemy database URL, e.g. "sqlite:///library.db"
            busy_timeout: Seconds SQLite waits on a locked database
            engine_kwargs: Additional keyword arguments to pass to create_engine
        """
        self.url = url
        self.is_sqlite = url.startswith("sqlite")
        self.is_memory = self.is_sqlite and (":memory:" in url or url.rstrip("/") == "sqlite:")

        if self.is_memory:
            # One shared connection, otherwise every checkout sees a fresh empty database
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
            engine_kwargs.setdefault("poolclass", StaticPool)
        elif self.is_sqlite:
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
            engine_kwargs.setdefault("poolclass", NullPool)

        self.engine: Engine = create_engine(url, **engine_kwargs)
        if self.is_sqlite:
            self._install_sqlite_hooks(busy_timeout)

        self.metadata = MetaData()
        self._meta = Table(
            "kv_meta", self.metadata,
            Column("key", String(64), primary_key=True),
            Column("value", Integer, nullable=False),
        )
        self._collections: Dict[str, tuple] = {}

        # Held by workflows that span several transactions
        self.write_lock = threading.RLock()

    @contextmanager
    def _connect(self, mode: str = READONLY) -> Iterator[Connection]:
        """A connection whose transactions begin in the given mode.

        An in-memory store has a single connection shared by every thread, so
        it is handed to one thread at a time under write_lock.
        """
        with self.write_lock if self.is_memory else nullcontext():
            conn = self.engine.connect().execution_options(**{_MODE_OPTION: mode})
            try:
                yield conn
            finally:
                conn.close()

    def _install_sqlite_hooks(self, busy_timeout: float) -> None:
        """Take over BEGIN from pysqlite so readonly transactions are real snapshots
        and readwrite transactions lock the database up front."""
        journal_wal = not self.is_memory

        @event.listens_for(self.engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute(f"PRAGMA busy_timeout = {int(busy_timeout * 1000)}")
            if journal_wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(self.engine, "begin")
        def _on_begin(conn):
            mode = conn.get_execution_options().get(_MODE_OPTION, READONLY)
            conn.exec_driver_sql("BEGIN IMMEDIATE" if mode == READWRITE else "BEGIN")

    @classmethod
    def open(
        cls,
        url: str,
        version: int,
        collections: Iterable[CollectionSpec] = (),
        upgrade: Optional[UpgradeCallback] = None,
        **kwargs,
    ) -> "KeyValueStore":
        """Open a store at a schema version, running upgrade when the stored version is older"""
        store = cls(url, **kwargs)
        for spec in collections:
            store.define_collection(spec)
        store._apply_version(version, upgrade)
        return store

    def close(self) -> None:
        self.engine.dispose()

    # --- schema ---

    def define_collection(self, spec: CollectionSpec) -> None:
        """Register a collection so transactions can open it"""
        if spec.name in self._collections:
            return
        self._collections[spec.name] = (spec, spec.build_table(self.metadata))

    def _lookup(self, name: str):
        try:
            return self._collections[name]
        except KeyError:
            raise CollectionNotFoundError(name) from None

    def collection_names(self) -> List[str]:
        return sorted(self._collections)

    def has_collection(self, name: str) -> bool:
        if name not in self._collections:
            return False
        with self._connect() as conn:
            return self.engine.dialect.has_table(conn, name)

    @property
    def version(self) -> int:
        with self._connect() as conn:
            if not self.engine.dialect.has_table(conn, self._meta.name):
                return 0
            return self._read_version(conn)

    def _read_version(self, conn: Connection) -> int:
        value = conn.execute(
            select(self._meta.c.value).where(self._meta.c.key == "version")
        ).scalar_one_or_none()
        return value or 0

    def _apply_version(self, version: int, upgrade: Optional[UpgradeCallback]) -> None:
        try:
            with self._connect(READWRITE) as conn, conn.begin():
                self._meta.create(bind=conn, checkfirst=True)
                current = self._read_version(conn)
                if current > version:
                    raise TransactionFailedError(
                        f"Stored schema version {current} is newer than requested {version}"
                    )
                if current == version:
                    return

                logger.info("Upgrading store schema %d -> %d", current, version)
                if upgrade is not None:
                    upgrade(VersionChange(self, conn, current, version))
                if current == 0:
                    conn.execute(self._meta.insert().values(key="version", value=version))
                else:
                    conn.execute(
                        self._meta.update().where(self._meta.c.key == "version").values(value=version)
                    )
        except SQLAlchemyError as exc:
            raise TransactionFailedError(f"Schema upgrade failed: {exc}") from exc

    # --- transactions ---

    @contextmanager
    def transaction(
        self,
        names: Union[str, Iterable[str]],
        mode: str = READONLY,
        txn: Optional[Transaction] = None,
    ) -> Iterator[Transaction]:
        """Open collections together in one atomic transaction.

        Args:
            names: Collection name or names the body may touch
            mode: "readonly" or "readwrite"
            txn: An enclosing transaction to join instead of starting a new
                one. It must already cover the names and the mode.

        Raises:
            CollectionNotFoundError: A name is not a defined collection
            ReadOnlyTransactionError: Joining a readonly transaction for writing
            TransactionFailedError: The backend aborted the transaction
        """
        names = [names] if isinstance(names, str) else list(names)
        if mode not in MODES:
            raise ValueError(f"Unknown transaction mode: {mode}")
        for name in names:
            self._lookup(name)

        if txn is not None:
            if not txn.covers(names, mode):
                if mode == READWRITE and txn.readonly:
                    raise ReadOnlyTransactionError("Cannot join a readonly transaction for writing")
                missing = sorted(set(names) - set(txn.names))
                raise CollectionNotFoundError(missing[0], "is not part of the enclosing transaction")
            yield txn
            return

        try:
            with self._connect(mode) as conn, conn.begin():
                yield Transaction(self, conn, names, mode)
        except LibrisError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Transaction on %s aborted: %s", ", ".join(names), exc)
            raise TransactionFailedError(f"Transaction on {', '.join(names)} aborted: {exc}") from exc
