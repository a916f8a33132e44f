"""SQL storage backend — SQLAlchemy engine and a single key-value table.

Persists the committed state of a ``Storage`` to any SQLAlchemy-supported
database (SQLite, PostgreSQL). Each outermost commit is written inside one
database transaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Engine, LargeBinary, String, delete, select
from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from evm_accounts.config.settings import DatabaseConfig
    from evm_accounts.datastore.storage import StorageKey


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for storage tables."""


class StorageItem(Base):
    """One committed ``(namespace, key) → value`` entry."""

    __tablename__ = "storage_items"

    namespace: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[bytes] = mapped_column(LargeBinary, primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)


def create_engine(config: DatabaseConfig) -> Engine:
    """Create a SQLAlchemy engine from database configuration.

    In-memory SQLite shares one connection so every session sees the same
    database.
    """
    kwargs: dict = {
        "echo": config.debug_sql,
    }

    if config.dsn.startswith("sqlite") and ":memory:" in config.dsn:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif "sqlite" not in config.dsn:
        kwargs["pool_pre_ping"] = True

    return sa_create_engine(config.dsn, **kwargs)


class SQLBackend:
    """``StorageBackend`` over a ``storage_items`` table.

    Usage::

        backend = SQLBackend(db_config)
        backend.open()
        storage = Storage(backend)
        ...
        backend.close()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> None:
        """Create the engine and the storage table if missing."""
        self._engine = create_engine(self._config)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)

    def close(self) -> None:
        """Dispose the engine and release all connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def _session(self) -> Session:
        if self._session_factory is None:
            msg = "SQL backend is not open. Call open() first."
            raise RuntimeError(msg)
        return self._session_factory()

    def get(self, namespace: str, key: bytes) -> bytes | None:
        with self._session() as session:
            item = session.get(StorageItem, (namespace, key))
            return item.value if item is not None else None

    def iter_namespace(self, namespace: str) -> Iterator[tuple[bytes, bytes]]:
        with self._session() as session:
            rows = session.scalars(select(StorageItem).where(StorageItem.namespace == namespace))
            items = [(row.key, row.value) for row in rows]
        yield from items

    def apply(self, changes: Mapping[StorageKey, bytes | None]) -> None:
        with self._session() as session, session.begin():
            for (namespace, key), value in changes.items():
                if value is None:
                    session.execute(
                        delete(StorageItem).where(
                            StorageItem.namespace == namespace,
                            StorageItem.key == key,
                        )
                    )
                else:
                    session.merge(StorageItem(namespace=namespace, key=key, value=value))
