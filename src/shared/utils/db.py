"""Database access shared by all bounded contexts.

One ``Database`` object owns the SQLAlchemy engine for the lifetime of the
process. Contexts declare their tables on the shared ``metadata`` and run
statements through ``transaction()`` (multi-row mutations) or ``connect()``
(reads). SQLAlchemy errors leave both context managers as ``StorageFailure``
after the transaction has been rolled back.
"""

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from sqlalchemy import Connection, Engine, MetaData, create_engine, event
from sqlalchemy.exc import SQLAlchemyError

from shared.exceptions import StorageFailure

logger = structlog.get_logger(__name__)

metadata = MetaData()


class Database:
    def __init__(self, uri: str, echo: bool = False, sqlite_busy_timeout: float = 30.0):
        self.uri = uri
        self.engine = _create_engine(uri, echo=echo, sqlite_busy_timeout=sqlite_busy_timeout)

    @property
    def is_sqlite(self) -> bool:
        return self.engine.dialect.name == "sqlite"

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection inside a transaction.

        Commits when the block exits normally and rolls back on any exception.
        Domain errors propagate unchanged; SQLAlchemy errors become
        ``StorageFailure``.
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error("Transaction rolled back after storage error", error=str(exc))
            raise StorageFailure(str(exc)) from exc

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Yield a connection for read-only work."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error("Read failed after storage error", error=str(exc))
            raise StorageFailure(str(exc)) from exc

    def dispose(self) -> None:
        self.engine.dispose()


def _create_engine(uri: str, echo: bool, sqlite_busy_timeout: float) -> Engine:
    if not uri.startswith("sqlite"):
        return create_engine(uri, echo=echo, pool_pre_ping=True)

    engine = create_engine(
        uri,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": sqlite_busy_timeout},
    )

    # pysqlite defers BEGIN until the first write, so two transactions can
    # both read and then fail to upgrade their locks. Take over transaction
    # control and start every transaction as a writer.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def setup_db(database: Database) -> None:
    """Create every table registered on the shared metadata.

    Table modules register themselves on import, so the composition root
    imports every bounded context before calling this.
    """
    metadata.create_all(database.engine)
    logger.info("Database schema created", uri=database.engine.url.render_as_string(hide_password=True))


def drop_db(database: Database) -> None:
    """Drop every table registered on the shared metadata."""
    metadata.drop_all(database.engine)
    logger.info("Database schema dropped", uri=database.engine.url.render_as_string(hide_password=True))
