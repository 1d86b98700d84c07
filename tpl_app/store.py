# tpl_app/store.py
"""
Explicitly owned handle around the TPL SQLite store.

One ``CatalogStore`` is created at startup, passed to every component that
needs the database, and closed exactly once at shutdown. Statements are
built per call through SQLAlchemy; nothing is prepared for the lifetime of
the process.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_MS = 5000


class StoreClosedError(RuntimeError):
    """Raised when a closed ``CatalogStore`` is used."""


def _configure_sqlite_connection_factory(*, busy_timeout_ms: int):
    """Return a connection hook applying TPL pragmas."""

    def _configure_sqlite_connection(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself (see _begin_transaction) so that a
        # transaction, and any SAVEPOINT inside it, spans every statement.
        dbapi_connection.isolation_level = None
        try:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            cursor.close()
        except Exception as exc:
            logger.warning("Failed to apply SQLite PRAGMAs: %s", exc)

    return _configure_sqlite_connection


def _begin_transaction(connection: Connection) -> None:
    connection.exec_driver_sql("BEGIN")


class CatalogStore:
    """Owns the engine and session factory for one TPL database file."""

    def __init__(self, engine: Engine, *, path: str) -> None:
        self.engine = engine
        self.path = path
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        echo: bool = False,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> "CatalogStore":
        """
        Open (creating the file if needed) the SQLite store at ``path``.

        Raises ``sqlalchemy.exc.SQLAlchemyError`` when the file cannot be
        opened as a database.
        """
        db_path = str(path)
        logger.debug("Opening TPL database", extra={"path": db_path})
        # SQLite URI format: sqlite:///absolute/or/relative/path
        uri = "sqlite:///" + db_path.replace("\\", "/")
        engine = create_engine(
            uri,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": busy_timeout_ms / 1000},
        )
        event.listen(engine, "connect", _configure_sqlite_connection_factory(busy_timeout_ms=busy_timeout_ms))
        event.listen(engine, "begin", _begin_transaction)

        store = cls(engine, path=db_path)
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT count(*) FROM sqlite_master"))
        except Exception:
            engine.dispose()
            raise
        return store

    # Sessions ---------------------------------------------------------------

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Short-lived session for read-only work."""
        self._ensure_open()
        with self._session_factory() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Session wrapped in one all-or-nothing transaction.

        Commits when the block exits normally; rolls back and re-raises on
        any exception.
        """
        self._ensure_open()
        with self._session_factory() as session:
            with session.begin():
                yield session

    def bind_session(self, connection: Connection) -> Session:
        """Session joined to a transaction already begun on ``connection``."""
        return self._session_factory(bind=connection)

    @contextmanager
    def foreign_keys_suspended(self) -> Iterator[Connection]:
        """
        Dedicated connection with foreign-key enforcement switched off.

        SQLite ignores ``PRAGMA foreign_keys`` inside a transaction, so the
        pragma is issued on the raw connection before the caller begins one.
        Enforcement is switched back on before the connection returns to
        the pool.
        """
        self._ensure_open()
        with self.engine.connect() as connection:
            raw_connection = connection.connection.dbapi_connection
            raw_connection.execute("PRAGMA foreign_keys=OFF")
            logger.debug("Foreign key enforcement suspended", extra={"path": self.path})
            try:
                yield connection
            finally:
                if connection.in_transaction():
                    connection.rollback()
                raw_connection.execute("PRAGMA foreign_keys=ON")
                logger.debug("Foreign key enforcement restored", extra={"path": self.path})

    def foreign_key_violations(self) -> list[tuple]:
        """Rows reported by ``PRAGMA foreign_key_check``."""
        with self.session() as session:
            return [tuple(row) for row in session.execute(text("PRAGMA foreign_key_check"))]

    # Lifecycle --------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self.engine.dispose()
        self._closed = True
        logger.debug("TPL database closed", extra={"path": self.path})

    def __enter__(self) -> "CatalogStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self):
        state = "closed" if self._closed else "open"
        return f"<CatalogStore {self.path} ({state})>"

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError(f"TPL store at '{self.path}' has already been closed.")
