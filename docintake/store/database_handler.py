"""
Database Handler Module.

This module owns the SQLAlchemy engine and session factory for the
ingestion pipeline. Uses SQLite by default, with any SQLAlchemy URL
accepted through configuration.

Features:
    - Automatic schema creation
    - Scoped transactional sessions
    - In-memory SQLite shared across worker threads

Author: Finance Platform Team
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_config
from docintake.utils.logger import get_logger
from docintake.utils.helpers import ensure_directory
from docintake.utils.exceptions import DatabaseError
from .models import Base

# Initialize module logger
logger = get_logger(__name__)


def resolve_database_url() -> str:
    """
    Build the database URL from configuration.

    ``database.url`` wins when set; otherwise an SQLite file at
    ``paths.database`` is used.
    """
    url = get_config("database.url")
    if url:
        return url

    db_path = Path(get_config("paths.database", "data/docintake.db"))
    ensure_directory(db_path.parent)
    return f"sqlite:///{db_path}"


class DatabaseHandler:
    """
    Handles engine and session lifecycle.

    Attributes:
        url: SQLAlchemy database URL.
        engine: SQLAlchemy engine instance.
        session_factory: Configured sessionmaker.

    Example:
        >>> db = DatabaseHandler("sqlite://")
        >>> with db.session_scope() as session:
        ...     session.add(Company(name="Acme", reference_no=12345))
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None) -> None:
        """
        Initialize the database handler.

        Args:
            url: Database URL. If None, uses configuration.
            echo: Log emitted SQL. If None, uses configuration.
        """
        self.url = url or resolve_database_url()
        if echo is None:
            echo = get_config("database.echo", False)

        engine_kwargs = {"echo": echo, "future": True}
        if self.url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if self._is_memory_sqlite(self.url):
                # one shared connection, otherwise each thread sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.url, **engine_kwargs)
        if self.url.startswith("sqlite"):
            self._enable_sqlite_savepoints(self.engine)
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

        self.create_tables()
        logger.info(f"DatabaseHandler initialized (url: {self._safe_url()})")

    @staticmethod
    def _enable_sqlite_savepoints(engine) -> None:
        # pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT
        # would open (and its RELEASE commit) the outer transaction
        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(connection):
            connection.exec_driver_sql("BEGIN")

    @staticmethod
    def _is_memory_sqlite(url: str) -> bool:
        return url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url

    def _safe_url(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    def create_tables(self) -> None:
        """Create the required database tables."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise DatabaseError("create_tables", str(e)) from e

    def new_session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.

        Commits on success, rolls back and re-raises on error.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = ['DatabaseHandler', 'resolve_database_url']
