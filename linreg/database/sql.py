"""
Relational database integration for linreg.

This module provides the connection configuration, the table models for
datasets and their points, and a client that hands out transactional
sessions. PostgreSQL and SQLite URLs are both supported.
"""

import os
import logging
import threading
from typing import Any, Dict, Optional
from contextlib import contextmanager, nullcontext

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from linreg.components.config import Config

# Set up logging
logger = logging.getLogger(__name__)


# Base class for SQLAlchemy models
class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Dataset(Base):
    """A named set of points."""

    __tablename__ = "datasets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = sa.Column(sa.Integer, primary_key=True, autoincrement=True)
    name = sa.Column(sa.String(200), nullable=False)
    created_at_ms = sa.Column(sa.BigInteger, nullable=False)

    def __repr__(self):
        return f"<Dataset(id={self.id}, name='{self.name}')>"


class DataPoint(Base):
    """A single (x, y) sample owned by a dataset."""

    __tablename__ = "data_points"
    __table_args__ = {"sqlite_autoincrement": True}

    id = sa.Column(sa.Integer, primary_key=True, autoincrement=True)
    dataset_id = sa.Column(
        sa.Integer,
        sa.ForeignKey("datasets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    x = sa.Column(sa.Double, nullable=False)
    y = sa.Column(sa.Double, nullable=False)

    def __repr__(self):
        return f"<DataPoint(id={self.id}, dataset_id={self.dataset_id}, x={self.x}, y={self.y})>"


class DatabaseConfig:
    """Configuration for the database connection."""

    def __init__(
        self,
        url: Optional[str] = None,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
        isolation_level: Optional[str] = None,
        echo: bool = False,
    ):
        """
        Initialize database configuration.

        Args:
            url: SQLAlchemy database URL
            pool_size: Connection pool size
            max_overflow: Maximum overflow connections
            isolation_level: Transaction isolation level for non-SQLite backends
            echo: Log every SQL statement
        """
        self.url = url or os.environ.get("DATABASE_URL", "sqlite:///./data/app.db")
        self.pool_size = pool_size or 5
        self.max_overflow = max_overflow or 10
        self.isolation_level = (isolation_level or "SERIALIZABLE").upper()
        self.echo = echo

    @property
    def backend(self) -> str:
        return make_url(self.url).get_backend_name()

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and make_url(self.url).database in (None, "", ":memory:")

    def get_engine_kwargs(self) -> Dict[str, Any]:
        """
        Get keyword arguments for ``sqlalchemy.create_engine``.

        Returns:
            Engine keyword arguments
        """
        kwargs: Dict[str, Any] = {"echo": self.echo}

        if self.is_memory:
            # One shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        elif self.is_sqlite:
            kwargs["pool_size"] = self.pool_size
            kwargs["max_overflow"] = self.max_overflow
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs["pool_size"] = self.pool_size
            kwargs["max_overflow"] = self.max_overflow
            kwargs["pool_recycle"] = 300  # Recycle connections after 5 minutes
            kwargs["isolation_level"] = self.isolation_level

        return kwargs

    def describe(self) -> str:
        """Database URL with the password masked."""
        return make_url(self.url).render_as_string(hide_password=True)

    @classmethod
    def from_config(cls, config: Config) -> "DatabaseConfig":
        """
        Create a database configuration from the application configuration.

        Args:
            config: Application configuration

        Returns:
            DatabaseConfig instance
        """
        return cls(
            url=config.get('database.url'),
            pool_size=config.get('database.pool-size'),
            max_overflow=config.get('database.max-overflow'),
            isolation_level=config.get('database.isolation-level'),
            echo=bool(config.get('database.echo', False)),
        )


def _configure_sqlite(engine: sa.engine.Engine) -> None:
    """
    Make SQLite honour foreign keys and real transactions.

    pysqlite defers BEGIN until the first write, so a read-only
    transaction would not see a single snapshot. Take over transaction
    control and emit BEGIN ourselves.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseClient:
    """Database client for linreg."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        """
        Initialize the database client.

        Args:
            config: Database configuration
        """
        self.config = config or DatabaseConfig()
        self.engine = None
        self.session_factory = None
        self.Session = None
        self._lock = threading.RLock()
        self._initialized = False

        # In-memory SQLite has a single shared connection; transactions on it
        # must not overlap, so sessions take turns
        self._connection_lock = threading.RLock() if self.config.is_memory else None

    def _exclusive(self):
        return self._connection_lock or nullcontext()

    def initialize(self) -> None:
        """
        Initialize the database connection.
        """
        with self._lock:
            if self._initialized:
                return

            if self.config.is_sqlite and not self.config.is_memory:
                directory = os.path.dirname(os.path.abspath(make_url(self.config.url).database))
                os.makedirs(directory, exist_ok=True)

            # Create engine
            self.engine = sa.create_engine(self.config.url, **self.config.get_engine_kwargs())
            if self.config.is_sqlite:
                _configure_sqlite(self.engine)

            # Create session factory
            self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
            self.Session = scoped_session(self.session_factory)

            # Mark as initialized
            self._initialized = True

            logger.info(f"Initialized database connection to {self.config.describe()}")

    def create_schema(self) -> None:
        """
        Create the datasets and data_points tables if they are missing.
        """
        if not self._initialized:
            self.initialize()

        with self._exclusive():
            Base.metadata.create_all(self.engine)
        logger.info("Database schema ready")

    def drop_schema(self) -> None:
        """
        Drop the datasets and data_points tables.
        """
        if not self._initialized:
            self.initialize()

        with self._exclusive():
            Base.metadata.drop_all(self.engine)
        logger.info("Database schema dropped")

    def shutdown(self) -> None:
        """
        Shut down the database connection.
        """
        with self._lock:
            if not self._initialized:
                return

            # Clear session factory
            if self.Session:
                self.Session.remove()
                self.Session = None

            # Dispose of the engine
            if self.engine:
                self.engine.dispose()

            # Mark as not initialized
            self._initialized = False

            logger.info("Shut down database connection")

    @contextmanager
    def session(self):
        """
        Get a database session context.

        The transaction commits when the block exits normally and rolls
        back on any exception, including KeyboardInterrupt and task
        cancellation. For in-memory SQLite, sessions are serialized across
        threads for their whole lifetime.

        Yields:
            SQLAlchemy session
        """
        if not self._initialized:
            self.initialize()

        with self._exclusive():
            session = self.Session()
            try:
                yield session
                session.commit()
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()
