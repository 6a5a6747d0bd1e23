import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from folio.config import settings

logger = logging.getLogger(__name__)


def create_database_engine(url: str) -> Engine:
    """Create a pooled engine. SQLite (tests, local tooling) shares one connection."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=0,
        pool_timeout=settings.database_pool_timeout,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=True,
        connect_args={"connect_timeout": settings.database_pool_timeout},
    )


class Database:
    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def fetch_all(self, statement, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a statement in its own transaction and return rows as dicts."""
        with self.engine.begin() as conn:
            return self._rows(conn.execute(statement, params or {}))

    def fetch_one(self, statement, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(statement, params)
        return rows[0] if rows else None

    def execute(self, statement, params: Optional[Dict[str, Any]] = None) -> int:
        with self.engine.begin() as conn:
            return conn.execute(statement, params or {}).rowcount

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Explicit transaction; commits on success, rolls back on any exception."""
        with self.engine.begin() as conn:
            yield conn

    @staticmethod
    def _rows(result) -> List[Dict[str, Any]]:
        if not result.returns_rows:
            return []
        return [dict(row._mapping) for row in result]

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()


class DatabaseClient:
    _database: Optional[Database] = None

    @classmethod
    def get_database(cls) -> Database:
        if cls._database is None:
            cls._database = Database(create_database_engine(settings.get_database_url()))
        return cls._database

    @classmethod
    def connect_with_retry(cls, max_retries: Optional[int] = None, sleep=time.sleep) -> Database:
        """Initial connection only; steady-state queries are not retried."""
        max_retries = max_retries or settings.database_connect_retries
        last_error: Optional[Exception] = None
        for attempt in range(1, max_retries + 1):
            try:
                logger.info("Database connection attempt %d/%d", attempt, max_retries)
                database = Database(create_database_engine(settings.get_database_url()))
                database.ping()
                cls._database = database
                logger.info("Database connected")
                return database
            except Exception as e:
                last_error = e
                logger.error("Database connection attempt %d failed: %s", attempt, e)
                if attempt < max_retries:
                    wait_seconds = min(attempt, 10)
                    logger.info("Waiting %ds before retry", wait_seconds)
                    sleep(wait_seconds)
        logger.error("Database connection failed after %d attempts", max_retries)
        raise last_error

    @classmethod
    def reset_client(cls):
        if cls._database is not None:
            cls._database.dispose()
        cls._database = None


def get_database() -> Database:
    return DatabaseClient.get_database()
