import logging
import threading
from contextlib import contextmanager
from importlib import resources
from typing import Any, Dict, Iterator, List, Optional, Sequence

import psycopg2
import psycopg2.extras
from psycopg2.pool import ThreadedConnectionPool

from family_tree_api import config

logger = logging.getLogger(__name__)


def _dict_cursor(conn):
    return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)


class Database:
    """
    PostgreSQL connection pool with an explicit lifecycle.

    ``open()`` creates the pool, ``close()`` tears it down. Checkouts are
    bounded by a semaphore sized to ``maxconn`` so callers wait for a free
    connection instead of getting ``PoolError`` when the pool is exhausted.
    """

    def __init__(self, dsn: str, minconn: int = 1, maxconn: int = 10) -> None:
        self._dsn = dsn
        self._minconn = minconn
        self._maxconn = maxconn
        self._pool: Optional[ThreadedConnectionPool] = None
        self._slots = threading.BoundedSemaphore(maxconn)

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Database":
        """Build a (not yet opened) Database from the environment."""
        return cls(config.database_dsn(), minconn=config.pool_min(), maxconn=config.pool_max())

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    # PUBLIC_INTERFACE
    def open(self) -> None:
        """Create the connection pool. Calling it twice is a no-op."""
        if self._pool is not None:
            return
        self._pool = ThreadedConnectionPool(minconn=self._minconn, maxconn=self._maxconn, dsn=self._dsn)
        logger.info("Database pool opened (min=%d, max=%d)", self._minconn, self._maxconn)

    # PUBLIC_INTERFACE
    def close(self) -> None:
        """Close every pooled connection."""
        if self._pool is None:
            return
        self._pool.closeall()
        self._pool = None
        logger.info("Database pool closed")

    @contextmanager
    def _get_conn(self):
        if self._pool is None:
            raise RuntimeError("Database pool is not open.")
        with self._slots:
            conn = self._pool.getconn()
            try:
                yield conn
            finally:
                self._pool.putconn(conn)

    # PUBLIC_INTERFACE
    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """
        Yield a dict cursor inside a transaction.

        Commits when the block exits normally, rolls back on any exception.
        """
        with self._get_conn() as conn:
            try:
                with _dict_cursor(conn) as cur:
                    yield cur
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

    # PUBLIC_INTERFACE
    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Fetch a single row as a dict, or None."""
        with self.transaction() as cur:
            cur.execute(query, params or [])
            row = cur.fetchone()
            return dict(row) if row else None

    # PUBLIC_INTERFACE
    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Fetch all rows as dicts."""
        with self.transaction() as cur:
            cur.execute(query, params or [])
            return [dict(r) for r in cur.fetchall()]

    # PUBLIC_INTERFACE
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a statement (INSERT/UPDATE/DELETE). Returns affected rowcount."""
        with self.transaction() as cur:
            cur.execute(query, params or [])
            return cur.rowcount

    # PUBLIC_INTERFACE
    def execute_returning_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Dict[str, Any]:
        """Execute a statement with RETURNING and return the first row as dict."""
        with self.transaction() as cur:
            cur.execute(query, params or [])
            row = cur.fetchone()
            if not row:
                raise RuntimeError("Expected one row returned, got none.")
            return dict(row)

    # PUBLIC_INTERFACE
    def init_schema(self) -> None:
        """Apply the packaged schema.sql (idempotent CREATE TABLE IF NOT EXISTS)."""
        ddl = resources.files("family_tree_api").joinpath("schema.sql").read_text(encoding="utf-8")
        with self.transaction() as cur:
            cur.execute(ddl)
        logger.info("Database schema ensured")
