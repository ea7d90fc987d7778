"""
PostgreSQL client with connection pooling.

Uses psycopg2 with ThreadedConnectionPool. Single statements run in their
own short transaction; multi-statement work that must be atomic (stock
commits, bill saves) goes through transaction(), which hands out one
cursor and commits or rolls back as a unit.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple

import psycopg2
import psycopg2.extras
import psycopg2.pool

from checkout.money import Money

logger = logging.getLogger(__name__)


class PostgresClient:
    """
    PostgreSQL client.

    Usage:
        db = PostgresClient(database_url)

        items = db.execute("SELECT * FROM items")

        with db.transaction() as cur:
            cur.execute("SELECT ... FOR UPDATE", params)
            cur.execute("UPDATE ...", params)
    """

    # One pool per database URL, shared by every client in the process
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, minconn: int = 1, maxconn: int = 10):
        self._database_url = database_url
        self._minconn = minconn
        self._maxconn = maxconn
        self._pool()

    def _pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        with self._pools_lock:
            pool = self._connection_pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._minconn,
                    maxconn=self._maxconn,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created (%d-%d connections)", self._minconn, self._maxconn)
            return pool

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection and hand it back afterwards."""
        pool = self._pool()
        conn = pool.getconn()
        if conn is None:
            raise RuntimeError("Could not get connection from pool")
        try:
            yield conn
        finally:
            pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[psycopg2.extras.RealDictCursor]:
        """
        Run several statements atomically.

        Yields a dict cursor. Commits when the block exits normally and
        rolls back if it raises; the exception is re-raised.
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def _convert_params(self, params: Tuple | Dict | None) -> Tuple | Dict | None:
        """Convert Money and Enum values to plain database types."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, Money):
                return value.as_decimal()
            if isinstance(value, Enum):
                return value.value
            if isinstance(value, (list, tuple)):
                return type(value)(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(params)

    def _rows(self, query: str, params: Tuple | Dict | None) -> List[Dict[str, Any]]:
        with self.transaction() as cur:
            cur.execute(query, self._convert_params(params))
            if cur.description is None:
                return []
            return [dict(row) for row in cur.fetchall()]

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Run one statement in its own transaction. Returns row dicts, empty if none."""
        return self._rows(query, params)

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """First row or None."""
        rows = self._rows(query, params)
        return rows[0] if rows else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """First column of the first row, or None."""
        row = self.execute_single(query, params)
        return next(iter(row.values())) if row else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """INSERT/UPDATE ... RETURNING. Returns the returned rows."""
        return self._rows(query, params)

    def close(self) -> None:
        """Close this URL's connection pool."""
        with self._pools_lock:
            pool = self._connection_pools.pop(self._database_url, None)
        if pool is not None:
            pool.closeall()
            logger.info("Connection pool closed")

    @classmethod
    def close_all_pools(cls) -> None:
        with cls._pools_lock:
            pools = list(cls._connection_pools.values())
            cls._connection_pools.clear()
        for pool in pools:
            pool.closeall()
