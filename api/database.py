"""
Database connection management for the API.

The connection pool is created once when the application starts, stored on
``app.state.pool`` and closed on shutdown. Routes receive a pooled
connection through the ``get_db`` dependency, which returns it to the pool
after the response is sent.

sqlite3 errors raised while a route holds the connection are re-raised as
utils.errors.StoreError so the error handlers see a single store failure
kind.
"""

import logging
import queue
import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from fastapi import Request

from utils.database import (
    TRANSACTIONS_TABLE,
    create_schema,
    init_pragmas,
    register_functions,
    table_exists,
)
from utils.errors import StoreError

logger = logging.getLogger(__name__)


def _make_conn(db_path: Path) -> sqlite3.Connection:
    """Open a single read-write SQLite connection with standard pragmas."""
    conn = sqlite3.connect(str(db_path), check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    init_pragmas(conn)
    register_functions(conn)
    return conn


class ConnectionPool:
    """Simple SQLite connection pool using a queue for thread-safety.

    Connections are created lazily up to ``max_size``. When a connection is
    released it is returned to the pool (not closed) so subsequent requests
    can reuse it without the open/pragma overhead.
    """

    def __init__(self, db_path: Path, max_size: int = 10,
                 acquire_timeout: float = 30.0) -> None:
        self.db_path = db_path
        self.acquire_timeout = acquire_timeout
        self._max_size = max_size
        self._pool: queue.Queue[sqlite3.Connection] = queue.Queue(maxsize=max_size)
        self._active = 0
        self._lock = threading.Lock()

    def open(self) -> None:
        """Create the schema if needed; fails fast when the store is unusable."""
        conn = None
        try:
            conn = _make_conn(self.db_path)
            existed = table_exists(conn, TRANSACTIONS_TABLE)
            create_schema(conn)
        except sqlite3.Error as exc:
            if conn is not None:
                conn.close()
            raise StoreError(f"Cannot open store at '{self.db_path}': {exc}") from exc
        if not existed:
            logger.info("created %s table in %s", TRANSACTIONS_TABLE, self.db_path)
        with self._lock:
            self._active += 1
        self.release(conn)

    def acquire(self) -> sqlite3.Connection:
        """Acquire a connection from the pool (create if needed, block if full)."""
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            pass
        with self._lock:
            if self._active < self._max_size:
                self._active += 1
                try:
                    return _make_conn(self.db_path)
                except sqlite3.Error as exc:
                    self._active -= 1
                    raise StoreError(f"Cannot connect to store: {exc}") from exc
        # Pool is full; wait for one to be released
        try:
            return self._pool.get(timeout=self.acquire_timeout)
        except queue.Empty as exc:
            raise StoreError(
                f"No store connection free after {self.acquire_timeout}s"
            ) from exc

    def release(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the pool, rolling back any open transaction."""
        if conn.in_transaction:
            conn.rollback()
        try:
            self._pool.put_nowait(conn)
        except queue.Full:
            conn.close()
            with self._lock:
                self._active -= 1

    def close_all(self) -> None:
        """Close all pooled connections (call on shutdown)."""
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except queue.Empty:
                break
        with self._lock:
            self._active = 0

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager form of acquire/release with error translation."""
        conn = self.acquire()
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            self.release(conn)


def get_db(request: Request) -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a pooled connection for the request.

    Usage in a route::

        from api.database import get_db
        from fastapi import Depends

        @router.get("/example")
        def example(conn=Depends(get_db)):
            ...
    """
    pool: ConnectionPool = request.app.state.pool
    with pool.connection() as conn:
        yield conn
