"""Database utilities for the transaction record store.

Provides reusable functions for:
- Schema initialization and pragmas
- SQL functions the query translator relies on (case-insensitive regex)
- Timestamp storage format
- Batch insert and row helpers
"""

import re
import sqlite3
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List

TRANSACTIONS_TABLE = "transactions"

# Column order used by inserts and SELECTs. "_id" is the store-generated key.
RECORD_COLUMNS = [
    "id", "title", "price", "description",
    "category", "image", "sold", "dateOfSale",
]

_SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TRANSACTIONS_TABLE} (
    _id INTEGER PRIMARY KEY AUTOINCREMENT,
    id INTEGER,
    title TEXT,
    price REAL,
    description TEXT,
    category TEXT,
    image TEXT,
    sold INTEGER,
    dateOfSale TEXT
);
CREATE INDEX IF NOT EXISTS idx_{TRANSACTIONS_TABLE}_date_of_sale
    ON {TRANSACTIONS_TABLE} (dateOfSale);
"""


def init_pragmas(conn: sqlite3.Connection) -> None:
    """Initialize SQLite performance and reliability pragmas.

    - WAL mode so readers are not blocked by the bulk import
    - NORMAL synchronous mode for speed without data loss
    - busy_timeout so concurrent writers wait instead of failing
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA busy_timeout=5000")


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the transactions table and its index if missing."""
    conn.executescript(_SCHEMA_SQL)
    conn.commit()


@lru_cache(maxsize=256)
def _compile_ci(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.IGNORECASE)


def _iregexp(pattern: Any, value: Any) -> int:
    """SQL function iregexp(pattern, value): case-insensitive regex search.

    NULL or non-text values never match. An invalid pattern raises re.error,
    which SQLite reports as an OperationalError on the statement.
    """
    if pattern is None or not isinstance(value, str):
        return 0
    return 1 if _compile_ci(pattern).search(value) else 0


def register_functions(conn: sqlite3.Connection) -> None:
    """Register the SQL functions used by utils.query on a connection."""
    conn.create_function("iregexp", 2, _iregexp, deterministic=True)


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the stored form ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Naive datetimes are taken to be UTC. The fixed width keeps string
    comparison in SQL equivalent to chronological comparison.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
        f".{value.microsecond // 1000:03d}Z"
    )


def batch_insert(conn: sqlite3.Connection, query: str, rows: List[tuple],
                 batch_size: int = 1000) -> int:
    """Insert rows in batches inside a single transaction.

    Either every row is inserted or, if any batch fails, none are: the
    transaction is rolled back and the original exception re-raised.

    Args:
        conn: SQLite connection
        query: SQL INSERT query with ? placeholders
        rows: List of tuples to insert
        batch_size: Number of rows per executemany call (default: 1000)

    Returns:
        Total number of rows inserted
    """
    total_inserted = 0
    try:
        for i in range(0, len(rows), batch_size):
            batch = rows[i:i + batch_size]
            conn.executemany(query, batch)
            total_inserted += len(batch)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return total_inserted


def get_table_count(conn: sqlite3.Connection, table: str = TRANSACTIONS_TABLE) -> int:
    """Get row count for a table."""
    result = conn.execute(f"SELECT COUNT(*) AS cnt FROM {table}").fetchone()
    return result[0] if result else 0


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table exists in the database."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,)
    )
    return cursor.fetchone() is not None


def query_to_dicts(conn: sqlite3.Connection, query: str,
                   params: tuple = ()) -> List[Dict[str, Any]]:
    """Execute query and return results as list of dicts.

    Args:
        conn: SQLite connection (must have row_factory set)
        query: SQL query string
        params: Query parameters tuple

    Returns:
        List of row dicts
    """
    cursor = conn.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]
