"""
Tests for utils/database.py — schema, SQL functions, timestamps and
batch insert.
"""
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from utils.database import (
    RECORD_COLUMNS,
    TRANSACTIONS_TABLE,
    batch_insert,
    create_schema,
    format_timestamp,
    get_table_count,
    init_pragmas,
    query_to_dicts,
    register_functions,
    table_exists,
)


@pytest.fixture()
def conn():
    c = sqlite3.connect(":memory:")
    c.row_factory = sqlite3.Row
    create_schema(c)
    register_functions(c)
    yield c
    c.close()


_INSERT = (
    f"INSERT INTO {TRANSACTIONS_TABLE} ({', '.join(RECORD_COLUMNS)}) "
    f"VALUES ({', '.join('?' * len(RECORD_COLUMNS))})"
)


def _row(i, title="Item", price=10.0, description=None):
    return (i, f"{title} {i}", price, description, "misc", None, 1,
            "2000-01-01T00:00:00.000Z")


# ── Schema ────────────────────────────────────────────────────────────────────

class TestSchema:
    def test_creates_table(self, conn):
        assert table_exists(conn, TRANSACTIONS_TABLE)
        assert not table_exists(conn, "missing")

    def test_idempotent(self, conn):
        create_schema(conn)
        assert get_table_count(conn) == 0

    def test_columns(self, conn):
        cols = [r[1] for r in conn.execute(f"PRAGMA table_info({TRANSACTIONS_TABLE})")]
        assert cols == ["_id"] + RECORD_COLUMNS

    def test_pragmas_on_file_db(self, tmp_path):
        c = sqlite3.connect(str(tmp_path / "p.sqlite"))
        try:
            init_pragmas(c)
            assert c.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
            assert c.execute("PRAGMA busy_timeout").fetchone()[0] == 5000
        finally:
            c.close()


# ── Timestamps ────────────────────────────────────────────────────────────────

class TestFormatTimestamp:
    def test_utc(self):
        dt = datetime(2021, 11, 27, 14, 59, 54, 123456, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2021-11-27T14:59:54.123Z"

    def test_offset_converted_to_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        dt = datetime(2000, 4, 1, 2, 0, tzinfo=ist)
        assert format_timestamp(dt) == "2000-03-31T20:30:00.000Z"

    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2000, 1, 2, 3, 4, 5)) == "2000-01-02T03:04:05.000Z"

    def test_string_order_is_chronological(self):
        a = format_timestamp(datetime(2000, 3, 31, 23, 59, 59, 999000))
        b = format_timestamp(datetime(2000, 4, 1))
        assert a < b


# ── iregexp ───────────────────────────────────────────────────────────────────

class TestIRegexp:
    def _match(self, conn, pattern, value):
        return conn.execute("SELECT iregexp(?, ?)", (pattern, value)).fetchone()[0]

    def test_case_insensitive_substring(self, conn):
        assert self._match(conn, "shirt", "Slim Fit T-SHIRT") == 1

    def test_regex_syntax(self, conn):
        assert self._match(conn, "^slim.*shirt$", "Slim Fit T-Shirt") == 1
        assert self._match(conn, "^shirt", "Slim Fit T-Shirt") == 0

    def test_empty_pattern_matches_any_text(self, conn):
        assert self._match(conn, "", "anything") == 1
        assert self._match(conn, "", "") == 1

    def test_null_value_never_matches(self, conn):
        assert self._match(conn, "", None) == 0

    def test_non_text_value_never_matches(self, conn):
        assert self._match(conn, "1", 150) == 0

    def test_invalid_pattern_raises(self, conn):
        with pytest.raises(sqlite3.OperationalError):
            self._match(conn, "(", "text")


# ── Batch insert ──────────────────────────────────────────────────────────────

class TestBatchInsert:
    def test_inserts_all_rows(self, conn):
        assert batch_insert(conn, _INSERT, [_row(i) for i in range(25)], batch_size=10) == 25
        assert get_table_count(conn) == 25

    def test_empty(self, conn):
        assert batch_insert(conn, _INSERT, []) == 0
        assert get_table_count(conn) == 0

    def test_ids_follow_insertion_order(self, conn):
        batch_insert(conn, _INSERT, [_row(i) for i in (30, 10, 20)])
        ids = [r["id"] for r in conn.execute(
            f"SELECT id FROM {TRANSACTIONS_TABLE} ORDER BY _id")]
        assert ids == [30, 10, 20]

    def test_failure_rolls_back_every_batch(self, conn):
        rows = [_row(i) for i in range(5)] + [("too", "short")]
        with pytest.raises(sqlite3.Error):
            batch_insert(conn, _INSERT, rows, batch_size=2)
        assert get_table_count(conn) == 0

    def test_query_to_dicts(self, conn):
        batch_insert(conn, _INSERT, [_row(1, price=12.5)])
        rows = query_to_dicts(conn, f"SELECT id, price FROM {TRANSACTIONS_TABLE}")
        assert rows == [{"id": 1, "price": 12.5}]
