"""
Shared pytest fixtures for the product transactions API test suite.

Provides:
  SAMPLE_RECORDS     - a small dataset spread over March, April and December
                       of the reference year, plus one record from 2021
  seed_db()          - create the schema in a SQLite file and insert records
  make_config()      - an AppConfig pointed at a test database
  make_http()        - a fake SessionManager whose session returns a payload
  test_db            - SQLite file seeded with SAMPLE_RECORDS
  client             - TestClient for an app over test_db (allowed Origin set)
  client_factory     - started TestClients over freshly seeded stores
"""

import sqlite3
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.config import DEFAULT_CORS_ORIGIN, AppConfig  # noqa: E402
from utils.database import create_schema  # noqa: E402
from utils.importer import coerce_records, insert_records  # noqa: E402

ORIGIN = DEFAULT_CORS_ORIGIN
DATASET_URL = "https://data.example.test/product_transaction.json"

# March 2000: prices 50, 150, 999, 20 (sold: T, F, T, F)
# April 2000: prices 100, 101 (sold: F, T)
# December 2000: price 900.5 (sold: T)
# March 2021: price 56.99 (outside the reference year)
SAMPLE_RECORDS = [
    {
        "id": 1, "title": "Travel Backpack", "price": 50,
        "description": "Fits 15 inch laptops", "category": "men's clothing",
        "image": "https://img.example.test/1.jpg", "sold": True,
        "dateOfSale": "2000-03-05T10:00:00.000Z",
    },
    {
        "id": 2, "title": "Slim Fit T-Shirt", "price": 150,
        "description": "Premium cotton", "category": "men's clothing",
        "image": "https://img.example.test/2.jpg", "sold": False,
        "dateOfSale": "2000-03-15T08:30:00.000Z",
    },
    {
        "id": 3, "title": "Gold Bracelet", "price": 999,
        "description": "Dragon station chain", "category": "jewelery",
        "image": "https://img.example.test/3.jpg", "sold": True,
        "dateOfSale": "2000-03-31T23:59:59.999Z",
    },
    {
        "id": 4, "title": "External Hard Drive", "price": 100,
        "description": "USB 3.0 storage", "category": "electronics",
        "image": "https://img.example.test/4.jpg", "sold": False,
        "dateOfSale": "2000-04-01T00:00:00.000Z",
    },
    {
        "id": 5, "title": "Gaming Monitor", "price": 101,
        "description": "27 inch IPS panel", "category": "electronics",
        "image": "https://img.example.test/5.jpg", "sold": True,
        "dateOfSale": "2000-04-20T12:00:00.000Z",
    },
    {
        "id": 6, "title": "Rain Jacket", "price": 56.99,
        "description": "Lightweight windbreaker", "category": "women's clothing",
        "image": "https://img.example.test/6.jpg", "sold": False,
        "dateOfSale": "2021-03-10T09:00:00.000Z",
    },
    {
        "id": 7, "title": "Silver Ring", "price": 900.5,
        "description": "Princess cut", "category": "jewelery",
        "image": "https://img.example.test/7.jpg", "sold": True,
        "dateOfSale": "2000-12-31T12:00:00.000Z",
    },
    {
        # Local time is April 1st; the UTC instant is still March 31st
        "id": 8, "title": "Phone Case", "price": 20,
        "description": "Shock absorbing", "category": "electronics",
        "image": "https://img.example.test/8.jpg", "sold": False,
        "dateOfSale": "2000-04-01T02:00:00+05:30",
    },
]


def seed_db(db_path: Path, records=SAMPLE_RECORDS) -> Path:
    """Create the schema at db_path and insert records through the importer."""
    conn = sqlite3.connect(str(db_path))
    try:
        create_schema(conn)
        insert_records(conn, coerce_records(records))
    finally:
        conn.close()
    return db_path


def make_config(db_path: Path, **overrides) -> AppConfig:
    """Return an AppConfig for tests, with overrides applied as attributes."""
    cfg = AppConfig()
    cfg.db_path = Path(db_path)
    cfg.cors_origins = [ORIGIN]
    cfg.dataset_url = DATASET_URL
    cfg.fetch_timeout = 5.0
    cfg.month_match = "reference_year"
    cfg.reference_year = 2000
    cfg.import_skip_invalid = False
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return cfg


def make_http(payload=None, status: int = 200, exc: Exception | None = None):
    """Return a stand-in SessionManager whose session.get yields payload."""
    http = MagicMock()
    if exc is not None:
        http.session.get.side_effect = exc
        return http
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    http.session.get.return_value = resp
    return http


def open_client(db_path: Path, http=None, origin: str | None = ORIGIN, **overrides):
    """Build an app over db_path and return an un-entered TestClient."""
    from fastapi.testclient import TestClient

    from api.app import create_app

    app = create_app(config=make_config(db_path, **overrides), http=http or make_http([]))
    client = TestClient(app, raise_server_exceptions=False)
    if origin is not None:
        client.headers.update({"Origin": origin})
    return client


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture()
def sample_records():
    """A fresh copy of SAMPLE_RECORDS."""
    return [dict(r) for r in SAMPLE_RECORDS]


@pytest.fixture()
def allowed_origin():
    return ORIGIN


@pytest.fixture()
def dataset_url():
    return DATASET_URL


@pytest.fixture()
def fake_http():
    """Factory for stand-in SessionManagers: fake_http(payload, status, exc)."""
    return make_http


@pytest.fixture()
def test_db(tmp_path):
    """SQLite store seeded with SAMPLE_RECORDS."""
    return seed_db(tmp_path / "transactions.sqlite")


@pytest.fixture()
def empty_db(tmp_path):
    """SQLite store with the schema and no records."""
    return seed_db(tmp_path / "empty.sqlite", records=[])


@pytest.fixture()
def client_factory(tmp_path):
    """Factory for started TestClients.

    client_factory(records=None, http=None, origin=ORIGIN, **config_overrides)
    seeds a new store with ``records`` (SAMPLE_RECORDS when None) and returns
    a client whose lifespan has run. Clients are shut down at teardown.
    """
    pytest.importorskip("fastapi")
    pytest.importorskip("httpx")
    opened = []

    def _factory(records=None, http=None, origin=ORIGIN, **overrides):
        db_path = tmp_path / f"store_{len(opened)}.sqlite"
        seed_db(db_path, SAMPLE_RECORDS if records is None else records)
        c = open_client(db_path, http=http, origin=origin, **overrides)
        c.__enter__()
        opened.append(c)
        return c

    yield _factory
    for c in opened:
        c.__exit__(None, None, None)


@pytest.fixture()
def client(test_db):
    """TestClient over the seeded store, sending the allowed Origin."""
    pytest.importorskip("fastapi")
    pytest.importorskip("httpx")
    with open_client(test_db) as c:
        yield c
