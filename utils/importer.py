"""Dataset importer: fetch the product-transaction JSON array and store it.

Usage::

    from utils.importer import import_dataset

    report = import_dataset(conn, url, session=sm.session)
    print(report.inserted)

Every call appends; importing the same dataset twice stores every record
twice.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

import requests
from pydantic import BaseModel, ConfigDict, ValidationError

from utils.database import RECORD_COLUMNS, TRANSACTIONS_TABLE, batch_insert, format_timestamp
from utils.errors import FetchError, StoreError
from utils.http import fetch_json

logger = logging.getLogger(__name__)

_INSERT_SQL = (
    f"INSERT INTO {TRANSACTIONS_TABLE} ({', '.join(RECORD_COLUMNS)}) "
    f"VALUES ({', '.join('?' * len(RECORD_COLUMNS))})"
)


class TransactionRecord(BaseModel):
    """One element of the imported dataset, coerced to the stored types.

    Unknown keys are ignored; missing keys become NULL. Numbers in text
    fields are stored as their string form.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: int | None = None
    title: str | None = None
    price: float | None = None
    description: str | None = None
    category: str | None = None
    image: str | None = None
    sold: bool | None = None
    dateOfSale: datetime | None = None

    def to_row(self) -> tuple:
        """Return the record as a tuple in RECORD_COLUMNS order."""
        return (
            self.id,
            self.title,
            self.price,
            self.description,
            self.category,
            self.image,
            None if self.sold is None else int(self.sold),
            None if self.dateOfSale is None else format_timestamp(self.dateOfSale),
        )


@dataclass
class ImportReport:
    """What one import call did."""

    fetched: int = 0
    inserted: int = 0
    skipped: int = 0


def coerce_records(items: Iterable[Any], skip_invalid: bool = False,
                   report: ImportReport | None = None) -> list[tuple]:
    """Validate dataset elements and return insert-ready rows.

    Args:
        items: Decoded JSON elements
        skip_invalid: Drop malformed elements instead of failing the batch
        report: Optional report whose ``skipped`` counter is updated

    Raises:
        StoreError: If an element is malformed and skip_invalid is False.
    """
    rows: list[tuple] = []
    for index, item in enumerate(items):
        try:
            rows.append(TransactionRecord.model_validate(item).to_row())
        except ValidationError as exc:
            if not skip_invalid:
                raise StoreError(f"Record {index} failed validation: {exc}") from exc
            logger.warning("skipping malformed record index=%d errors=%d",
                           index, exc.error_count())
            if report is not None:
                report.skipped += 1
    return rows


def insert_records(conn: sqlite3.Connection, rows: list[tuple]) -> int:
    """Insert rows in one transaction, translating store failures.

    Raises:
        StoreError: If the insert fails; no rows are kept in that case.
    """
    try:
        return batch_insert(conn, _INSERT_SQL, rows)
    except sqlite3.Error as exc:
        raise StoreError(f"Insert into {TRANSACTIONS_TABLE} failed: {exc}") from exc


def import_dataset(
    conn: sqlite3.Connection,
    url: str,
    session: requests.Session | None = None,
    timeout: float = 30.0,
    skip_invalid: bool = False,
) -> ImportReport:
    """Fetch the dataset at ``url`` and append every record to the store.

    Raises:
        FetchError: The fetch failed or the body is not a JSON array.
        StoreError: A record failed coercion (unless skip_invalid) or the
            insert failed.
    """
    payload = fetch_json(url, session=session, timeout=timeout)
    if not isinstance(payload, list):
        raise FetchError(
            f"Expected a JSON array from {url}, got {type(payload).__name__}"
        )

    report = ImportReport(fetched=len(payload))
    rows = coerce_records(payload, skip_invalid=skip_invalid, report=report)
    report.inserted = insert_records(conn, rows)
    logger.info("import complete url=%s fetched=%d inserted=%d skipped=%d",
                url, report.fetched, report.inserted, report.skipped)
    return report
