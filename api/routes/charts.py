"""
GET /barchart and GET /pie-chart endpoints.

Both group the month's records and count each group: /barchart by fixed
price band, /pie-chart by category. Empty groups are never returned.
"""

import sqlite3

from fastapi import APIRouter, Depends, Query

from api.database import get_db
from api.dependencies import get_config
from api.models import BucketOut, ErrorResponse
from utils.config import AppConfig
from utils.database import TRANSACTIONS_TABLE, query_to_dicts
from utils.query import BAND_ORDER, build_where_clause, price_band_case

router = APIRouter(tags=["reports"])


@router.get(
    "/barchart",
    response_model=list[BucketOut],
    summary="Price-band histogram",
    responses={500: {"model": ErrorResponse, "description": "Store failure"}},
)
def barchart(
    month: str | None = Query(None, description="Month 1-12"),
    conn: sqlite3.Connection = Depends(get_db),
    cfg: AppConfig = Depends(get_config),
) -> list[BucketOut]:
    """Count the month's records per price band, in ascending band order.

    Records with a NULL or negative price are counted under "Other", which
    sorts after the ten bands.
    """
    where, params = build_where_clause(
        month=month,
        reference_year=cfg.reference_year,
        month_match=cfg.month_match,
    )
    rows = query_to_dicts(
        conn,
        f"SELECT {price_band_case()} AS _id, COUNT(*) AS count "
        f"FROM {TRANSACTIONS_TABLE} {where} GROUP BY 1",
        tuple(params),
    )
    rows = sorted(rows, key=lambda r: BAND_ORDER[r["_id"]])
    return [BucketOut(**row) for row in rows]


@router.get(
    "/pie-chart",
    response_model=list[BucketOut],
    summary="Category breakdown",
    responses={500: {"model": ErrorResponse, "description": "Store failure"}},
)
def pie_chart(
    month: str | None = Query(None, description="Month 1-12"),
    conn: sqlite3.Connection = Depends(get_db),
    cfg: AppConfig = Depends(get_config),
) -> list[BucketOut]:
    """Count the month's records per category, largest first."""
    where, params = build_where_clause(
        month=month,
        reference_year=cfg.reference_year,
        month_match=cfg.month_match,
    )
    rows = query_to_dicts(
        conn,
        f"SELECT category AS _id, COUNT(*) AS count "
        f"FROM {TRANSACTIONS_TABLE} {where} "
        f"GROUP BY category ORDER BY count DESC, category",
        tuple(params),
    )
    return [BucketOut(**row) for row in rows]
