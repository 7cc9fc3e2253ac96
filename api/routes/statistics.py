"""GET /statistics: sale total and sold/unsold counts for one month."""

import sqlite3

from fastapi import APIRouter, Depends, Query

from api.database import get_db
from api.dependencies import get_config
from api.models import ErrorResponse, StatisticsOut
from utils.config import AppConfig
from utils.database import TRANSACTIONS_TABLE, query_to_dicts
from utils.query import build_where_clause

router = APIRouter(tags=["reports"])


@router.get(
    "/statistics",
    response_model=StatisticsOut,
    summary="Monthly sale statistics",
    responses={500: {"model": ErrorResponse, "description": "Store failure"}},
)
def statistics(
    month: str | None = Query(None, description="Month 1-12; anything else yields zeros"),
    conn: sqlite3.Connection = Depends(get_db),
    cfg: AppConfig = Depends(get_config),
) -> StatisticsOut:
    """Return the month's total sale amount and sold / not-sold item counts.

    The total sums ``price`` over every month-matching record, sold or not.
    Records whose ``sold`` is NULL are in neither count.
    """
    where, params = build_where_clause(
        month=month,
        reference_year=cfg.reference_year,
        month_match=cfg.month_match,
    )
    rows = query_to_dicts(
        conn,
        f"""
        SELECT
            COALESCE(SUM(price), 0) AS totalSaleAmount,
            COUNT(CASE WHEN sold = 1 THEN 1 END) AS totalSoldItems,
            COUNT(CASE WHEN sold = 0 THEN 1 END) AS totalNotSoldItems
        FROM {TRANSACTIONS_TABLE}
        {where}
        """,
        tuple(params),
    )
    return StatisticsOut(**rows[0])
