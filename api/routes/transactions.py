"""
GET /transactions and GET /combinedData endpoints.

/transactions filters by month, free-text search and paginates;
/combinedData returns every stored record. Both return records in
insertion order.
"""

import logging
import sqlite3

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from api.database import get_db
from api.dependencies import get_config
from api.models import ErrorResponse, MessageOut, TransactionOut
from utils.config import AppConfig
from utils.database import TRANSACTIONS_TABLE, query_to_dicts
from utils.errors import ServiceError
from utils.query import DEFAULT_PAGE, DEFAULT_PER_PAGE, build_where_clause, paginate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transactions"])

_SELECT_COLUMNS = """
    _id, id, title, price, description,
    category, image, sold, dateOfSale
"""


@router.get(
    "/transactions",
    response_model=list[TransactionOut],
    summary="List transactions for a month",
    responses={
        500: {"model": ErrorResponse,
              "description": "Store failure or non-numeric page/perPage",
              "content": {"application/json": {"example": {"error": "Internal Server Error"}}}},
    },
)
def list_transactions(
    month: str | None = Query(None, description="Month 1-12; anything else matches nothing"),
    search: str = Query("", description="Regex on title/description, or an exact price"),
    page: str = Query(str(DEFAULT_PAGE), description="1-based page number"),
    perPage: str = Query(str(DEFAULT_PER_PAGE), description="Records per page; 0 for all"),
    conn: sqlite3.Connection = Depends(get_db),
    cfg: AppConfig = Depends(get_config),
) -> list[TransactionOut]:
    """Return one page of month-matching records that match ``search``.

    ``page`` and ``perPage`` are accepted as raw strings so a value that is
    not numeric fails as a server error, not a 422.
    """
    limit, offset = paginate(page, perPage)
    where, params = build_where_clause(
        month=month,
        search=search,
        reference_year=cfg.reference_year,
        month_match=cfg.month_match,
    )
    rows = query_to_dicts(
        conn,
        f"SELECT {_SELECT_COLUMNS} FROM {TRANSACTIONS_TABLE} {where} "
        f"ORDER BY _id LIMIT ? OFFSET ?",
        tuple(params + [limit, offset]),
    )
    return [TransactionOut(**row) for row in rows]


@router.get(
    "/combinedData",
    response_model=list[TransactionOut],
    summary="Every stored transaction",
    responses={
        500: {"model": MessageOut,
              "content": {"application/json": {"example": {"message": "Error fetching data"}}}},
    },
)
def combined_data(request: Request):
    """Return all records with no filtering or pagination."""
    try:
        with request.app.state.pool.connection() as conn:
            rows = query_to_dicts(
                conn, f"SELECT {_SELECT_COLUMNS} FROM {TRANSACTIONS_TABLE} ORDER BY _id"
            )
    except ServiceError as exc:
        logger.error("combined data failed kind=%s: %s", exc.kind, exc, exc_info=True)
        return JSONResponse(status_code=500, content={"message": "Error fetching data"})
    return [TransactionOut(**row) for row in rows]
