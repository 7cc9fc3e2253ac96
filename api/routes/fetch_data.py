"""
GET /fetch-data: import the remote product-transaction dataset.

Each call fetches the configured JSON array and appends every record; there
is no de-duplication, so calling it twice stores the dataset twice.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import MessageOut
from utils.errors import ServiceError
from utils.importer import import_dataset

logger = logging.getLogger(__name__)

router = APIRouter(tags=["import"])


@router.get(
    "/fetch-data",
    response_model=MessageOut,
    summary="Import the remote dataset",
    responses={
        500: {"model": MessageOut,
              "content": {"application/json": {"example": {"message": "Error importing data"}}}},
    },
)
def fetch_data(request: Request):
    """Fetch the dataset and bulk-insert it into the store."""
    cfg = request.app.state.config
    try:
        with request.app.state.pool.connection() as conn:
            import_dataset(
                conn,
                cfg.dataset_url,
                session=request.app.state.http.session,
                timeout=cfg.fetch_timeout,
                skip_invalid=cfg.import_skip_invalid,
            )
    except ServiceError as exc:
        logger.error("import failed kind=%s: %s", exc.kind, exc, exc_info=True)
        return JSONResponse(status_code=500, content={"message": "Error importing data"})
    return MessageOut(message="Successfully imported data")
