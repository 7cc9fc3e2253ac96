"""
FastAPI application factory for the product transactions API.

Usage:
    python -m api.app                          # Dev server on APP_PORT (8000)
    APP_DB_URI=sqlite:////data/tx.sqlite python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Lifecycle: the store connection pool and the HTTP session used by the
importer are created at startup, kept on ``app.state`` and closed at
shutdown.

Origins: requests whose Origin header is not on APP_CORS_ORIGINS are
rejected with 403 before reaching a route; allowed origins get the usual
CORS headers from CORSMiddleware.

Logging: text by default, newline-delimited JSON when APP_LOG_FORMAT=json.
"""

import json
import logging
import sqlite3
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.database import ConnectionPool
from api.routes import charts, fetch_data, statistics, transactions
from utils.config import AppConfig
from utils.database import get_table_count
from utils.errors import ServiceError
from utils.http import SessionManager

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id",
                    "error_kind"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("transactions_api")


def configure_logging(log_format: str = "text") -> None:
    """Install one stderr handler on the root logger in the chosen format."""
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(handlers=[handler], level=logging.INFO, force=True)


# Paths that skip the origin allow-list (probes and API docs).
_ORIGIN_EXEMPT_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

_INTERNAL_ERROR_BODY = {"error": "Internal Server Error"}


def create_app(
    db_path: Path | None = None,
    config: AppConfig | None = None,
    http: SessionManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Override the store path (useful for testing).
        config: Settings to use instead of reading the environment.
        http: Session manager for the importer (a fresh one by default).

    Returns:
        Configured FastAPI application instance.
    """
    cfg = config or AppConfig.from_env()
    if db_path is not None:
        cfg.db_path = Path(db_path)
    configure_logging(cfg.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the store pool and HTTP session; close both on shutdown."""
        pool = ConnectionPool(cfg.db_path, cfg.pool_size)
        pool.open()
        app.state.pool = pool
        app.state.http = http or SessionManager()
        _logger.info("store ready db=%s pool_size=%d month_match=%s reference_year=%d",
                     cfg.db_path, cfg.pool_size, cfg.month_match, cfg.reference_year)
        _logger.info("settings %s", cfg.to_dict())
        try:
            yield
        finally:
            app.state.http.close()
            pool.close_all()
            _logger.info("store closed db=%s", cfg.db_path)

    app = FastAPI(
        title="Product Transactions API",
        summary="Import a product-transaction dataset and report on it by month.",
        description=(
            "## Product Transactions API\n\n"
            "Imports a third-party product-transaction JSON dataset and serves "
            "monthly reports over it.\n\n"
            "### Key concepts\n"
            "- **Month** filters use the range `[<year>-MM-01, <year>-(MM+1)-01)` "
            f"inside reference year **{cfg.reference_year}** "
            f"(policy `{cfg.month_match}`). Invalid months match nothing.\n"
            "- **Price bands**: `0-100`, `101-200`, ... `801-900`, `901-above`.\n"
            "- **Errors** return a static 500 body; details are only logged."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "import", "description": "Bulk import of the remote dataset."},
            {"name": "transactions", "description": "Record listing and full dump."},
            {"name": "reports", "description": "Monthly statistics, histogram and category breakdown."},
            {"name": "meta", "description": "Health check."},
        ],
    )
    app.state.config = cfg

    # ── CORS headers for allowed origins ─────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Origin allow-list ─────────────────────────────────────────────────────

    allowed_origins = set(cfg.cors_origins)

    @app.middleware("http")
    async def enforce_origin_allow_list(request: Request, call_next):
        """Reject requests whose Origin is not exactly an allowed origin."""
        if request.url.path in _ORIGIN_EXEMPT_PATHS or "*" in allowed_origins:
            return await call_next(request)
        origin = request.headers.get("origin")
        if origin not in allowed_origins:
            _logger.warning("cors_rejected origin=%s path=%s", origin, request.url.path)
            return JSONResponse(status_code=403, content={"error": "Not allowed by CORS"})
        return await call_next(request)

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request and tag the response with a short request id."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, request.url.path, response.status_code,
                duration_ms, request_id,
            )
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        """Log the failure kind and return the static 500 body."""
        _logger.error(
            "request failed kind=%s path=%s: %s", exc.kind, request.url.path, exc,
            exc_info=exc, extra={"error_kind": exc.kind},
        )
        return JSONResponse(status_code=500, content=_INTERNAL_ERROR_BODY)

    @app.exception_handler(sqlite3.Error)
    async def store_error_handler(request: Request, exc: sqlite3.Error):
        _logger.error(
            "request failed kind=store path=%s: %s", request.url.path, exc,
            exc_info=exc, extra={"error_kind": "store"},
        )
        return JSONResponse(status_code=500, content=_INTERNAL_ERROR_BODY)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of a traceback."""
        _logger.error(
            "request failed kind=internal path=%s: %s", request.url.path, exc,
            exc_info=exc, extra={"error_kind": "internal"},
        )
        return JSONResponse(status_code=500, content=_INTERNAL_ERROR_BODY)

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health(request: Request):
        """Return 200 with the stored record count if the store is reachable."""
        try:
            with request.app.state.pool.connection() as conn:
                count = get_table_count(conn)
        except ServiceError as exc:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "error": exc.kind},
            )
        return {"status": "ok", "transactions": count}

    # ── Register routers ──────────────────────────────────────────────────────

    app.include_router(fetch_data.router)
    app.include_router(transactions.router)
    app.include_router(statistics.router)
    app.include_router(charts.router)

    return app


if __name__ == "__main__":
    import uvicorn

    _cfg = AppConfig.from_env()
    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=_cfg.api_host,
        port=_cfg.api_port,
        log_level="info",
    )
