"""Shared utilities for the product transactions API."""

# Configuration
from utils.config import AppConfig, db_path_from_uri

# Error kinds
from utils.errors import FetchError, QueryParamError, ServiceError, StoreError

# Database utilities
from utils.database import (
    batch_insert,
    create_schema,
    format_timestamp,
    get_table_count,
    init_pragmas,
    query_to_dicts,
    register_functions,
    table_exists,
)

# Query translation
from utils.query import (
    build_month_clause,
    build_search_clause,
    build_where_clause,
    month_range,
    paginate,
    parse_float,
    price_band,
    price_band_case,
)

__all__ = [
    "AppConfig",
    "db_path_from_uri",
    "FetchError",
    "QueryParamError",
    "ServiceError",
    "StoreError",
    "batch_insert",
    "create_schema",
    "format_timestamp",
    "get_table_count",
    "init_pragmas",
    "query_to_dicts",
    "register_functions",
    "table_exists",
    "build_month_clause",
    "build_search_clause",
    "build_where_clause",
    "month_range",
    "paginate",
    "parse_float",
    "price_band",
    "price_band_case",
]
