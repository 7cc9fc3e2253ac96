"""Shared SQL query builder utilities for the transaction API routes.

Translates request parameters into parameterised SQL fragments:

- month      -> dateOfSale range predicate (month-match policy aware)
- search     -> title/description regex OR exact price predicate
- page/size  -> LIMIT/OFFSET
- price      -> histogram band label (SQL CASE and a pure-Python twin)
"""

import math
import re
from datetime import datetime, timezone
from typing import Any

from utils.config import DEFAULT_REFERENCE_YEAR
from utils.database import format_timestamp
from utils.errors import QueryParamError

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10

# Leading decimal literal, as accepted by JavaScript's parseFloat().
_LEADING_FLOAT = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)

# Histogram bands, ascending. Each of the first nine matches price <= upper;
# the last matches price >= 901 with no upper bound.
PRICE_BANDS: list[tuple[str, float | None]] = [
    ("0-100", 100),
    ("101-200", 200),
    ("201-300", 300),
    ("301-400", 400),
    ("401-500", 500),
    ("501-600", 600),
    ("601-700", 700),
    ("701-800", 800),
    ("801-900", 900),
    ("901-above", None),
]
OPEN_BAND_FLOOR = 901
OTHER_BAND = "Other"
BAND_ORDER = {label: i for i, (label, _) in enumerate(PRICE_BANDS)}
BAND_ORDER[OTHER_BAND] = len(PRICE_BANDS)


# ── Month range ───────────────────────────────────────────────────────────────

def parse_month(month: Any) -> int | None:
    """Return month as an int in 1..12, or None when missing or invalid.

    Accepts ints and digit strings ("3", "03", " 12 ").
    """
    if month is None or isinstance(month, bool):
        return None
    if isinstance(month, int):
        value = month
    else:
        text = str(month).strip()
        if not text.isdigit():
            return None
        value = int(text)
    return value if 1 <= value <= 12 else None


def month_range(
    month: Any, reference_year: int = DEFAULT_REFERENCE_YEAR,
) -> tuple[datetime, datetime] | None:
    """Return the half-open [start, end) UTC range for month in reference_year.

    ``end`` is ``start`` advanced by one calendar month, so December ends on
    January 1st of the following year. Returns None for an invalid month,
    which callers treat as an empty range.
    """
    m = parse_month(month)
    if m is None:
        return None
    start = datetime(reference_year, m, 1, tzinfo=timezone.utc)
    if m == 12:
        end = datetime(reference_year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(reference_year, m + 1, 1, tzinfo=timezone.utc)
    return start, end


def build_month_clause(
    month: Any,
    reference_year: int = DEFAULT_REFERENCE_YEAR,
    month_match: str = "reference_year",
) -> tuple[str, list[Any]]:
    """Build the dateOfSale predicate for a month.

    Returns:
        (condition, params) without a leading WHERE. An invalid month yields
        the always-false condition "1=0".
    """
    if month_match == "any_year":
        m = parse_month(month)
        if m is None:
            return "1=0", []
        # Stored timestamps are fixed width: YYYY-MM-DDTHH:MM:SS.mmmZ
        return "substr(dateOfSale, 6, 2) = ?", [f"{m:02d}"]

    bounds = month_range(month, reference_year)
    if bounds is None:
        return "1=0", []
    start, end = bounds
    return (
        "dateOfSale >= ? AND dateOfSale < ?",
        [format_timestamp(start), format_timestamp(end)],
    )


# ── Search ────────────────────────────────────────────────────────────────────

def parse_float(text: str | None) -> float:
    """Parse the leading decimal literal of text, JavaScript parseFloat style.

    "12.5", " 12.5abc" and "1e3" parse; "", "abc" and None give NaN.
    """
    if text is None:
        return math.nan
    match = _LEADING_FLOAT.match(text)
    if not match:
        return math.nan
    literal = match.group(1)
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def build_search_clause(search: str) -> tuple[str, list[Any]]:
    """Build the free-text predicate used by the listing endpoint.

    A record matches when its title or description matches ``search`` as a
    case-insensitive regular expression, or its price equals
    ``parse_float(search)``. The price branch is dropped when the parse
    yields NaN, since NaN equals nothing.
    """
    branches = ["iregexp(?, title)", "iregexp(?, description)"]
    params: list[Any] = [search, search]
    price = parse_float(search)
    if not math.isnan(price):
        branches.append("price = ?")
        params.append(price)
    return "(" + " OR ".join(branches) + ")", params


# ── Composition ───────────────────────────────────────────────────────────────

def build_where_clause(
    month: Any = None,
    search: str | None = None,
    reference_year: int = DEFAULT_REFERENCE_YEAR,
    month_match: str = "reference_year",
) -> tuple[str, list[Any]]:
    """Build a SQL WHERE clause from request parameters.

    The month predicate is always applied; a missing month matches nothing.

    Args:
        month: Requested month (1-12, int or string).
        search: Free-text search; None skips the search predicate entirely.
        reference_year: Year the month range is placed in.
        month_match: "reference_year" or "any_year".

    Returns:
        Tuple of (where_clause_string, params_list). The clause starts with
        "WHERE ".
    """
    conditions: list[str] = []
    params: list[Any] = []

    month_sql, month_params = build_month_clause(month, reference_year, month_match)
    conditions.append(month_sql)
    params.extend(month_params)

    if search is not None:
        search_sql, search_params = build_search_clause(search)
        conditions.append(search_sql)
        params.extend(search_params)

    return "WHERE " + " AND ".join(conditions), params


# ── Pagination ────────────────────────────────────────────────────────────────

# Whole-string decimal literal, as accepted by JavaScript's Number().
_NUMBER_LITERAL = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def to_number(value: Any) -> float:
    """Convert value to a number, JavaScript Number() style.

    Surrounding whitespace is ignored and an empty string is 0; anything
    that is not a complete decimal literal gives NaN.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return 0.0
    if not _NUMBER_LITERAL.match(text):
        return math.nan
    if text.lstrip("+-") == "Infinity":
        return -math.inf if text.startswith("-") else math.inf
    return float(text)


def parse_int(value: Any) -> int | None:
    """Parse the leading integer of value, JavaScript parseInt() style.

    Returns None where parseInt would give NaN.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def paginate(page: Any = DEFAULT_PAGE, per_page: Any = DEFAULT_PER_PAGE) -> tuple[int, int]:
    """Return (limit, offset) for page ``page`` of ``per_page`` records.

    The offset is ``(page - 1) * per_page`` computed numerically, so a
    fractional page is fine as long as the offset comes out a whole number
    ("1.5" with 10 per page skips 5). The limit is the leading integer of
    per_page; 0 means no limit (SQLite LIMIT -1) and a negative value uses
    its absolute value.

    Raises:
        QueryParamError: If either value is not numeric, or the offset is
            negative, infinite or fractional.
    """
    skip = (to_number(page) - 1) * to_number(per_page)
    if math.isnan(skip) or math.isinf(skip):
        raise QueryParamError(f"page {page!r} with perPage {per_page!r} is not numeric")
    if skip < 0 or not skip.is_integer():
        raise QueryParamError(
            f"page {page!r} with perPage {per_page!r} gives an invalid offset {skip}"
        )
    size = parse_int(per_page)
    if size is None:
        raise QueryParamError(f"perPage must be an integer, got {per_page!r}")
    limit = abs(size) if size else -1
    return limit, int(skip)


# ── Price bands ───────────────────────────────────────────────────────────────

def price_band(price: float | None) -> str:
    """Return the histogram band label for a price."""
    if price is None or price < 0:
        return OTHER_BAND
    for label, upper in PRICE_BANDS:
        if upper is None:
            if price >= OPEN_BAND_FLOOR:
                return label
        elif price <= upper:
            return label
    return OTHER_BAND


def price_band_case(column: str = "price") -> str:
    """Return a SQL CASE expression mapping ``column`` to its band label.

    Mirrors price_band(): NULL and negative prices go to "Other" first, then
    bands are tested in ascending order.
    """
    whens = [f"WHEN {column} IS NULL OR {column} < 0 THEN '{OTHER_BAND}'"]
    for label, upper in PRICE_BANDS:
        if upper is None:
            whens.append(f"WHEN {column} >= {OPEN_BAND_FLOOR} THEN '{label}'")
        else:
            whens.append(f"WHEN {column} <= {upper} THEN '{label}'")
    return "CASE " + " ".join(whens) + f" ELSE '{OTHER_BAND}' END"
