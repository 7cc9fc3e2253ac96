"""Exception kinds raised by the store, importer and query translator.

Every kind maps to the same static 500 body at the HTTP boundary; the
distinct types exist so callers, logs and tests can tell failures apart.
"""


class ServiceError(Exception):
    """Base class for failures surfaced as a generic server error."""

    kind = "internal"


class FetchError(ServiceError):
    """The import's upstream HTTP call failed or returned a non-success status."""

    kind = "fetch"


class StoreError(ServiceError):
    """A store operation (connect, insert, find, count, aggregate) failed."""

    kind = "store"


class QueryParamError(ServiceError):
    """A query parameter failed type coercion."""

    kind = "validation"
