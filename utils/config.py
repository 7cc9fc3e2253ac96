"""Configuration management for the product transactions API.

Provides:
- Config: base class with dict export (logged at startup)
- AppConfig: application settings read once from environment variables
- db_path_from_uri(): resolve the store location from a database URI
"""

import os as _os
from pathlib import Path
from typing import Any, Dict


DEFAULT_DATASET_URL = "https://s3.amazonaws.com/roxiler.com/product_transaction.json"
DEFAULT_CORS_ORIGIN = "https://roxilerdashboard.netlify.app/"
DEFAULT_REFERENCE_YEAR = 2000

# Month-match policies for every month-filtered query.
#   reference_year: [<year>-MM-01, <year>-(MM+1)-01) inside APP_REFERENCE_YEAR
#   any_year:       UTC month of dateOfSale equals MM, year ignored
MONTH_MATCH_POLICIES = ("reference_year", "any_year")

_TRUTHY = {"1", "true", "yes", "on"}


def db_path_from_uri(uri: str) -> Path:
    """Return the SQLite file path named by a database URI.

    Accepts ``sqlite:///relative.sqlite``, ``sqlite:////abs/path.sqlite``,
    ``file:path.sqlite`` (query string ignored) or a bare filesystem path.

    Raises:
        ValueError: If the URI uses a scheme other than sqlite or file.
    """
    if uri.startswith("sqlite:///"):
        return Path(uri[len("sqlite:///"):])
    if uri.startswith("file:"):
        return Path(uri[len("file:"):].split("?", 1)[0])
    if "://" in uri:
        raise ValueError(f"Unsupported database URI: '{uri}'")
    return Path(uri)


class Config:
    """Base configuration class for organizing application settings."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (private attributes excluded)."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have defaults so the application starts without any
    configuration.

    Environment variables:
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_DB_URI: Store location (default: sqlite:///transactions.sqlite)
        APP_DB_POOL_SIZE: Max DB connections in pool (default: 10)
        APP_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins
            (default: https://roxilerdashboard.netlify.app/)
        APP_DATASET_URL: JSON array imported by GET /fetch-data
        APP_FETCH_TIMEOUT: Import HTTP timeout in seconds (default: 30)
        APP_REFERENCE_YEAR: Year used for month ranges (default: 2000)
        APP_MONTH_MATCH: reference_year | any_year (default: reference_year)
        APP_IMPORT_SKIP_INVALID: Skip malformed import rows instead of
            aborting the batch (default: false)
    """

    def __init__(self) -> None:
        super().__init__()
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.db_uri = _os.getenv("APP_DB_URI", "sqlite:///transactions.sqlite")
        self.db_path = db_path_from_uri(self.db_uri)
        self.pool_size = int(_os.getenv("APP_DB_POOL_SIZE", "10"))
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = _os.getenv("APP_CORS_ORIGINS", DEFAULT_CORS_ORIGIN)
        self.cors_origins: list[str] = [
            o.strip() for o in raw_origins.split(",") if o.strip()
        ]
        self.dataset_url = _os.getenv("APP_DATASET_URL", DEFAULT_DATASET_URL)
        self.fetch_timeout = float(_os.getenv("APP_FETCH_TIMEOUT", "30"))
        self.reference_year = int(
            _os.getenv("APP_REFERENCE_YEAR", str(DEFAULT_REFERENCE_YEAR))
        )
        self.month_match = _os.getenv("APP_MONTH_MATCH", "reference_year")
        if self.month_match not in MONTH_MATCH_POLICIES:
            raise ValueError(
                f"APP_MONTH_MATCH must be one of: {', '.join(MONTH_MATCH_POLICIES)}"
            )
        self.import_skip_invalid = (
            _os.getenv("APP_IMPORT_SKIP_INVALID", "false").strip().lower() in _TRUTHY
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
