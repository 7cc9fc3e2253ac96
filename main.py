#!/usr/bin/env python3
"""
Product Transactions API: launch the HTTP server.

Usage:
    python main.py                          # APP_HOST:APP_PORT (127.0.0.1:8000)
    python main.py --port 9000
    python main.py --host 0.0.0.0
    python main.py --db /path/to/transactions.sqlite
    python main.py --reload                 # auto-reload on code changes
"""

from __future__ import annotations

import argparse
import os
import sys

from utils.config import AppConfig


def main() -> None:
    cfg = AppConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Run the product transactions API server.",
    )
    parser.add_argument(
        "--host", default=cfg.api_host,
        help=f"Bind address (default: {cfg.api_host} or APP_HOST env var)",
    )
    parser.add_argument(
        "--port", type=int, default=cfg.api_port,
        help=f"Port to listen on (default: {cfg.api_port} or APP_PORT env var)",
    )
    parser.add_argument(
        "--db", default=None,
        help="Store location, path or sqlite:/// URI (default: APP_DB_URI env var)",
    )
    parser.add_argument(
        "--reload", action="store_true",
        help="Enable auto-reload on file changes (development mode)",
    )
    args = parser.parse_args()

    # The factory reads the environment, so CLI overrides go there too
    if args.db is not None:
        os.environ["APP_DB_URI"] = args.db

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is not installed.")
        print("  pip install uvicorn[standard]")
        sys.exit(1)

    print(f"Starting Product Transactions API at http://{args.host}:{args.port}")
    print(f"Database: {os.getenv('APP_DB_URI', cfg.db_uri)}")
    print()

    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
