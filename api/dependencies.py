"""Shared FastAPI dependencies other than the database connection."""

from fastapi import Request

from utils.config import AppConfig


def get_config(request: Request) -> AppConfig:
    """Return the AppConfig the application was created with."""
    return request.app.state.config
