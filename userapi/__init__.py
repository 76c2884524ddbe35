"""User CRUD service backed by SQLite or an in-memory collection."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_url
from .memory import MemoryStore
from .models import User


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP API for an explicit store."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


def create_application(*args: Any, **kwargs: Any):
    """Factory function for the standalone application configured from the environment."""

    from .application import create_application as _create_application

    return _create_application(*args, **kwargs)


__all__ = [
    "Database",
    "MemoryStore",
    "User",
    "create_app",
    "create_application",
    "resolve_database_url",
]
