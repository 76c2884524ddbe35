"""Application factories wiring settings, stores and the HTTP API together."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import Settings
from .database import Database
from .memory import MemoryStore
from .store import StoreError, UserStore

logger = logging.getLogger("userapi.application")


def _seed(store: UserStore) -> None:
    try:
        inserted = store.seed_if_empty()
    except StoreError as exc:
        logger.warning("Failed to insert initial data: %s", exc)
        return
    if inserted:
        logger.info("Inserted %d sample user(s)", inserted)


def build_store(settings: Settings, *, strict: bool = True, seed: bool = True) -> UserStore:
    """Create the store selected by ``settings``.

    In strict mode database configuration and connection failures propagate;
    otherwise they are logged and a disconnected :class:`Database` is returned
    so that it can be initialised lazily later.
    """

    if settings.store == "memory":
        store = MemoryStore()
        if seed:
            _seed(store)
        logger.info("Using in-memory user store")
        return store

    database = Database(settings.database_url)
    try:
        database.initialize()
    except StoreError as exc:
        if strict:
            raise
        logger.error("Database initialization error: %s", exc)
        return database

    if seed:
        _seed(database)
    return database


def create_application(settings: Optional[Settings] = None, *, strict: bool = True, seed: bool = True) -> FastAPI:
    """Create the standalone ASGI application."""

    settings = settings or Settings.from_env()
    store = build_store(settings, strict=strict, seed=seed)
    return create_app(store=store, static_dir=settings.static_dir)


def create_serverless_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the ASGI application for serverless hosting.

    Startup never fails on the database; connection attempts are repeated per
    request until one succeeds.
    """

    settings = settings or Settings.from_env()
    store = build_store(settings, strict=False)
    return create_app(store=store, static_dir=settings.static_dir, reconnect=True)


__all__ = ["build_store", "create_application", "create_serverless_app"]
