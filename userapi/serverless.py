"""Serverless entry point: ``uvicorn userapi.serverless:app`` or any ASGI host."""
from __future__ import annotations

from .application import create_serverless_app

app = create_serverless_app()


__all__ = ["app"]
