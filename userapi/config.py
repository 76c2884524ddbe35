"""Configuration management for the user service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .store import ConfigError

DEFAULT_PORT = 8080
STORE_BACKENDS = ("database", "memory")


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment."""

    database_url: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    store: str = "database"
    static_dir: Path = Path("public")
    log_level: str = "INFO"

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None, *, dotenv: bool = True) -> "Settings":
        """Create :class:`Settings` from ``environ`` (defaults to ``os.environ``).

        When ``dotenv`` is set, a ``.env`` file in the working directory is loaded
        first without overriding variables that are already set.
        """
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        raw_port = (environ.get("PORT") or "").strip()
        try:
            port = int(raw_port) if raw_port else DEFAULT_PORT
        except ValueError as exc:
            raise ConfigError(f"PORT must be an integer, got '{raw_port}'") from exc
        if not 0 < port < 65536:
            raise ConfigError(f"PORT must be between 1 and 65535, got {port}")

        store = (environ.get("USER_STORE") or "database").strip().lower()
        if store not in STORE_BACKENDS:
            raise ConfigError(f"USER_STORE must be one of {', '.join(STORE_BACKENDS)}, got '{store}'")

        database_url = (environ.get("DATABASE_URL") or "").strip() or None

        return Settings(
            database_url=database_url,
            host=(environ.get("HOST") or "0.0.0.0").strip() or "0.0.0.0",
            port=port,
            store=store,
            static_dir=Path(environ.get("STATIC_DIR") or "public").expanduser(),
            log_level=(environ.get("LOG_LEVEL") or "INFO").strip().upper() or "INFO",
        )

    def require_database_url(self) -> str:
        if not self.database_url:
            raise ConfigError("DATABASE_URL environment variable is not set")
        return self.database_url


__all__ = ["DEFAULT_PORT", "STORE_BACKENDS", "Settings"]
