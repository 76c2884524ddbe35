"""Command-line interface for the user service."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Sequence

from userapi.config import STORE_BACKENDS, Settings
from userapi.database import Database
from userapi.store import ConfigError, StoreError

logger = logging.getLogger("userapi.main")

ENDPOINTS = (
    ("GET", "/api", "Service information"),
    ("GET", "/api/v1/health", "Health check"),
    ("GET", "/api/v1/users", "Get all users"),
    ("GET", "/api/v1/users/{id}", "Get user by ID"),
    ("POST", "/api/v1/users", "Create new user"),
    ("PUT", "/api/v1/users/{id}", "Update user"),
    ("DELETE", "/api/v1/users/{id}", "Delete user"),
)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User service utilities")
    subparsers = parser.add_subparsers(dest="command")
    parser.set_defaults(command="serve")

    subparsers.add_parser(
        "init-db",
        help="Create the users table and insert sample data if it is empty",
    )

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listen port (default: PORT or 8080)",
    )
    serve_parser.add_argument(
        "--store",
        choices=STORE_BACKENDS,
        default=None,
        help="Backing store for users (default: USER_STORE or database)",
    )
    serve_parser.add_argument(
        "--static-dir",
        default=None,
        help="Directory served for paths outside the API (default: STATIC_DIR or ./public)",
    )
    serve_parser.add_argument(
        "--no-seed",
        action="store_true",
        help="Do not insert sample users into an empty store",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db"}
    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.store:
        overrides["store"] = args.store
    if args.static_dir:
        overrides["static_dir"] = Path(args.static_dir).expanduser()
    return dataclasses.replace(settings, **overrides)


def _migrate(settings: Settings) -> int:
    try:
        database = Database(settings.require_database_url())
        database.initialize()
    except StoreError as exc:
        logger.error("Failed to initialize database: %s", exc)
        return 1

    try:
        logger.info("Database migration completed successfully")
        try:
            inserted = database.seed_if_empty()
        except StoreError as exc:
            logger.warning("Failed to insert initial data: %s", exc)
        else:
            logger.info("Inserted %d sample user(s)", inserted)
    finally:
        database.close()
    return 0


def _serve(settings: Settings, *, seed: bool) -> int:
    from userapi.application import create_application
    import uvicorn

    try:
        if settings.store == "database":
            settings.require_database_url()
        app = create_application(settings, strict=True, seed=seed)
    except StoreError as exc:
        logger.error("Failed to initialize database: %s", exc)
        return 1

    logger.info("Starting user API on http://%s:%s (%s store)", settings.host, settings.port, settings.store)
    for method, path, description in ENDPOINTS:
        logger.info("  %-6s %-20s - %s", method, path, description)

    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    finally:
        close = getattr(app.state.store, "close", None)
        if callable(close):
            close()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
        logger.error("Invalid configuration: %s", exc)
        return 2

    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(message)s")

    if args.command == "init-db":
        return _migrate(settings)

    return _serve(_apply_overrides(settings, args), seed=not args.no_seed)


if __name__ == "__main__":
    raise SystemExit(main())
