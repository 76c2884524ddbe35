"""FastAPI application that exposes the user CRUD endpoints."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Generic, List, Optional, TypeVar

import anyio
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, StrictStr, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import Database
from .middleware import add_cors_headers, apply_cors_headers, log_requests
from .models import User, format_timestamp
from .store import NotFoundError, StoreError, UserStore, ValidationError

logger = logging.getLogger("userapi.api")

API_VERSION = "1.0.0"
API_PREFIXES = ("/api/v1", "/api")

T = TypeVar("T")

_USER_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
# Identifiers are 64-bit signed integers
_USER_ID_MIN = -(2**63)
_USER_ID_MAX = 2**63 - 1


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created: str


class HealthPayload(BaseModel):
    status: str
    database: Optional[str] = None
    timestamp: str


class ServiceInfo(BaseModel):
    version: str
    docs: str


class Envelope(BaseModel, Generic[T]):
    """Wrapper shared by every API response; ``data`` is dropped when absent."""

    success: bool
    message: str
    data: Optional[T] = None


class UserPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr = ""
    email: StrictStr = ""

    @field_validator("name", "email", mode="before")
    @classmethod
    def _null_is_empty(cls, value: object) -> object:
        return "" if value is None else value


class APIError(Exception):
    """Failure that is rendered as an envelope with the given status code."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def user_to_response(user: User) -> UserResponse:
    return UserResponse(**user.to_dict())


def render(status_code: int, envelope: Envelope[Any], *, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def failure(status_code: int, message: str, *, headers: Optional[dict] = None) -> JSONResponse:
    return render(status_code, Envelope[None](success=False, message=message), headers=headers)


def parse_user_id(raw: str) -> int:
    if not _USER_ID_PATTERN.fullmatch(raw):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid user ID")
    user_id = int(raw)
    if not _USER_ID_MIN <= user_id <= _USER_ID_MAX:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid user ID")
    return user_id


async def read_user_payload(request: Request) -> UserPayload:
    try:
        raw = await request.json()
        payload = UserPayload.model_validate(raw)
    except ValueError as exc:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid JSON data") from exc

    if not payload.name or not payload.email:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Name and email are required")
    return payload


async def _run(func: Callable[..., T], *args: object) -> T:
    return await anyio.to_thread.run_sync(func, *args)


def create_app(
    *,
    store: UserStore,
    static_dir: Path | None = None,
    reconnect: bool = False,
) -> FastAPI:
    """Build the application around ``store``.

    With ``reconnect`` set, a :class:`Database` that is not connected is
    re-initialised on each request; user routes fail with 500 while that keeps
    failing, the health check reports ``disconnected``.
    """

    app = FastAPI(
        title="User API",
        description="CRUD service for user records",
        version=API_VERSION,
    )
    app.state.store = store

    async def ensure_connected() -> bool:
        if not isinstance(store, Database) or store.is_connected:
            return True
        try:
            await _run(store.initialize)
        except StoreError as exc:
            logger.error("Database initialization failed: %s", exc)
            return False
        return True

    async def require_store() -> None:
        if reconnect and not await ensure_connected():
            raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database connection failed")

    router = APIRouter()

    @router.get("/health", response_model=Envelope[HealthPayload])
    async def healthcheck() -> JSONResponse:
        if reconnect:
            await ensure_connected()
        database_status = await _run(store.connectivity)
        payload = HealthPayload(
            status="ok",
            database=database_status,
            timestamp=format_timestamp(datetime.now(timezone.utc)),
        )
        return render(
            status.HTTP_200_OK,
            Envelope[HealthPayload](success=True, message="API is healthy", data=payload),
        )

    @router.get("/users", response_model=Envelope[List[UserResponse]])
    async def list_users() -> JSONResponse:
        await require_store()
        try:
            users = await _run(store.list_users)
        except StoreError as exc:
            logger.warning("Failed to fetch users: %s", exc)
            raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch users") from exc
        return render(
            status.HTTP_200_OK,
            Envelope[List[UserResponse]](
                success=True,
                message="Users retrieved successfully",
                data=[user_to_response(user) for user in users],
            ),
        )

    @router.get("/users/{user_id}", response_model=Envelope[UserResponse])
    async def read_user(user_id: str) -> JSONResponse:
        identifier = parse_user_id(user_id)
        await require_store()
        try:
            user = await _run(store.get_user, identifier)
        except NotFoundError as exc:
            raise APIError(status.HTTP_404_NOT_FOUND, "User not found") from exc
        except StoreError as exc:
            logger.warning("Failed to fetch user %s: %s", identifier, exc)
            raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch user") from exc
        return render(
            status.HTTP_200_OK,
            Envelope[UserResponse](success=True, message="User found", data=user_to_response(user)),
        )

    @router.post("/users", status_code=status.HTTP_201_CREATED, response_model=Envelope[UserResponse])
    async def create_user(request: Request) -> JSONResponse:
        payload = await read_user_payload(request)
        await require_store()
        try:
            user = await _run(store.create_user, payload.name, payload.email)
        except ValidationError as exc:
            raise APIError(status.HTTP_400_BAD_REQUEST, "Name and email are required") from exc
        except StoreError as exc:
            logger.warning("Failed to create user %s: %s", payload.email, exc)
            raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create user") from exc
        logger.info("Created user %s", user.id)
        return render(
            status.HTTP_201_CREATED,
            Envelope[UserResponse](
                success=True,
                message="User created successfully",
                data=user_to_response(user),
            ),
        )

    @router.put("/users/{user_id}", response_model=Envelope[UserResponse])
    async def update_user(user_id: str, request: Request) -> JSONResponse:
        identifier = parse_user_id(user_id)
        payload = await read_user_payload(request)
        await require_store()
        try:
            user = await _run(store.update_user, identifier, payload.name, payload.email)
        except NotFoundError as exc:
            raise APIError(status.HTTP_404_NOT_FOUND, "User not found") from exc
        except ValidationError as exc:
            raise APIError(status.HTTP_400_BAD_REQUEST, "Name and email are required") from exc
        except StoreError as exc:
            logger.warning("Failed to update user %s: %s", identifier, exc)
            raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update user") from exc
        logger.info("Updated user %s", user.id)
        return render(
            status.HTTP_200_OK,
            Envelope[UserResponse](
                success=True,
                message="User updated successfully",
                data=user_to_response(user),
            ),
        )

    @router.delete("/users/{user_id}", response_model=Envelope[None])
    async def delete_user(user_id: str) -> JSONResponse:
        identifier = parse_user_id(user_id)
        await require_store()
        try:
            await _run(store.delete_user, identifier)
        except NotFoundError as exc:
            raise APIError(status.HTTP_404_NOT_FOUND, "User not found") from exc
        except StoreError as exc:
            logger.warning("Failed to delete user %s: %s", identifier, exc)
            raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete user") from exc
        logger.info("Deleted user %s", identifier)
        return render(
            status.HTTP_200_OK,
            Envelope[None](success=True, message="User deleted successfully"),
        )

    for prefix in API_PREFIXES:
        app.include_router(router, prefix=prefix)

    def service_info() -> JSONResponse:
        return render(
            status.HTTP_200_OK,
            Envelope[ServiceInfo](
                success=True,
                message="Welcome to the User API!",
                data=ServiceInfo(version=API_VERSION, docs="Visit /api/v1/health for health check"),
            ),
        )

    app.add_api_route("/api", service_info, methods=["GET"], response_model=Envelope[ServiceInfo])

    if static_dir is not None and static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    else:
        app.add_api_route("/", service_info, methods=["GET"], response_model=Envelope[ServiceInfo])

    @app.exception_handler(APIError)
    async def handle_api_error(_: Request, exc: APIError) -> JSONResponse:
        return failure(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception in %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        # Rendered outside the middleware stack, so CORS headers are added here.
        return apply_cors_headers(failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"))

    app.middleware("http")(log_requests)
    app.middleware("http")(add_cors_headers)

    return app


__all__ = [
    "APIError",
    "Envelope",
    "HealthPayload",
    "ServiceInfo",
    "UserPayload",
    "UserResponse",
    "create_app",
    "parse_user_id",
    "user_to_response",
]
