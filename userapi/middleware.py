"""CORS and request logging middleware for the user API."""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response, status

logger = logging.getLogger("userapi.middleware")

NextHandler = Callable[[Request], Awaitable[Response]]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

SLOW_REQUEST_SECONDS = 1.0


def apply_cors_headers(response: Response) -> Response:
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response


async def add_cors_headers(request: Request, call_next: NextHandler) -> Response:
    """Decorate every response with permissive CORS headers and answer preflights directly."""

    if request.method == "OPTIONS":
        return apply_cors_headers(Response(status_code=status.HTTP_200_OK))
    response = await call_next(request)
    return apply_cors_headers(response)


async def log_requests(request: Request, call_next: NextHandler) -> Response:
    start_time = time.time()
    request_id = f"{int(start_time * 1000)}-{id(request)}"

    try:
        response = await call_next(request)
    except Exception as exc:
        logger.error(
            "[%s] %s %s - ERROR: %s - %.2fs",
            request_id,
            request.method,
            request.url.path,
            exc,
            time.time() - start_time,
        )
        raise

    elapsed = time.time() - start_time
    # Only slow requests and errors are worth a line
    if elapsed > SLOW_REQUEST_SECONDS or response.status_code >= 400:
        logger.info(
            "[%s] %s %s - %s - %.2fs",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
    return response


__all__ = ["CORS_HEADERS", "add_cors_headers", "apply_cors_headers", "log_requests"]
