"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that render
application/problem+json responses.
"""

from __future__ import annotations

from typing import Any, Dict
import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def _problem_body(exc: HTTPException) -> Dict[str, Any]:
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = dict(exc.detail)
        body.setdefault("status", status)
        return body
    return {"title": "Error", "status": status, "detail": str(exc.detail or "")}


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(
        _problem_body(exc),
        status_code=int(exc.status_code or 500),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers or None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": "REQUEST_INVALID",
        "errors": [
            {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
            for e in exc.errors()
        ],
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
