"""Error responses for the Pressgate HTTP surface.

Every error body has the same shape as the management endpoints' success
bodies: {"success": false, "error": "<text>"}.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from pressgate.errors import ValidationError

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(self, status_code: int, text: str):
        self.text = text
        super().__init__(status_code=status_code, detail=text)

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "error": self.text}


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, text=text)


class UnauthorizedError(ApiError):
    """Missing or wrong shared secret (401)."""

    def __init__(self, text: str = "Unauthorized"):
        super().__init__(status_code=401, text=text)


class NotFoundError(ApiError):
    """Resource not found (404)."""

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(status_code=404, text=f"{resource_type} '{identifier}' not found")


async def api_exception_handler(request: Request, exc: ApiError) -> ORJSONResponse:
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_body())


async def validation_exception_handler(request: Request, exc: ValidationError) -> ORJSONResponse:
    """Domain validation failures raised below the routing layer."""
    content: dict[str, Any] = {"success": False, "error": exc.text}
    if exc.field:
        content["field"] = exc.field
    return ORJSONResponse(status_code=400, content=content)


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Malformed query parameters or JSON bodies."""
    details = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return ORJSONResponse(
        status_code=422,
        content={"success": False, "error": "Invalid request", "details": details},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return ORJSONResponse(
        status_code=500,
        content={"success": False, "error": "An unexpected error occurred"},
    )
