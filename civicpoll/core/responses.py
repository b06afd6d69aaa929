"""Standardized API response utilities.

Every failure leaves the API as `{"success": false, "error": str, "details": str | null}`
so the frontend can show `error` directly.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, NoReturn
from uuid import UUID

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse


class CustomJSONEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles UUID, datetime, and other types."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, bytes):
            return obj.decode("utf-8")
        return super().default(obj)


def success_response(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Create a successful API response."""
    return {"success": True, "data": data, "message": message}


def error_body(
    message: str,
    details: str | None = None,
    errors: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the error envelope."""
    body: dict[str, Any] = {"success": False, "error": message, "details": details}
    if errors:
        body["errors"] = errors
    return body


def error_response(
    message: str,
    details: str | None = None,
    errors: dict[str, Any] | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    headers: dict[str, str] | None = None,
) -> NoReturn:
    """Raise an HTTPException carrying the error envelope."""
    raise HTTPException(
        status_code=status_code,
        detail=error_body(message, details, errors),
        headers=headers,
    )


def error_response_dict(
    error_dict: dict[str, Any],
    status_code: int = status.HTTP_400_BAD_REQUEST,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create an error response as a JSONResponse (for exception handlers)."""
    content = json.loads(json.dumps(error_dict, cls=CustomJSONEncoder))
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def not_found_response(resource: str = "Resource", message: str | None = None) -> NoReturn:
    """Raise a not found error response."""
    error_response(
        message=message or f"{resource} not found",
        status_code=status.HTTP_404_NOT_FOUND,
    )


def forbidden_response(message: str = "Access denied") -> NoReturn:
    """Raise a forbidden error response."""
    error_response(message=message, status_code=status.HTTP_403_FORBIDDEN)


def unauthorized_response(message: str = "Authentication required") -> NoReturn:
    """Raise an unauthorized error response."""
    error_response(
        message=message,
        status_code=status.HTTP_401_UNAUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )


def conflict_response(message: str = "Resource already exists") -> NoReturn:
    """Raise a conflict error response."""
    error_response(message=message, status_code=status.HTTP_409_CONFLICT)
