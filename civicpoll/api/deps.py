"""API dependencies for authentication, authorization and rate limiting."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from civicpoll.core.database import get_db
from civicpoll.core.logging_config import security_logger
from civicpoll.core.rate_limiting import RateLimiter, api_rate_limiter
from civicpoll.core.responses import error_response, forbidden_response, unauthorized_response
from civicpoll.core.security import decode_access_token
from civicpoll.services.users import ADMIN_ROLES, get_user_by_id

# auto_error=False so a missing header answers 401 through our own envelope
security = HTTPBearer(auto_error=False)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def _user_from_token(conn: asyncpg.Connection, token: str) -> dict | None:
    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    try:
        return await get_user_by_id(conn, UUID(user_id))
    except ValueError:
        return None


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
) -> dict:
    """
    Dependency to get the current authenticated user.

    Validates the JWT and loads the user; suspended accounts are refused
    even with a valid token.
    """
    if credentials is None:
        unauthorized_response("Access denied. No token provided.")

    user = await _user_from_token(conn, credentials.credentials)
    if user is None:
        unauthorized_response("Invalid or expired token")

    if user.get("status") != "active":
        security_logger.log_unauthorized_access("account", user["id"], "account_not_active")
        forbidden_response("Account is not active")

    return user


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
) -> dict | None:
    """The caller if a valid token for an active account is present, else None."""
    if credentials is None:
        return None
    user = await _user_from_token(conn, credentials.credentials)
    if user is None or user.get("status") != "active":
        return None
    return user


def is_admin(user: dict | None) -> bool:
    return bool(user) and user.get("role") in ADMIN_ROLES


def require_admin(current_user: Annotated[dict, Depends(get_current_user)]) -> dict:
    """
    Dependency to require an admin role.

    Raises HTTP 403 if the user is neither `admin` nor `super_admin`.
    """
    if not is_admin(current_user):
        security_logger.log_unauthorized_access("admin", current_user["id"], "not_admin")
        forbidden_response("Admin access required")
    return current_user


def require_super_admin(current_user: Annotated[dict, Depends(get_current_user)]) -> dict:
    if current_user.get("role") != "super_admin":
        security_logger.log_unauthorized_access(
            "super_admin", current_user["id"], "not_super_admin"
        )
        forbidden_response("Super admin access required")
    return current_user


def enforce_rate_limit(limiter: RateLimiter, name: str, identifier: str, message: str) -> None:
    """Count one hit against `limiter`; answer 429 with Retry-After when over the limit."""
    limited, retry_after = limiter.hit(identifier)
    if limited:
        security_logger.log_rate_limited(name, identifier)
        error_response(
            message=message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(retry_after)},
        )


async def rate_limit_api(request: Request) -> None:
    """Per-IP limit applied to every router."""
    enforce_rate_limit(
        api_rate_limiter,
        "api",
        client_ip(request),
        "Too many requests from this IP, please try again later.",
    )


