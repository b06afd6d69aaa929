"""Admin dashboard, issue moderation and user management routes."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from civicpoll.api.deps import require_admin, require_super_admin
from civicpoll.core.database import get_db
from civicpoll.core.logging_config import get_logger
from civicpoll.core.responses import error_response, not_found_response, success_response
from civicpoll.services import admin as admin_service
from civicpoll.services import users as user_service

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])
logger = get_logger(__name__)


# ============================================
# PYDANTIC MODELS
# ============================================


class IssueStatusUpdate(BaseModel):
    status: str = Field(..., max_length=20)


class IssueResponseCreate(BaseModel):
    response: str = Field(..., max_length=5000)


class IssuePriorityUpdate(BaseModel):
    priority: str = Field(..., max_length=10)


class UserRoleUpdate(BaseModel):
    role: str = Field(..., max_length=20)


class UserStatusUpdate(BaseModel):
    status: str = Field(..., max_length=20)


# ============================================
# STATISTICS
# ============================================


@router.get("/stats")
async def get_stats(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    """Dashboard overview."""
    stats = await admin_service.get_dashboard_stats(conn)
    return success_response(data=stats)


@router.get("/stats/issues")
async def get_issue_stats(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    stats = await admin_service.get_issue_stats(conn)
    return success_response(data=stats)


# ============================================
# ISSUE MODERATION
# ============================================


@router.get("/issues")
async def list_issues(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    status_filter: str | None = Query(None, alias="status"),
    category_id: int | None = Query(None),
    priority: str | None = Query(None),
    sort: str = Query("newest"),
):
    issues = await admin_service.list_issues(
        conn, status=status_filter, category_id=category_id, priority=priority, sort=sort
    )
    return success_response(data=issues)


@router.get("/issues/{issue_id}")
async def get_issue(issue_id: UUID, conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    issue = await admin_service.get_issue(conn, issue_id)
    return success_response(data=issue)


@router.put("/issues/{issue_id}/status")
async def update_issue_status(
    issue_id: UUID,
    request: IssueStatusUpdate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    issue = await admin_service.update_issue_status(conn, issue_id, request.status)
    return success_response(data=issue, message=f"Issue status updated to {request.status}")


@router.put("/issues/{issue_id}/response")
async def add_issue_response(
    issue_id: UUID,
    request: IssueResponseCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    issue = await admin_service.add_admin_response(
        conn, issue_id, UUID(admin_user["id"]), request.response
    )
    return success_response(data=issue, message="Response added")


@router.put("/issues/{issue_id}/priority")
async def update_issue_priority(
    issue_id: UUID,
    request: IssuePriorityUpdate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    issue = await admin_service.update_issue_priority(conn, issue_id, request.priority)
    return success_response(data=issue, message=f"Issue priority updated to {request.priority}")


# ============================================
# USER MANAGEMENT
# ============================================


@router.get("/users")
async def list_users(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    role: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    users, total = await user_service.list_users(
        conn, role=role, status=status_filter, search=search, limit=limit, offset=offset
    )
    return success_response(data={"users": users, "total": total, "limit": limit, "offset": offset})


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: UUID,
    request: UserRoleUpdate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    super_admin: Annotated[dict, Depends(require_super_admin)],
):
    """Change a user's role (super admins only)."""
    if request.role not in user_service.USER_ROLES:
        error_response(f"Role must be one of: {', '.join(user_service.USER_ROLES)}")

    user = await user_service.set_user_role(conn, user_id, request.role)
    if not user:
        not_found_response("User")
    logger.info(f"User {user_id} role set to {request.role} by {super_admin['id']}")
    return success_response(data=user, message="User role updated")


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: UUID,
    request: UserStatusUpdate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    """Activate or suspend an account other than the caller's own."""
    if request.status not in user_service.USER_STATUSES:
        error_response(f"Status must be one of: {', '.join(user_service.USER_STATUSES)}")

    if str(user_id) == admin_user["id"]:
        error_response("You cannot change your own account status")

    user = await user_service.set_user_status(conn, user_id, request.status)
    if not user:
        not_found_response("User")
    logger.info(f"User {user_id} status set to {request.status} by {admin_user['id']}")
    return success_response(data=user, message="User status updated")
