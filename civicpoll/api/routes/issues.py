"""Citizen issue reporting routes."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator

from civicpoll.api.deps import get_current_user
from civicpoll.core.database import get_db
from civicpoll.core.responses import not_found_response, success_response
from civicpoll.core.validation import sanitize_string
from civicpoll.services import issues as issue_service

router = APIRouter(prefix="/issues", tags=["Issues"])


# ============================================
# PYDANTIC MODELS
# ============================================


class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    category_id: int
    constituency: str | None = Field(None, max_length=255)
    ward: str | None = Field(None, max_length=255)
    is_anonymous: bool = False

    @field_validator("title", "description")
    @classmethod
    def sanitize_text(cls, v: str) -> str:
        v = sanitize_string(v, max_length=5000)
        if not v:
            raise ValueError("This field is required")
        return v


class CommentCreate(BaseModel):
    comment_text: str = Field(..., max_length=2000)


# ============================================
# ENDPOINTS
# ============================================


@router.get("/categories")
async def list_categories(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    categories = await issue_service.list_categories(conn)
    return success_response(data=categories)


@router.get("")
async def list_issues(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    category_id: int | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=255),
):
    """Issues, newest first."""
    issues = await issue_service.list_issues(
        conn, category_id=category_id, status=status_filter, search=search
    )
    return success_response(data=issues)


@router.get("/{issue_id}")
async def get_issue(
    issue_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    issue = await issue_service.get_issue(conn, issue_id)
    if not issue:
        not_found_response("Issue")
    return success_response(data=issue)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_issue(
    request: IssueCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    issue = await issue_service.create_issue(
        conn,
        user_id=UUID(current_user["id"]),
        title=request.title,
        description=request.description,
        category_id=request.category_id,
        constituency=request.constituency,
        ward=request.ward,
        is_anonymous=request.is_anonymous,
    )
    return success_response(data=issue, message="Issue submitted successfully")


@router.post("/{issue_id}/upvote")
async def toggle_upvote(
    issue_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Upvote, or take back an earlier upvote."""
    result = await issue_service.toggle_upvote(conn, issue_id, UUID(current_user["id"]))
    return success_response(data=result)


@router.get("/{issue_id}/comments")
async def list_comments(
    issue_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    comments = await issue_service.list_comments(conn, issue_id)
    return success_response(data=comments)


@router.post("/{issue_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    issue_id: UUID,
    request: CommentCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    comment = await issue_service.add_comment(
        conn, issue_id, UUID(current_user["id"]), sanitize_string(request.comment_text, 2000)
    )
    return success_response(data=comment, message="Comment added")


@router.post("/{issue_id}/view")
async def record_view(
    issue_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    views = await issue_service.increment_views(conn, issue_id)
    return success_response(data={"views_count": views})
