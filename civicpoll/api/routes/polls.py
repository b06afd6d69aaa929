"""Poll and voting routes."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from civicpoll.api.deps import (
    enforce_rate_limit,
    get_current_user,
    get_optional_user,
    is_admin,
    require_admin,
)
from civicpoll.core.database import get_db
from civicpoll.core.exceptions import ServiceError
from civicpoll.core.logging_config import get_logger, security_logger
from civicpoll.core.rate_limiting import poll_creation_rate_limiter, vote_rate_limiter
from civicpoll.core.responses import success_response
from civicpoll.core.validation import as_utc, sanitize_string
from civicpoll.services import polls as poll_service
from civicpoll.services import voting as voting_service

router = APIRouter(prefix="/polls", tags=["Polls"])
logger = get_logger(__name__)


# ============================================
# PYDANTIC MODELS
# ============================================


class PollCandidateInput(BaseModel):
    """A candidate created together with its poll."""

    name: str = Field(..., min_length=1, max_length=255)
    party_id: int | None = None
    bio: str | None = None
    slogan: str | None = Field(None, max_length=500)
    age: int | None = Field(None, ge=18, le=120)
    gender: str | None = Field(None, max_length=20)
    phone_number: str | None = Field(None, max_length=20)
    email: str | None = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        v = sanitize_string(v, max_length=255)
        if not v:
            raise ValueError("Candidate name is required")
        return v


class PollCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=255)
    description: str | None = None
    position_id: int
    county_id: int | None = None
    constituency_id: int | None = None
    ward_id: int | None = None
    start_date: datetime
    end_date: datetime
    poll_type: str = Field("single_choice", max_length=50)
    allow_anonymous: bool = False
    require_verification: bool = True
    candidates: list[PollCandidateInput] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def clean_title(cls, v: str) -> str:
        return sanitize_string(v, max_length=255)

    @model_validator(mode="after")
    def check_window(self) -> "PollCreate":
        if as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValueError("End date must be after start date")
        return self


class PollStatusUpdate(BaseModel):
    status: str = Field(..., max_length=20)


class VoteRequest(BaseModel):
    """Vote body; clients send camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    poll_id: UUID = Field(..., alias="pollId")
    candidate_id: UUID = Field(..., alias="candidateId")



# ============================================
# PUBLIC / VOTER ENDPOINTS
# ============================================


@router.get("")
async def list_polls(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict | None, Depends(get_optional_user)],
    status_filter: str | None = Query(None, alias="status"),
    position_id: int | None = Query(None),
    poll_type: str | None = Query(None),
):
    """
    List polls with candidates and vote totals.

    Drafts are only listed for admins.
    """
    polls = await poll_service.list_polls(
        conn,
        viewer_is_admin=is_admin(current_user),
        status=status_filter,
        position_id=position_id,
        poll_type=poll_type,
    )
    return success_response(data=polls)


@router.get("/active")
async def list_active_polls(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    position_id: int | None = Query(None),
):
    """Active polls, no login required."""
    polls = await poll_service.list_polls(conn, status="active", position_id=position_id)
    return success_response(data=polls)


@router.post("/vote", status_code=status.HTTP_201_CREATED)
async def cast_vote(
    request: VoteRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Cast the caller's vote.

    One vote per voter per poll; a voter may attempt at most one vote per
    rate limit window.
    """
    enforce_rate_limit(
        vote_rate_limiter,
        "vote",
        current_user["id"],
        "Please wait before voting again.",
    )

    try:
        vote = await voting_service.cast_vote(
            conn,
            poll_id=request.poll_id,
            candidate_id=request.candidate_id,
            voter_id=UUID(current_user["id"]),
        )
    except ServiceError as e:
        security_logger.log_vote_rejected(current_user["id"], str(request.poll_id), e.message)
        raise

    return success_response(
        data={"vote_id": vote["id"], "poll_id": vote["poll_id"], "voted_at": vote.get("created_at")},
        message="Vote cast successfully",
    )


@router.get("/{poll_id}")
async def get_poll(
    poll_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict | None, Depends(get_optional_user)],
):
    """Poll detail with live tallies and whether the caller has voted."""
    poll = await poll_service.get_poll_detail(
        conn,
        poll_id,
        viewer_id=UUID(current_user["id"]) if current_user else None,
        viewer_is_admin=is_admin(current_user),
    )
    return success_response(data=poll)


@router.get("/{poll_id}/results")
async def get_poll_results(
    poll_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict | None, Depends(get_optional_user)],
):
    """Candidates ordered by rank, with the current leader."""
    results = await poll_service.get_poll_results(
        conn, poll_id, viewer_is_admin=is_admin(current_user)
    )
    return success_response(data=results)


# ============================================
# ADMIN ENDPOINTS
# ============================================


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_poll(
    request: PollCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    """Create a draft poll and its candidates in one transaction."""
    enforce_rate_limit(
        poll_creation_rate_limiter,
        "poll_creation",
        admin_user["id"],
        "Poll creation limit reached. Try again later.",
    )

    poll = await poll_service.create_poll(
        conn,
        title=request.title,
        description=request.description,
        position_id=request.position_id,
        county_id=request.county_id,
        constituency_id=request.constituency_id,
        ward_id=request.ward_id,
        start_date=request.start_date,
        end_date=request.end_date,
        poll_type=request.poll_type,
        allow_anonymous=request.allow_anonymous,
        require_verification=request.require_verification,
        candidates=[c.model_dump() for c in request.candidates],
        created_by=UUID(admin_user["id"]),
    )
    return success_response(data=poll, message="Poll created successfully")


@router.patch("/{poll_id}/status")
async def update_poll_status(
    poll_id: UUID,
    request: PollStatusUpdate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    poll = await poll_service.update_poll_status(conn, poll_id, request.status)
    logger.info(f"Poll {poll_id} set to {poll['status']} by admin {admin_user['id']}")
    return success_response(data=poll, message=f"Poll status updated to {poll['status']}")


@router.delete("/{poll_id}")
async def delete_poll(
    poll_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    """Delete a poll that has not received any votes."""
    await poll_service.delete_poll(conn, poll_id)
    logger.info(f"Poll {poll_id} deleted by admin {admin_user['id']}")
    return success_response(message="Poll deleted successfully")
