"""Candidate registry routes."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from civicpoll.api.deps import get_current_user, require_admin
from civicpoll.core.database import get_db
from civicpoll.core.logging_config import get_logger
from civicpoll.core.responses import not_found_response, success_response
from civicpoll.services import candidates as candidate_service

router = APIRouter(prefix="/candidates", tags=["Candidates"])
logger = get_logger(__name__)


# ============================================
# PYDANTIC MODELS
# ============================================


class CandidateFields(BaseModel):
    party_id: int | None = None
    county_id: int | None = None
    constituency_id: int | None = None
    ward_id: int | None = None
    age: int | None = Field(None, ge=18, le=120)
    gender: str | None = Field(None, max_length=20)
    profession: str | None = Field(None, max_length=255)
    education_level: str | None = Field(None, max_length=100)
    phone_number: str | None = Field(None, max_length=20)
    email: str | None = Field(None, max_length=255)
    bio: str | None = None
    campaign_slogan: str | None = Field(None, max_length=500)
    campaign_color: str | None = Field(None, max_length=20)
    manifesto_url: str | None = Field(None, max_length=500)
    website_url: str | None = Field(None, max_length=500)
    profile_image_url: str | None = Field(None, max_length=500)


class CandidateCreate(CandidateFields):
    name: str = Field(..., min_length=2, max_length=255)
    position_id: int
    verification_status: str = Field("unverified", pattern="^(unverified|pending|verified|rejected)$")
    registration_status: str = Field("pending", pattern="^(pending|approved|rejected|withdrawn)$")


class CandidateUpdate(CandidateFields):
    name: str | None = Field(None, min_length=2, max_length=255)
    position_id: int | None = None
    verification_status: str | None = Field(
        None, pattern="^(unverified|pending|verified|rejected)$"
    )
    registration_status: str | None = Field(
        None, pattern="^(pending|approved|rejected|withdrawn)$"
    )


# ============================================
# ENDPOINTS
# ============================================


@router.get("")
async def list_candidates(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    position_id: int | None = Query(None),
    party_id: int | None = Query(None),
    county_id: int | None = Query(None),
    constituency_id: int | None = Query(None),
    ward_id: int | None = Query(None),
    poll_id: UUID | None = Query(None),
):
    """List candidates with optional filters."""
    candidates = await candidate_service.list_candidates(
        conn,
        position_id=position_id,
        party_id=party_id,
        county_id=county_id,
        constituency_id=constituency_id,
        ward_id=ward_id,
        poll_id=poll_id,
    )
    return success_response(data=candidates)


@router.get("/{candidate_id}")
async def get_candidate(
    candidate_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    candidate = await candidate_service.get_candidate(conn, candidate_id)
    if not candidate:
        not_found_response("Candidate")
    return success_response(data=candidate)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_candidate(
    request: CandidateCreate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    """Register a standalone candidate (admin only)."""
    candidate = await candidate_service.create_candidate(conn, **request.model_dump())
    logger.info(f"Candidate {candidate['id']} created by admin {admin_user['id']}")
    return success_response(data=candidate, message="Candidate created successfully")


@router.put("/{candidate_id}")
async def update_candidate(
    candidate_id: UUID,
    request: CandidateUpdate,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    candidate = await candidate_service.update_candidate(
        conn, candidate_id, **request.model_dump(exclude_unset=True)
    )
    if not candidate:
        not_found_response("Candidate")
    return success_response(data=candidate, message="Candidate updated successfully")


@router.delete("/{candidate_id}")
async def delete_candidate(
    candidate_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    admin_user: Annotated[dict, Depends(require_admin)],
):
    """Delete a candidate; refused once any vote references them."""
    await candidate_service.delete_candidate(conn, candidate_id)
    logger.info(f"Candidate {candidate_id} deleted by admin {admin_user['id']}")
    return success_response(message="Candidate deleted successfully")
