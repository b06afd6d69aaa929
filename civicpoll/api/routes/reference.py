"""Public lookups for geographic and political reference data."""

from typing import Annotated

import asyncpg
from fastapi import APIRouter, Depends, Query

from civicpoll.core.database import get_db
from civicpoll.core.responses import success_response
from civicpoll.services import reference as reference_service

router = APIRouter(prefix="/reference", tags=["Reference Data"])


@router.get("/counties")
async def list_counties(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    counties = await reference_service.list_counties(conn)
    return success_response(data=counties)


@router.get("/constituencies")
async def list_constituencies(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    county_id: int | None = Query(None),
):
    """Constituencies, optionally within one county."""
    constituencies = await reference_service.list_constituencies(conn, county_id)
    return success_response(data=constituencies)


@router.get("/wards")
async def list_wards(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    constituency_id: int | None = Query(None),
):
    """Wards, optionally within one constituency."""
    wards = await reference_service.list_wards(conn, constituency_id)
    return success_response(data=wards)


@router.get("/political-positions")
async def list_political_positions(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    positions = await reference_service.list_political_positions(conn)
    return success_response(data=positions)


@router.get("/political-parties")
async def list_political_parties(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    parties = await reference_service.list_political_parties(conn)
    return success_response(data=parties)
