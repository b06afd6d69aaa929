"""Read-only geographic and political reference data."""

from typing import Any

import asyncpg

from civicpoll.core.database import record_to_dict, records_to_list


async def list_counties(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    """List all counties."""
    rows = await conn.fetch("SELECT * FROM counties ORDER BY name")
    return records_to_list(rows)


async def list_constituencies(
    conn: asyncpg.Connection, county_id: int | None = None
) -> list[dict[str, Any]]:
    """List constituencies, optionally within one county."""
    if county_id is not None:
        rows = await conn.fetch(
            "SELECT * FROM constituencies WHERE county_id = $1 ORDER BY name",
            county_id,
        )
    else:
        rows = await conn.fetch("SELECT * FROM constituencies ORDER BY name")
    return records_to_list(rows)


async def list_wards(
    conn: asyncpg.Connection, constituency_id: int | None = None
) -> list[dict[str, Any]]:
    """List wards, optionally within one constituency."""
    if constituency_id is not None:
        rows = await conn.fetch(
            "SELECT * FROM wards WHERE constituency_id = $1 ORDER BY name",
            constituency_id,
        )
    else:
        rows = await conn.fetch("SELECT * FROM wards ORDER BY name")
    return records_to_list(rows)


async def list_geographic_hierarchy(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    """Flattened county / constituency / ward rows."""
    rows = await conn.fetch(
        """
        SELECT * FROM v_geographic_hierarchy
        ORDER BY county_name, constituency_name, ward_name
        """
    )
    return records_to_list(rows)


async def get_county_by_name(conn: asyncpg.Connection, name: str) -> dict[str, Any] | None:
    row = await conn.fetchrow("SELECT * FROM counties WHERE LOWER(name) = LOWER($1)", name)
    return record_to_dict(row)


async def list_political_positions(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    """List elective positions (Governor, Senator, MP, ...)."""
    rows = await conn.fetch("SELECT * FROM political_positions ORDER BY name")
    return records_to_list(rows)


async def list_political_parties(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    """List registered political parties."""
    rows = await conn.fetch("SELECT * FROM political_parties ORDER BY name")
    return records_to_list(rows)
