"""Candidate registry service functions."""

from typing import Any
from uuid import UUID

import asyncpg

from civicpoll.core.database import record_to_dict, records_to_list
from civicpoll.core.exceptions import NotFound, ServiceError

CANDIDATE_FIELDS = (
    "name",
    "position_id",
    "party_id",
    "county_id",
    "constituency_id",
    "ward_id",
    "age",
    "gender",
    "profession",
    "education_level",
    "phone_number",
    "email",
    "bio",
    "campaign_slogan",
    "campaign_color",
    "manifesto_url",
    "website_url",
    "profile_image_url",
    "verification_status",
    "registration_status",
)


async def create_candidate(
    conn: asyncpg.Connection,
    name: str,
    position_id: int,
    verification_status: str = "unverified",
    registration_status: str = "pending",
    **fields: Any,
) -> dict[str, Any] | None:
    """Create a standalone candidate."""
    values: dict[str, Any] = {
        "name": name,
        "position_id": position_id,
        "verification_status": verification_status,
        "registration_status": registration_status,
    }
    values.update({k: v for k, v in fields.items() if k in CANDIDATE_FIELDS and v is not None})

    columns = list(values)
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    result = await conn.fetchrow(
        f"""
        INSERT INTO candidates ({", ".join(columns)})
        VALUES ({placeholders})
        RETURNING *
        """,
        *values.values(),
    )
    return record_to_dict(result)


async def get_candidate(conn: asyncpg.Connection, candidate_id: UUID) -> dict[str, Any] | None:
    """Get a candidate with position and party names."""
    result = await conn.fetchrow(
        """
        SELECT c.*, pp.name AS position_name, pt.name AS party_name
        FROM candidates c
        LEFT JOIN political_positions pp ON c.position_id = pp.id
        LEFT JOIN political_parties pt ON c.party_id = pt.id
        WHERE c.id = $1
        """,
        str(candidate_id),
    )
    return record_to_dict(result)


async def list_candidates(
    conn: asyncpg.Connection,
    position_id: int | None = None,
    party_id: int | None = None,
    county_id: int | None = None,
    constituency_id: int | None = None,
    ward_id: int | None = None,
    poll_id: UUID | None = None,
) -> list[dict[str, Any]]:
    """List candidates with optional filters."""
    query = """
        SELECT c.*, pp.name AS position_name, pt.name AS party_name
        FROM candidates c
        LEFT JOIN political_positions pp ON c.position_id = pp.id
        LEFT JOIN political_parties pt ON c.party_id = pt.id
        WHERE 1=1
    """
    params: list[Any] = []

    for column, value in (
        ("c.position_id", position_id),
        ("c.party_id", party_id),
        ("c.county_id", county_id),
        ("c.constituency_id", constituency_id),
        ("c.ward_id", ward_id),
    ):
        if value is not None:
            params.append(value)
            query += f" AND {column} = ${len(params)}"

    if poll_id is not None:
        params.append(str(poll_id))
        query += (
            f" AND EXISTS (SELECT 1 FROM poll_candidates pc"
            f" WHERE pc.candidate_id = c.id AND pc.poll_id = ${len(params)})"
        )

    query += " ORDER BY c.name ASC"

    rows = await conn.fetch(query, *params)
    return records_to_list(rows)


async def update_candidate(
    conn: asyncpg.Connection,
    candidate_id: UUID,
    **kwargs: Any,
) -> dict[str, Any] | None:
    """Update candidate details."""
    updates: list[str] = []
    params: list[Any] = []

    for field, value in kwargs.items():
        if field in CANDIDATE_FIELDS and value is not None:
            params.append(value)
            updates.append(f"{field} = ${len(params)}")

    if not updates:
        return await get_candidate(conn, candidate_id)

    updates.append("updated_at = CURRENT_TIMESTAMP")
    params.append(str(candidate_id))

    result = await conn.fetchrow(
        f"""
        UPDATE candidates
        SET {", ".join(updates)}
        WHERE id = ${len(params)}
        RETURNING *
        """,
        *params,
    )
    return record_to_dict(result)


async def delete_candidate(conn: asyncpg.Connection, candidate_id: UUID) -> None:
    """
    Delete a candidate that has never received a vote.

    Raises:
        NotFound: no such candidate
        ServiceError: the candidate has votes
    """
    async with conn.transaction():
        has_votes = await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM poll_responses WHERE candidate_id = $1)",
            str(candidate_id),
        )
        if has_votes:
            raise ServiceError("Cannot delete candidate who has received votes")

        await conn.execute(
            "DELETE FROM poll_candidates WHERE candidate_id = $1", str(candidate_id)
        )
        result = await conn.execute("DELETE FROM candidates WHERE id = $1", str(candidate_id))

    if int(result.split()[-1]) == 0:
        raise NotFound("Candidate not found")
