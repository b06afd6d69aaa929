"""Poll lifecycle service functions.

A poll moves draft -> active -> closed and never back. Admins drive the
transitions explicitly; the expiry sweep in `poll_scheduler` closes active
polls whose end date has passed.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg

from civicpoll.core.database import record_to_dict, records_to_list
from civicpoll.core.exceptions import (
    InvalidStatusTransition,
    PollHasVotes,
    PollNotFound,
    ValidationFailed,
)
from civicpoll.core.logging_config import get_logger
from civicpoll.core.validation import as_utc
from civicpoll.services import tally
from civicpoll.services.voting import has_voted

logger = get_logger(__name__)

POLL_STATUSES = ("draft", "active", "closed")
PUBLIC_POLL_STATUSES = ("active", "closed")
MIN_CANDIDATES = 2

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"active", "closed"}),
    "active": frozenset({"closed"}),
    "closed": frozenset(),
}


# ============================================
# VALIDATION
# ============================================


def validate_poll_window(start_date: datetime, end_date: datetime) -> None:
    if as_utc(end_date) <= as_utc(start_date):
        raise ValidationFailed("End date must be after start date")


def validate_status_transition(current: str, new: str) -> None:
    """
    Check a requested status change against the lifecycle.

    Raises:
        ValidationFailed: `new` is not a known status
        InvalidStatusTransition: the lifecycle forbids the change
    """
    if new not in POLL_STATUSES:
        raise ValidationFailed(f"Status must be one of: {', '.join(POLL_STATUSES)}")

    if new == current:
        return

    if new not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition(f"Cannot change poll status from {current} to {new}")


# ============================================
# POLL CRUD
# ============================================


async def create_poll(
    conn: asyncpg.Connection,
    title: str,
    position_id: int,
    start_date: datetime,
    end_date: datetime,
    candidates: list[dict[str, Any]],
    created_by: UUID,
    description: str | None = None,
    county_id: int | None = None,
    constituency_id: int | None = None,
    ward_id: int | None = None,
    poll_type: str = "single_choice",
    allow_anonymous: bool = False,
    require_verification: bool = True,
) -> dict[str, Any]:
    """
    Create a draft poll together with its candidates.

    The poll row, the candidate rows and the poll_candidates links are
    written in one transaction, so a failure leaves nothing behind.

    Args:
        candidates: dicts with `name` and optional party_id, bio, slogan,
            age, gender, phone_number, email

    Returns:
        The poll with its `candidates` list
    """
    if not candidates or len(candidates) < MIN_CANDIDATES:
        raise ValidationFailed(f"At least {MIN_CANDIDATES} candidates are required")

    names = [(c.get("name") or "").strip() for c in candidates]
    if not all(names):
        raise ValidationFailed("Every candidate needs a name")

    validate_poll_window(start_date, end_date)

    async with conn.transaction():
        poll = await conn.fetchrow(
            """
            INSERT INTO polls (
                title, description, position_id, county_id, constituency_id, ward_id,
                start_date, end_date, poll_type, allow_anonymous, require_verification,
                status, total_votes, created_by
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, 'draft', 0, $12)
            RETURNING *
            """,
            title,
            description,
            position_id,
            county_id,
            constituency_id,
            ward_id,
            as_utc(start_date),
            as_utc(end_date),
            poll_type,
            allow_anonymous,
            require_verification,
            str(created_by),
        )

        created_candidates = []
        for display_order, (name, candidate) in enumerate(zip(names, candidates)):
            row = await conn.fetchrow(
                """
                INSERT INTO candidates (
                    name, position_id, party_id, county_id, constituency_id, ward_id,
                    age, gender, bio, campaign_slogan, phone_number, email,
                    registration_status, verification_status
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, 'approved', 'verified')
                RETURNING *
                """,
                name,
                position_id,
                candidate.get("party_id"),
                county_id,
                constituency_id,
                ward_id,
                candidate.get("age"),
                candidate.get("gender"),
                candidate.get("bio"),
                candidate.get("slogan") or candidate.get("campaign_slogan"),
                candidate.get("phone_number"),
                candidate.get("email"),
            )
            created = record_to_dict(row)

            await conn.execute(
                """
                INSERT INTO poll_candidates (poll_id, candidate_id, display_order, is_active)
                VALUES ($1, $2, $3, TRUE)
                """,
                str(poll["id"]),
                created["id"],
                display_order,
            )
            created_candidates.append(
                {**created, "display_order": display_order, "is_active": True}
            )

    result = record_to_dict(poll)
    result["candidates"] = created_candidates
    logger.info(f"Poll created: {result['id']} with {len(created_candidates)} candidates")
    return result


async def get_poll(conn: asyncpg.Connection, poll_id: UUID) -> dict[str, Any] | None:
    """Get the bare poll row with its position name."""
    result = await conn.fetchrow(
        """
        SELECT p.*, pp.name AS position_name
        FROM polls p
        LEFT JOIN political_positions pp ON p.position_id = pp.id
        WHERE p.id = $1
        """,
        str(poll_id),
    )
    return record_to_dict(result)


async def get_poll_candidates(conn: asyncpg.Connection, poll_id: UUID) -> list[dict[str, Any]]:
    """Candidates linked to a poll, in display order."""
    rows = await conn.fetch(
        """
        SELECT c.*, pc.display_order, pc.is_active, pt.name AS party_name
        FROM poll_candidates pc
        JOIN candidates c ON pc.candidate_id = c.id
        LEFT JOIN political_parties pt ON c.party_id = pt.id
        WHERE pc.poll_id = $1
        ORDER BY pc.display_order ASC, c.id ASC
        """,
        str(poll_id),
    )
    return records_to_list(rows)


async def list_polls(
    conn: asyncpg.Connection,
    viewer_is_admin: bool = False,
    status: str | None = None,
    position_id: int | None = None,
    poll_type: str | None = None,
) -> list[dict[str, Any]]:
    """
    List polls, newest first, each with candidates and derived vote totals.

    Non-admin viewers only see active and closed polls, and a
    `status` filter can only narrow within those.
    """
    query = """
        SELECT p.*, pp.name AS position_name
        FROM polls p
        LEFT JOIN political_positions pp ON p.position_id = pp.id
        WHERE 1=1
    """
    params: list[Any] = []

    if not viewer_is_admin:
        params.append(list(PUBLIC_POLL_STATUSES))
        query += f" AND p.status = ANY(${len(params)}::text[])"

    if status:
        params.append(status)
        query += f" AND p.status = ${len(params)}"

    if position_id is not None:
        params.append(position_id)
        query += f" AND p.position_id = ${len(params)}"

    if poll_type:
        params.append(poll_type)
        query += f" AND p.poll_type = ${len(params)}"

    query += " ORDER BY p.created_at DESC"

    polls = records_to_list(await conn.fetch(query, *params))
    if not polls:
        return []

    poll_ids = [p["id"] for p in polls]
    link_rows = await conn.fetch(
        """
        SELECT pc.poll_id, c.*, pc.display_order, pc.is_active
        FROM poll_candidates pc
        JOIN candidates c ON pc.candidate_id = c.id
        WHERE pc.poll_id = ANY($1::uuid[])
        ORDER BY pc.display_order ASC, c.id ASC
        """,
        poll_ids,
    )
    candidates_by_poll: dict[str, list[dict[str, Any]]] = {}
    for row in records_to_list(link_rows):
        candidates_by_poll.setdefault(str(row.pop("poll_id")), []).append(row)

    counts = await tally.count_votes_for_polls(conn, poll_ids)

    for poll in polls:
        candidates, total = tally.build_results(
            candidates_by_poll.get(poll["id"], []), counts.get(poll["id"], {})
        )
        poll["candidates"] = candidates
        poll["total_votes"] = total

    return polls


async def get_poll_detail(
    conn: asyncpg.Connection,
    poll_id: UUID,
    viewer_id: UUID | None = None,
    viewer_is_admin: bool = False,
) -> dict[str, Any]:
    """
    Poll with candidates, freshly counted tallies and the viewer's `has_voted`.

    Draft polls are reported as missing to anyone but an admin.
    """
    poll = await get_poll(conn, poll_id)
    if not poll or (poll["status"] == "draft" and not viewer_is_admin):
        raise PollNotFound()

    candidates = await get_poll_candidates(conn, poll_id)
    counts = await tally.count_votes_by_candidate(conn, poll_id)
    tallied, total = tally.build_results(candidates, counts)

    poll["candidates"] = tallied
    poll["total_votes"] = total
    poll["has_voted"] = (
        await has_voted(conn, poll_id, viewer_id) if viewer_id is not None else False
    )
    return poll


async def get_poll_results(
    conn: asyncpg.Connection,
    poll_id: UUID,
    viewer_is_admin: bool = False,
) -> dict[str, Any]:
    """Ranked results for a poll."""
    poll = await get_poll(conn, poll_id)
    if not poll or (poll["status"] == "draft" and not viewer_is_admin):
        raise PollNotFound()

    candidates = await get_poll_candidates(conn, poll_id)
    counts = await tally.count_votes_by_candidate(conn, poll_id)
    tallied, total = tally.build_results(candidates, counts)
    ranked = tally.rank_results(tallied)

    return {
        "poll_id": poll["id"],
        "title": poll["title"],
        "status": poll["status"],
        "total_votes": total,
        "results": ranked,
        "leader": ranked[0] if ranked and total > 0 else None,
    }


# ============================================
# LIFECYCLE
# ============================================


async def update_poll_status(
    conn: asyncpg.Connection, poll_id: UUID, new_status: str
) -> dict[str, Any]:
    """
    Move a poll along its lifecycle.

    Raises:
        ValidationFailed: unknown status, or activation with too few candidates
        PollNotFound: no such poll
        InvalidStatusTransition: backwards move, or the poll changed concurrently
    """
    if new_status not in POLL_STATUSES:
        raise ValidationFailed(f"Status must be one of: {', '.join(POLL_STATUSES)}")

    poll = await get_poll(conn, poll_id)
    if not poll:
        raise PollNotFound()

    current = poll["status"]
    validate_status_transition(current, new_status)
    if new_status == current:
        return poll

    if new_status == "active":
        active_candidates = await conn.fetchval(
            "SELECT COUNT(*) FROM poll_candidates WHERE poll_id = $1 AND is_active = TRUE",
            str(poll_id),
        )
        if (active_candidates or 0) < MIN_CANDIDATES:
            raise ValidationFailed(
                f"A poll needs at least {MIN_CANDIDATES} active candidates to be activated"
            )

    # Only move from the status we validated against
    result = await conn.fetchrow(
        """
        UPDATE polls
        SET status = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2 AND status = $3
        RETURNING *
        """,
        new_status,
        str(poll_id),
        current,
    )
    if not result:
        raise InvalidStatusTransition("Poll status changed concurrently; reload and retry")

    logger.info(f"Poll {poll_id} status changed from {current} to {new_status}")
    return record_to_dict(result)


async def delete_poll(conn: asyncpg.Connection, poll_id: UUID) -> None:
    """
    Delete a poll that has no votes, with its candidates and links.

    Raises:
        PollNotFound: no such poll
        PollHasVotes: at least one vote references the poll
    """
    async with conn.transaction():
        exists = await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM polls WHERE id = $1)", str(poll_id)
        )
        if not exists:
            raise PollNotFound()

        has_votes = await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM poll_responses WHERE poll_id = $1)",
            str(poll_id),
        )
        if has_votes:
            raise PollHasVotes()

        candidate_ids = await conn.fetch(
            "DELETE FROM poll_candidates WHERE poll_id = $1 RETURNING candidate_id",
            str(poll_id),
        )
        ids = [str(row["candidate_id"]) for row in candidate_ids]
        if ids:
            # Candidates still linked to another poll are kept
            await conn.execute(
                """
                DELETE FROM candidates c
                WHERE c.id = ANY($1::uuid[])
                  AND NOT EXISTS (SELECT 1 FROM poll_candidates pc WHERE pc.candidate_id = c.id)
                """,
                ids,
            )
        await conn.execute("DELETE FROM polls WHERE id = $1", str(poll_id))

    logger.info(f"Poll {poll_id} deleted with {len(ids)} candidate link(s)")
