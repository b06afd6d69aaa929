"""Poll, vote and sweep services against a real PostgreSQL database."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import asyncpg
import pytest

from civicpoll.core.exceptions import AlreadyVoted, PollHasVotes
from civicpoll.core.security import hash_password
from civicpoll.services import poll_scheduler
from civicpoll.services import polls as poll_service
from civicpoll.services import users as user_service
from civicpoll.services import voting as voting_service


async def create_test_user(db_connection, role="voter"):
    """Helper to create a user with a unique phone number."""
    return await user_service.create_user(
        db_connection,
        phone_number=f"+2547{uuid4().int % 10**8:08d}",
        password_hash=hash_password("Secret123"),
        full_name="Storage Test User",
        role=role,
    )


async def governor_position_id(db_connection):
    return await db_connection.fetchval(
        "SELECT id FROM political_positions WHERE name = 'Governor'"
    )


async def create_test_poll(db_connection, creator, candidates=None, title=None):
    """Helper to create a draft poll whose voting window is open now."""
    now = datetime.now(UTC)
    return await poll_service.create_poll(
        db_connection,
        title=title or f"Governor Poll {uuid4().hex[:8]}",
        position_id=await governor_position_id(db_connection),
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(days=7),
        candidates=candidates or [{"name": "Amina Wanjiru"}, {"name": "Brian Kiprotich"}],
        created_by=creator["id"],
    )


async def create_active_poll(db_connection, creator):
    poll = await create_test_poll(db_connection, creator)
    await poll_service.update_poll_status(db_connection, poll["id"], "active")
    return poll


async def count(db_connection, query, *args):
    return await db_connection.fetchval(query, *args)


@pytest.mark.asyncio
async def test_duplicate_vote_leaves_one_row(db_connection):
    admin = await create_test_user(db_connection, role="admin")
    voter = await create_test_user(db_connection)
    poll = await create_active_poll(db_connection, admin)
    first, second = poll["candidates"]

    await voting_service.cast_vote(db_connection, poll["id"], first["id"], voter["id"])
    with pytest.raises(AlreadyVoted):
        await voting_service.cast_vote(db_connection, poll["id"], second["id"], voter["id"])

    rows = await db_connection.fetch(
        "SELECT candidate_id FROM poll_responses WHERE poll_id = $1 AND user_id = $2",
        poll["id"],
        voter["id"],
    )
    assert [str(row["candidate_id"]) for row in rows] == [first["id"]]
    assert await voting_service.has_voted(db_connection, poll["id"], voter["id"]) is True


@pytest.mark.asyncio
async def test_sweep_closes_expired_polls_once(db_connection):
    admin = await create_test_user(db_connection, role="admin")
    expired = await create_active_poll(db_connection, admin)
    running = await create_active_poll(db_connection, admin)
    now = datetime.now(UTC)
    await db_connection.execute(
        "UPDATE polls SET start_date = $2, end_date = $3 WHERE id = $1",
        expired["id"],
        now - timedelta(days=2),
        now - timedelta(minutes=1),
    )

    closed = await poll_scheduler.close_expired_polls(db_connection, now=now)

    assert expired["id"] in [poll["id"] for poll in closed]
    assert running["id"] not in [poll["id"] for poll in closed]
    assert await count(
        db_connection, "SELECT status FROM polls WHERE id = $1", expired["id"]
    ) == "closed"
    assert await count(
        db_connection, "SELECT status FROM polls WHERE id = $1", running["id"]
    ) == "active"

    assert await poll_scheduler.close_expired_polls(db_connection, now=now) == []


@pytest.mark.asyncio
async def test_delete_poll_keeps_candidates_linked_elsewhere(db_connection):
    admin = await create_test_user(db_connection, role="admin")
    doomed = await create_test_poll(db_connection, admin)
    other = await create_test_poll(db_connection, admin)
    shared, orphaned = doomed["candidates"]
    await db_connection.execute(
        "INSERT INTO poll_candidates (poll_id, candidate_id, display_order) VALUES ($1, $2, 2)",
        other["id"],
        shared["id"],
    )

    await poll_service.delete_poll(db_connection, doomed["id"])

    assert await count(db_connection, "SELECT COUNT(*) FROM polls WHERE id = $1", doomed["id"]) == 0
    assert await count(
        db_connection, "SELECT COUNT(*) FROM poll_candidates WHERE poll_id = $1", doomed["id"]
    ) == 0
    assert await count(
        db_connection, "SELECT COUNT(*) FROM candidates WHERE id = $1", shared["id"]
    ) == 1
    assert await count(
        db_connection, "SELECT COUNT(*) FROM candidates WHERE id = $1", orphaned["id"]
    ) == 0
    assert await count(
        db_connection, "SELECT COUNT(*) FROM poll_candidates WHERE poll_id = $1", other["id"]
    ) == 3


@pytest.mark.asyncio
async def test_delete_poll_with_votes_is_refused(db_connection):
    admin = await create_test_user(db_connection, role="admin")
    voter = await create_test_user(db_connection)
    poll = await create_active_poll(db_connection, admin)
    await voting_service.cast_vote(
        db_connection, poll["id"], poll["candidates"][0]["id"], voter["id"]
    )

    with pytest.raises(PollHasVotes):
        await poll_service.delete_poll(db_connection, poll["id"])

    assert await count(db_connection, "SELECT COUNT(*) FROM polls WHERE id = $1", poll["id"]) == 1


@pytest.mark.asyncio
async def test_rejected_create_persists_nothing(db_connection):
    admin = await create_test_user(db_connection, role="admin")
    title = f"Rejected Poll {uuid4().hex[:8]}"
    first_name = f"Candidate {uuid4().hex[:8]}"

    with pytest.raises(asyncpg.ForeignKeyViolationError):
        await create_test_poll(
            db_connection,
            admin,
            candidates=[{"name": first_name}, {"name": "Unknown Party", "party_id": -1}],
            title=title,
        )

    assert await count(db_connection, "SELECT COUNT(*) FROM polls WHERE title = $1", title) == 0
    assert await count(
        db_connection, "SELECT COUNT(*) FROM candidates WHERE name = $1", first_name
    ) == 0
