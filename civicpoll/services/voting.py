"""Vote casting service functions."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import asyncpg

from civicpoll.core.database import record_to_dict
from civicpoll.core.exceptions import (
    AlreadyVoted,
    CandidateInactive,
    CandidateNotInPoll,
    PollNotActive,
    PollNotFound,
    ValidationFailed,
    VotingEnded,
    VotingNotStarted,
)
from civicpoll.core.logging_config import get_logger
from civicpoll.core.validation import as_utc

logger = get_logger(__name__)

RESPONSE_METHODS = ("web", "sms", "ussd")


async def has_voted(conn: asyncpg.Connection, poll_id: UUID, user_id: UUID) -> bool:
    """Check if a user has already voted in a poll."""
    result = await conn.fetchval(
        "SELECT EXISTS (SELECT 1 FROM poll_responses WHERE poll_id = $1 AND user_id = $2)",
        str(poll_id),
        str(user_id),
    )
    return bool(result)


async def cast_vote(
    conn: asyncpg.Connection,
    poll_id: UUID,
    candidate_id: UUID,
    voter_id: UUID,
    response_method: str = "web",
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Record one vote.

    Checks run in a fixed order and the first failure wins: poll exists,
    poll is active, voting window is open, candidate belongs to the poll,
    candidate is active. The one-vote-per-voter rule is enforced by the
    UNIQUE(poll_id, user_id) constraint, so concurrent duplicates cannot
    both succeed.

    Returns:
        The stored vote row

    Raises:
        PollNotFound, PollNotActive, VotingNotStarted, VotingEnded,
        CandidateNotInPoll, CandidateInactive, AlreadyVoted
    """
    if response_method not in RESPONSE_METHODS:
        raise ValidationFailed(f"Response method must be one of: {', '.join(RESPONSE_METHODS)}")

    poll = await conn.fetchrow(
        "SELECT id, status, start_date, end_date FROM polls WHERE id = $1",
        str(poll_id),
    )
    if not poll:
        raise PollNotFound()

    if poll["status"] != "active":
        raise PollNotActive()

    now = as_utc(now or datetime.now(UTC))
    if now < as_utc(poll["start_date"]):
        raise VotingNotStarted()
    if now > as_utc(poll["end_date"]):
        raise VotingEnded()

    link = await conn.fetchrow(
        "SELECT is_active FROM poll_candidates WHERE poll_id = $1 AND candidate_id = $2",
        str(poll_id),
        str(candidate_id),
    )
    if not link:
        raise CandidateNotInPoll()
    if not link["is_active"]:
        raise CandidateInactive()

    try:
        result = await conn.fetchrow(
            """
            INSERT INTO poll_responses (poll_id, user_id, candidate_id, response_method)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (poll_id, user_id) DO NOTHING
            RETURNING *
            """,
            str(poll_id),
            str(voter_id),
            str(candidate_id),
            response_method,
        )
    except asyncpg.UniqueViolationError as e:
        raise AlreadyVoted() from e

    if result is None:
        raise AlreadyVoted()

    logger.info(f"Vote recorded for poll {poll_id} by user {voter_id}")
    return record_to_dict(result)
