"""Poll result tallying.

Totals are never stored incrementally: each read counts the vote rows for
the poll and feeds the counts through `build_results`.
"""

from typing import Any
from uuid import UUID

import asyncpg


async def count_votes_by_candidate(conn: asyncpg.Connection, poll_id: UUID) -> dict[str, int]:
    """Count vote rows per candidate for one poll."""
    rows = await conn.fetch(
        """
        SELECT candidate_id, COUNT(*) AS votes
        FROM poll_responses
        WHERE poll_id = $1
        GROUP BY candidate_id
        """,
        str(poll_id),
    )
    return {str(row["candidate_id"]): int(row["votes"]) for row in rows}


async def count_votes_for_polls(
    conn: asyncpg.Connection, poll_ids: list[str]
) -> dict[str, dict[str, int]]:
    """Per-candidate counts for several polls in one query."""
    if not poll_ids:
        return {}
    rows = await conn.fetch(
        """
        SELECT poll_id, candidate_id, COUNT(*) AS votes
        FROM poll_responses
        WHERE poll_id = ANY($1::uuid[])
        GROUP BY poll_id, candidate_id
        """,
        poll_ids,
    )
    counts: dict[str, dict[str, int]] = {}
    for row in rows:
        counts.setdefault(str(row["poll_id"]), {})[str(row["candidate_id"])] = int(row["votes"])
    return counts


def percentage(votes: int, total: int) -> float:
    """Share of the vote rounded to one decimal place; 0.0 when nobody voted."""
    if total <= 0:
        return 0.0
    return round(votes * 100.0 / total, 1)


def build_results(
    candidates: list[dict[str, Any]], counts: dict[str, int]
) -> tuple[list[dict[str, Any]], int]:
    """
    Attach vote counts, percentages and ranks to a poll's candidates.

    Candidates keep their display order in the returned list. Rank is 1-based
    by descending votes; ties go to the lower display order, then the
    candidate id, so the ordering is deterministic. The total is the sum of
    the listed candidates' counts.

    Returns:
        Tuple of (candidates with tallies, total votes)
    """
    total = sum(counts.get(str(candidate["id"]), 0) for candidate in candidates)

    tallied = []
    for candidate in candidates:
        votes = counts.get(str(candidate["id"]), 0)
        tallied.append(
            {
                **candidate,
                "vote_count": votes,
                "percentage": percentage(votes, total),
            }
        )

    ranking = sorted(
        tallied,
        key=lambda c: (-c["vote_count"], c.get("display_order") or 0, str(c["id"])),
    )
    ranks = {str(c["id"]): position for position, c in enumerate(ranking, start=1)}
    leader_id = str(ranking[0]["id"]) if ranking and total > 0 else None

    for candidate in tallied:
        candidate["rank"] = ranks[str(candidate["id"])]
        candidate["is_leading"] = str(candidate["id"]) == leader_id

    return tallied, total


def rank_results(tallied: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order tallied candidates by rank."""
    return sorted(tallied, key=lambda c: c["rank"])
