"""Admin dashboard statistics and issue moderation."""

from typing import Any
from uuid import UUID

import asyncpg

from civicpoll.core.database import record_to_dict, records_to_list
from civicpoll.core.exceptions import NotFound, ValidationFailed
from civicpoll.services.issues import ISSUE_PRIORITIES, ISSUE_STATUSES
from civicpoll.services.polls import POLL_STATUSES

ACTIVE_ISSUE_STATUSES = ("submitted", "under review", "in progress")

ISSUE_SORT_ORDERS = {
    "newest": "i.created_at DESC",
    "oldest": "i.created_at ASC",
    "most_upvoted": "i.upvotes_count DESC, i.created_at DESC",
    "most_viewed": "i.views_count DESC, i.created_at DESC",
}

_ADMIN_ISSUE_SELECT = """
    SELECT i.*, ic.name AS category_name, ic.icon AS category_icon,
           u.full_name AS reporter_name, u.phone_number AS reporter_phone,
           u.role AS reporter_role
    FROM issues i
    LEFT JOIN issue_categories ic ON i.category_id = ic.id
    LEFT JOIN users u ON i.user_id = u.id
"""


# ============================================
# STATISTICS
# ============================================


async def get_dashboard_stats(conn: asyncpg.Connection) -> dict[str, Any]:
    """Headline counts for the admin dashboard."""
    totals = await conn.fetchrow(
        """
        SELECT
            (SELECT COUNT(*) FROM issues) AS total_issues,
            (SELECT COUNT(*) FROM users) AS total_users,
            (SELECT COUNT(*) FROM polls) AS total_polls,
            (SELECT COUNT(*) FROM poll_responses) AS total_votes,
            (SELECT COUNT(*) FROM issues
             WHERE created_at >= CURRENT_TIMESTAMP - INTERVAL '7 days') AS recent_issues
        """
    )
    issue_rows = await conn.fetch("SELECT status, COUNT(*) AS count FROM issues GROUP BY status")
    poll_rows = await conn.fetch("SELECT status, COUNT(*) AS count FROM polls GROUP BY status")

    issues_by_status = {s: 0 for s in ISSUE_STATUSES}
    for row in issue_rows:
        if row["status"] in issues_by_status:
            issues_by_status[row["status"]] = int(row["count"])

    polls_by_status = {s: 0 for s in POLL_STATUSES}
    for row in poll_rows:
        if row["status"] in polls_by_status:
            polls_by_status[row["status"]] = int(row["count"])

    return {
        "overview": {
            "total_issues": int(totals["total_issues"]),
            "total_users": int(totals["total_users"]),
            "total_polls": int(totals["total_polls"]),
            "total_votes": int(totals["total_votes"]),
            "recent_issues": int(totals["recent_issues"]),
            "active_issues": sum(issues_by_status[s] for s in ACTIVE_ISSUE_STATUSES),
        },
        "issues_by_status": issues_by_status,
        "polls_by_status": polls_by_status,
    }


async def get_issue_stats(conn: asyncpg.Connection) -> dict[str, Any]:
    """Engagement totals, averages and per-category counts for issues."""
    totals = await conn.fetchrow(
        """
        SELECT COUNT(*) AS total_issues,
               COALESCE(SUM(upvotes_count), 0) AS total_upvotes,
               COALESCE(SUM(views_count), 0) AS total_views,
               COALESCE(SUM(comments_count), 0) AS total_comments
        FROM issues
        """
    )
    category_rows = await conn.fetch(
        """
        SELECT COALESCE(ic.name, 'Unknown') AS category, COUNT(*) AS count
        FROM issues i
        LEFT JOIN issue_categories ic ON i.category_id = ic.id
        GROUP BY COALESCE(ic.name, 'Unknown')
        ORDER BY count DESC
        """
    )

    total_issues = int(totals["total_issues"])
    total_upvotes = int(totals["total_upvotes"])
    total_views = int(totals["total_views"])

    def average(value: int) -> float:
        return round(value / total_issues, 1) if total_issues else 0.0

    return {
        "total_issues": total_issues,
        "total_upvotes": total_upvotes,
        "total_views": total_views,
        "total_comments": int(totals["total_comments"]),
        "average_upvotes": average(total_upvotes),
        "average_views": average(total_views),
        "by_category": {row["category"]: int(row["count"]) for row in category_rows},
    }


# ============================================
# ISSUE MODERATION
# ============================================


async def list_issues(
    conn: asyncpg.Connection,
    status: str | None = None,
    category_id: int | None = None,
    priority: str | None = None,
    sort: str = "newest",
) -> list[dict[str, Any]]:
    """All issues with reporter details, filtered and sorted."""
    if sort not in ISSUE_SORT_ORDERS:
        raise ValidationFailed(f"Sort must be one of: {', '.join(ISSUE_SORT_ORDERS)}")

    query = _ADMIN_ISSUE_SELECT + " WHERE 1=1"
    params: list[Any] = []

    if status:
        params.append(status)
        query += f" AND i.status = ${len(params)}"

    if category_id is not None:
        params.append(category_id)
        query += f" AND i.category_id = ${len(params)}"

    if priority:
        params.append(priority)
        query += f" AND i.priority = ${len(params)}"

    query += f" ORDER BY {ISSUE_SORT_ORDERS[sort]}"

    rows = await conn.fetch(query, *params)
    return records_to_list(rows)


async def get_issue(conn: asyncpg.Connection, issue_id: UUID) -> dict[str, Any]:
    result = await conn.fetchrow(_ADMIN_ISSUE_SELECT + " WHERE i.id = $1", str(issue_id))
    if not result:
        raise NotFound("Issue not found")
    return record_to_dict(result)


async def update_issue_status(
    conn: asyncpg.Connection, issue_id: UUID, status: str
) -> dict[str, Any]:
    """Set any issue status; `resolved` also stamps `resolved_at`."""
    if status not in ISSUE_STATUSES:
        raise ValidationFailed(f"Status must be one of: {', '.join(ISSUE_STATUSES)}")

    result = await conn.fetchrow(
        """
        UPDATE issues
        SET status = $1,
            resolved_at = CASE WHEN $1 = 'resolved' THEN CURRENT_TIMESTAMP ELSE resolved_at END,
            updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING *
        """,
        status,
        str(issue_id),
    )
    if not result:
        raise NotFound("Issue not found")
    return record_to_dict(result)


async def add_admin_response(
    conn: asyncpg.Connection, issue_id: UUID, admin_id: UUID, response: str
) -> dict[str, Any]:
    response = (response or "").strip()
    if not response:
        raise ValidationFailed("Response text is required")

    result = await conn.fetchrow(
        """
        UPDATE issues
        SET admin_response = $1, admin_response_by = $2,
            admin_response_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
        WHERE id = $3
        RETURNING *
        """,
        response,
        str(admin_id),
        str(issue_id),
    )
    if not result:
        raise NotFound("Issue not found")
    return record_to_dict(result)


async def update_issue_priority(
    conn: asyncpg.Connection, issue_id: UUID, priority: str
) -> dict[str, Any]:
    if priority not in ISSUE_PRIORITIES:
        raise ValidationFailed(f"Priority must be one of: {', '.join(ISSUE_PRIORITIES)}")

    result = await conn.fetchrow(
        """
        UPDATE issues SET priority = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING *
        """,
        priority,
        str(issue_id),
    )
    if not result:
        raise NotFound("Issue not found")
    return record_to_dict(result)
