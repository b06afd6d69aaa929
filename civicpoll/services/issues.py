"""Citizen issue reports: categories, upvotes, comments and views."""

from typing import Any
from uuid import UUID

import asyncpg

from civicpoll.core.config import settings
from civicpoll.core.database import record_to_dict, records_to_list
from civicpoll.core.exceptions import NotFound, ValidationFailed
from civicpoll.core.logging_config import get_logger

logger = get_logger(__name__)

ISSUE_STATUSES = ("submitted", "under review", "in progress", "resolved", "rejected")
ISSUE_PRIORITIES = ("low", "medium", "high", "urgent")

_ISSUE_SELECT = """
    SELECT i.*, ic.name AS category_name,
           CASE WHEN i.is_anonymous THEN NULL ELSE u.full_name END AS reporter_name
    FROM issues i
    LEFT JOIN issue_categories ic ON i.category_id = ic.id
    LEFT JOIN users u ON i.user_id = u.id
"""


def build_location_description(
    constituency: str | None, ward: str | None, default: str | None = None
) -> str:
    """"ward, constituency", else the constituency, else the default county."""
    constituency = (constituency or "").strip()
    ward = (ward or "").strip()
    if ward:
        return f"{ward}, {constituency}" if constituency else ward
    if constituency:
        return constituency
    return default or settings.DEFAULT_COUNTY_NAME


def hide_anonymous_reporter(issue: dict[str, Any] | None) -> dict[str, Any] | None:
    """Strip the reporter identity from anonymous issues."""
    if issue and issue.get("is_anonymous"):
        issue["user_id"] = None
        issue["reporter_name"] = None
    return issue


async def list_categories(conn: asyncpg.Connection) -> list[dict[str, Any]]:
    rows = await conn.fetch("SELECT * FROM issue_categories ORDER BY name ASC")
    return records_to_list(rows)


async def list_issues(
    conn: asyncpg.Connection,
    category_id: int | None = None,
    status: str | None = None,
    search: str | None = None,
) -> list[dict[str, Any]]:
    """List issues, newest first, optionally filtered and searched."""
    query = _ISSUE_SELECT + " WHERE 1=1"
    params: list[Any] = []

    if category_id is not None:
        params.append(category_id)
        query += f" AND i.category_id = ${len(params)}"

    if status:
        params.append(status)
        query += f" AND i.status = ${len(params)}"

    if search and search.strip():
        params.append(f"%{search.strip()}%")
        query += f" AND (i.title ILIKE ${len(params)} OR i.description ILIKE ${len(params)})"

    query += " ORDER BY i.created_at DESC"

    rows = await conn.fetch(query, *params)
    return [hide_anonymous_reporter(issue) for issue in records_to_list(rows)]


async def get_issue(conn: asyncpg.Connection, issue_id: UUID) -> dict[str, Any] | None:
    result = await conn.fetchrow(_ISSUE_SELECT + " WHERE i.id = $1", str(issue_id))
    return hide_anonymous_reporter(record_to_dict(result))


async def create_issue(
    conn: asyncpg.Connection,
    user_id: UUID,
    title: str,
    description: str,
    category_id: int,
    constituency: str | None = None,
    ward: str | None = None,
    is_anonymous: bool = False,
) -> dict[str, Any]:
    """File a new issue in `submitted` status."""
    title = title.strip()
    description = description.strip()
    if not title or not description:
        raise ValidationFailed("Title and description are required")

    result = await conn.fetchrow(
        """
        INSERT INTO issues (
            user_id, title, description, category_id, location_description,
            is_anonymous, status, priority, upvotes_count, views_count, comments_count
        )
        VALUES ($1, $2, $3, $4, $5, $6, 'submitted', 'medium', 0, 0, 0)
        RETURNING *
        """,
        str(user_id),
        title,
        description,
        category_id,
        build_location_description(constituency, ward),
        is_anonymous,
    )
    issue = record_to_dict(result)
    logger.info(f"Issue created: {issue['id']}")
    return issue


async def toggle_upvote(
    conn: asyncpg.Connection, issue_id: UUID, user_id: UUID
) -> dict[str, Any]:
    """
    Add the user's upvote, or remove it if present.

    The upvote row and `upvotes_count` change in one transaction.

    Returns:
        {"upvoted": bool, "upvotes_count": int}
    """
    async with conn.transaction():
        exists = await conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM issues WHERE id = $1)", str(issue_id)
        )
        if not exists:
            raise NotFound("Issue not found")

        removed = await conn.fetchval(
            "DELETE FROM issue_upvotes WHERE issue_id = $1 AND user_id = $2 RETURNING id",
            str(issue_id),
            str(user_id),
        )
        if removed is not None:
            upvoted = False
            count = await conn.fetchval(
                """
                UPDATE issues SET upvotes_count = GREATEST(upvotes_count - 1, 0)
                WHERE id = $1 RETURNING upvotes_count
                """,
                str(issue_id),
            )
        else:
            upvoted = True
            await conn.execute(
                """
                INSERT INTO issue_upvotes (issue_id, user_id) VALUES ($1, $2)
                ON CONFLICT (issue_id, user_id) DO NOTHING
                """,
                str(issue_id),
                str(user_id),
            )
            count = await conn.fetchval(
                "UPDATE issues SET upvotes_count = upvotes_count + 1 WHERE id = $1 RETURNING upvotes_count",
                str(issue_id),
            )

    return {"upvoted": upvoted, "upvotes_count": int(count or 0)}


async def list_comments(conn: asyncpg.Connection, issue_id: UUID) -> list[dict[str, Any]]:
    """Comments on an issue, newest first, with the author's name."""
    rows = await conn.fetch(
        """
        SELECT c.*, u.full_name AS author_name
        FROM issue_comments c
        LEFT JOIN users u ON c.user_id = u.id
        WHERE c.issue_id = $1
        ORDER BY c.created_at DESC
        """,
        str(issue_id),
    )
    return records_to_list(rows)


async def add_comment(
    conn: asyncpg.Connection, issue_id: UUID, user_id: UUID, comment_text: str
) -> dict[str, Any]:
    """Add a comment and bump `comments_count` in the same transaction."""
    comment_text = (comment_text or "").strip()
    if not comment_text:
        raise ValidationFailed("Comment text is required")

    async with conn.transaction():
        updated = await conn.fetchval(
            "UPDATE issues SET comments_count = comments_count + 1 WHERE id = $1 RETURNING id",
            str(issue_id),
        )
        if updated is None:
            raise NotFound("Issue not found")

        result = await conn.fetchrow(
            """
            INSERT INTO issue_comments (issue_id, user_id, comment_text)
            VALUES ($1, $2, $3)
            RETURNING *
            """,
            str(issue_id),
            str(user_id),
            comment_text,
        )
    return record_to_dict(result)


async def increment_views(conn: asyncpg.Connection, issue_id: UUID) -> int:
    """Atomically add one view; returns the new count."""
    count = await conn.fetchval(
        "UPDATE issues SET views_count = views_count + 1 WHERE id = $1 RETURNING views_count",
        str(issue_id),
    )
    if count is None:
        raise NotFound("Issue not found")
    return int(count)
