"""User service functions."""

from typing import Any
from uuid import UUID

import asyncpg

from civicpoll.core.database import record_to_dict, records_to_list

USER_ROLES = ("voter", "admin", "super_admin")
ADMIN_ROLES = ("admin", "super_admin")
USER_STATUSES = ("active", "suspended")

_PUBLIC_COLUMNS = """
    id, phone_number, email, full_name, age_group, gender, role, status,
    county_id, constituency_id, ward_id, phone_verified, email_verified,
    created_at, updated_at, last_login_at
"""


async def create_user(
    conn: asyncpg.Connection,
    phone_number: str,
    password_hash: str,
    full_name: str,
    email: str | None = None,
    age_group: str | None = None,
    gender: str | None = None,
    county_id: int | None = None,
    constituency_id: int | None = None,
    ward_id: int | None = None,
    role: str = "voter",
) -> dict[str, Any] | None:
    """
    Create a new user.

    Returns None when the phone number is already registered; the unique
    index on `phone_number` decides, not a prior lookup.
    """
    result = await conn.fetchrow(
        f"""
        INSERT INTO users (
            phone_number, password_hash, full_name, email, age_group, gender,
            county_id, constituency_id, ward_id, role, status, registration_source
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, 'active', 'web')
        ON CONFLICT (phone_number) DO NOTHING
        RETURNING {_PUBLIC_COLUMNS}
        """,
        phone_number,
        password_hash,
        full_name,
        email,
        age_group,
        gender,
        county_id,
        constituency_id,
        ward_id,
        role,
    )
    return record_to_dict(result)


async def get_user_by_id(conn: asyncpg.Connection, user_id: UUID) -> dict[str, Any] | None:
    """Get user by ID (without the password hash)."""
    result = await conn.fetchrow(
        f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE id = $1",
        str(user_id),
    )
    return record_to_dict(result)


async def get_user_by_phone(conn: asyncpg.Connection, phone_number: str) -> dict[str, Any] | None:
    """Get user by phone number (without the password hash)."""
    result = await conn.fetchrow(
        f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE phone_number = $1",
        phone_number,
    )
    return record_to_dict(result)


async def get_user_for_login(
    conn: asyncpg.Connection, phone_or_email: str
) -> dict[str, Any] | None:
    """Get user by phone number or email, including the password hash."""
    result = await conn.fetchrow(
        f"""
        SELECT {_PUBLIC_COLUMNS}, password_hash
        FROM users
        WHERE phone_number = $1 OR LOWER(email) = LOWER($1)
        ORDER BY (phone_number = $1) DESC
        LIMIT 1
        """,
        phone_or_email,
    )
    return record_to_dict(result)


async def get_user_profile(conn: asyncpg.Connection, user_id: UUID) -> dict[str, Any] | None:
    """Get a user with the names of their county, constituency and ward."""
    result = await conn.fetchrow(
        """
        SELECT u.id, u.phone_number, u.email, u.full_name, u.age_group, u.gender,
               u.role, u.status, u.phone_verified, u.email_verified,
               u.county_id, u.constituency_id, u.ward_id,
               c.name AS county_name, cn.name AS constituency_name, w.name AS ward_name,
               u.created_at, u.last_login_at
        FROM users u
        LEFT JOIN counties c ON u.county_id = c.id
        LEFT JOIN constituencies cn ON u.constituency_id = cn.id
        LEFT JOIN wards w ON u.ward_id = w.id
        WHERE u.id = $1
        """,
        str(user_id),
    )
    return record_to_dict(result)


async def update_user_profile(
    conn: asyncpg.Connection,
    user_id: UUID,
    **kwargs: Any,
) -> dict[str, Any] | None:
    """Update the editable profile fields that were provided."""
    allowed_fields = {"full_name", "email", "county_id", "constituency_id", "ward_id"}

    updates: list[str] = []
    params: list[Any] = []

    for field, value in kwargs.items():
        if field in allowed_fields and value is not None:
            params.append(value)
            updates.append(f"{field} = ${len(params)}")

    if not updates:
        return await get_user_by_id(conn, user_id)

    updates.append("updated_at = CURRENT_TIMESTAMP")
    params.append(str(user_id))

    result = await conn.fetchrow(
        f"""
        UPDATE users
        SET {", ".join(updates)}
        WHERE id = ${len(params)}
        RETURNING {_PUBLIC_COLUMNS}
        """,
        *params,
    )
    return record_to_dict(result)


async def update_user_last_login(conn: asyncpg.Connection, user_id: UUID) -> None:
    """Stamp the last successful login."""
    await conn.execute(
        "UPDATE users SET last_login_at = CURRENT_TIMESTAMP WHERE id = $1",
        str(user_id),
    )


async def list_users(
    conn: asyncpg.Connection,
    role: str | None = None,
    status: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List users with filtering and pagination."""
    where = " WHERE 1=1"
    params: list[Any] = []

    if role:
        params.append(role)
        where += f" AND role = ${len(params)}"

    if status:
        params.append(status)
        where += f" AND status = ${len(params)}"

    if search:
        params.append(f"%{search}%")
        where += f" AND (full_name ILIKE ${len(params)} OR phone_number ILIKE ${len(params)})"

    total = await conn.fetchval(f"SELECT COUNT(*) FROM users{where}", *params)

    query = f"SELECT {_PUBLIC_COLUMNS} FROM users{where} ORDER BY created_at DESC"
    query += f" LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}"
    rows = await conn.fetch(query, *params, limit, offset)

    return records_to_list(rows), int(total or 0)


async def set_user_role(conn: asyncpg.Connection, user_id: UUID, role: str) -> dict[str, Any] | None:
    """Change a user's role."""
    result = await conn.fetchrow(
        f"""
        UPDATE users SET role = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING {_PUBLIC_COLUMNS}
        """,
        role,
        str(user_id),
    )
    return record_to_dict(result)


async def set_user_status(
    conn: asyncpg.Connection, user_id: UUID, status: str
) -> dict[str, Any] | None:
    """Activate or suspend a user."""
    result = await conn.fetchrow(
        f"""
        UPDATE users SET status = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING {_PUBLIC_COLUMNS}
        """,
        status,
        str(user_id),
    )
    return record_to_dict(result)
