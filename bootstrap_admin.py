#!/usr/bin/env python3
"""
Super Admin Bootstrap Script

Promotes an existing account to super_admin, or creates one when the phone
number is not registered yet. Run this once after migrations so someone can
manage polls and other admins.

Usage:
    python bootstrap_admin.py +254700123456 --name "Jane Wanjiru" --password 'S3curePass'
"""

import argparse
import asyncio
import sys

import asyncpg

from civicpoll.core.config import get_settings
from civicpoll.core.security import hash_password
from civicpoll.core.validation import PasswordValidator, PhoneNumberValidator
from civicpoll.services import users as user_service


async def bootstrap_super_admin(phone_number: str, full_name: str | None, password: str | None) -> bool:
    """Promote or create the super admin account."""
    settings = get_settings()
    conn = await asyncpg.connect(settings.DATABASE_URL)

    try:
        print("🔍 Checking super admin setup...")

        user = await user_service.get_user_by_phone(conn, phone_number)

        if user:
            print(f"✅ Found user: {user['full_name']} (ID: {user['id']}, role: {user['role']})")
            if user["role"] == "super_admin":
                print("ℹ️  User is already a super_admin")
                return True
            await user_service.set_user_role(conn, user["id"], "super_admin")
            await user_service.set_user_status(conn, user["id"], "active")
            print("✅ Promoted user to super_admin")
            return True

        if not full_name or not password:
            print("❌ No account with that phone number. Pass --name and --password to create one.")
            return False

        is_valid, error = PasswordValidator.validate(password)
        if not is_valid:
            print(f"❌ {error}")
            return False

        created = await conn.fetchrow(
            """
            INSERT INTO users (phone_number, password_hash, full_name, role, status, registration_source)
            VALUES ($1, $2, $3, 'super_admin', 'active', 'bootstrap')
            RETURNING id
            """,
            phone_number,
            hash_password(password),
            full_name,
        )
        print(f"✅ Created super_admin {full_name} (ID: {created['id']})")
        return True

    except asyncpg.PostgresError as e:
        print(f"❌ Error during bootstrap: {e}")
        return False

    finally:
        await conn.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Promote or create the civic polls super admin")
    parser.add_argument("phone_number", help="Kenyan phone number, e.g. +254700123456 or 0700123456")
    parser.add_argument("--name", dest="full_name", help="Full name when creating a new account")
    parser.add_argument("--password", help="Password when creating a new account")
    args = parser.parse_args()

    is_valid, error = PhoneNumberValidator.validate(args.phone_number)
    if not is_valid:
        print(f"❌ {error}")
        return 1

    print("🚀 Civic Polls Super Admin Bootstrap")
    print("=" * 50)

    phone_number = PhoneNumberValidator.normalize(args.phone_number)
    success = asyncio.run(bootstrap_super_admin(phone_number, args.full_name, args.password))

    if success:
        print("\n✅ Bootstrap completed successfully!")
    else:
        print("\n❌ Bootstrap failed!")
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
