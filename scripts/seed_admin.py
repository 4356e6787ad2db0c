#!/usr/bin/env python3
"""
Script to create an admin account, or reset its password if it already exists.

Usage:
    python scripts/seed_admin.py <username> <password> [--email EMAIL] [--role admin|moderator]
"""

import argparse
import asyncio
import os
import sys

from sqlalchemy import select

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.db import AsyncSessionLocal
from core.security import hash_password
from models.admin import Admin


async def seed_admin(username: str, password: str, email: str | None, role: str) -> None:
    """Create or update the admin account."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Admin).where(Admin.username == username))
        admin = result.scalar_one_or_none()

        if admin:
            admin.password_hash = hash_password(password)
            admin.role = role
            admin.is_active = True
            if email:
                admin.email = email
            print(f"✅ Admin '{username}' already existed; password reset and account reactivated")
        else:
            db.add(Admin(username=username, password_hash=hash_password(password), email=email, role=role))
            print(f"✅ Admin '{username}' created (role: {role})")

        await db.commit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or reset an admin account")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument("--email", default=None)
    parser.add_argument("--role", choices=["admin", "moderator"], default="admin")
    args = parser.parse_args()

    if len(args.password) < 8:
        print("❌ Password must be at least 8 characters")
        sys.exit(1)

    asyncio.run(seed_admin(args.username, args.password, args.email, args.role))


if __name__ == "__main__":
    main()
