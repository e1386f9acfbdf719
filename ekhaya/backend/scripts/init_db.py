#!/usr/bin/env python3
"""
Initialize database with the bootstrap super-admin.

Usage: ADMIN_PASSWORD=... python scripts/init_db.py
"""

import asyncio
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.database import async_session_maker, init_db
from app.models import AdminUser, ROLE_SUPER_ADMIN
from app.utils.security import get_password_hash
from app.config import settings


async def upsert_admin_user(db: AsyncSession, password: str) -> AdminUser:
    """Create the bootstrap admin, or reset its password, lockout and 2FA."""
    result = await db.execute(
        select(AdminUser).where(AdminUser.username == settings.admin_username)
    )
    admin = result.scalar_one_or_none()

    if admin is None:
        admin = AdminUser(
            username=settings.admin_username,
            email=settings.admin_email,
            name="System Administrator",
            role=ROLE_SUPER_ADMIN,
        )
        db.add(admin)
        print(f"Created admin user: {settings.admin_username}")
    else:
        print(f"Admin user '{settings.admin_username}' already exists, resetting credentials")

    admin.password_hash = get_password_hash(password)
    admin.is_active = True
    admin.two_factor_enabled = False
    admin.two_factor_secret = None
    admin.recovery_codes_json = None
    admin.two_factor_version = (admin.two_factor_version or 0) + 1
    admin.failed_logins = 0
    admin.locked_until = None
    admin.allowed_ips = []

    await db.commit()
    return admin


async def main() -> int:
    """Initialize database."""
    if not settings.admin_password:
        print("ADMIN_PASSWORD environment variable is required", file=sys.stderr)
        return 1

    print("Initializing Ekhaya admin database...")

    await init_db()
    print("Database tables created")

    async with async_session_maker() as db:
        admin = await upsert_admin_user(db, settings.admin_password)

    print("\nDatabase initialization complete!")
    print(f"  Username: {admin.username}")
    print(f"  Email: {admin.email}")
    print(f"  Role: {admin.role}")
    print(f"  2FA Enabled: {admin.two_factor_enabled}")
    print("\nThe admin must set up two-factor authentication on first login.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
