#!/usr/bin/env python3
"""
Script to create the first admin user if it doesn't exist

Usage:
    python scripts/create_admin.py [--username admin] [--email admin@wallnest.local] [--password ...]

The password defaults to $ADMIN_PASSWORD.
"""
import argparse
import asyncio
import os
import sys

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import wallnest.models  # noqa: E402,F401  registers all models

from sqlalchemy import or_, select  # noqa: E402

from wallnest.auth.service import AuthService  # noqa: E402
from wallnest.database import AsyncSessionLocal, engine  # noqa: E402
from wallnest.users.models import User, UserRole  # noqa: E402


async def create_admin_user(username: str, email: str, password: str) -> int:
    """Create the admin account; returns its id (existing or new)"""
    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(User).where(or_(User.username == username, User.email == email))
        )
        existing = result.scalars().first()
        if existing:
            print(f"Admin user already exists with ID {existing.id}")
            print(f"   Username: {existing.username}")
            print(f"   Role: {existing.role.value}")
            return existing.id

        admin_user = User(
            username=username,
            email=email,
            full_name="Administrator",
            hashed_password=AuthService().get_password_hash(password),
            role=UserRole.ADMIN,
            is_active=True,
        )
        try:
            session.add(admin_user)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

        print("Admin user created successfully!")
        print(f"   ID: {admin_user.id}")
        print(f"   Username: {admin_user.username}")
        print(f"   Email: {admin_user.email}")
        return admin_user.id


async def main(args: argparse.Namespace) -> None:
    try:
        await create_admin_user(args.username, args.email, args.password)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the first admin account")
    parser.add_argument("--username", default="admin")
    parser.add_argument("--email", default="admin@wallnest.local")
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    args = parser.parse_args()
    if not args.password or len(args.password) < 6:
        parser.error("a password of at least 6 characters is required (--password or ADMIN_PASSWORD)")
    asyncio.run(main(args))
