#!/usr/bin/env python
"""Mint an access token for an existing user."""

import argparse
import asyncio
import sys
from pathlib import Path
from uuid import UUID

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select

from staffing_api.database import async_session_maker, engine
from staffing_api.models.orm import UserFirmORM, UserORM
from staffing_api.security.auth import create_access_token


async def mint_token(email: str) -> str | None:
    """Look up a user by e-mail and return a signed access token."""
    async with async_session_maker() as session:
        result = await session.execute(select(UserORM).where(UserORM.email == email.lower()))
        user = result.scalar_one_or_none()
        if user is None:
            print(f"User {email} not found")
            return None

        result = await session.execute(
            select(UserFirmORM.firm_id, UserFirmORM.role).where(UserFirmORM.user_id == user.id)
        )
        memberships = result.all()

    await engine.dispose()

    if not memberships:
        print(f"Warning: {email} has no firm memberships", file=sys.stderr)
    for firm_id, role in memberships:
        print(f"  firm {firm_id}: {role}", file=sys.stderr)

    return create_access_token(UUID(str(user.id)), user.email)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an access token for a user")
    parser.add_argument("--email", required=True, help="Email address")
    args = parser.parse_args()

    token = asyncio.run(mint_token(args.email))
    if token is None:
        sys.exit(1)
    print(token)
