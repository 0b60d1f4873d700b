"""
Script to create a verified user with a password, and optionally an
organization they administer, for local testing.
"""

import argparse
import asyncio
from typing import Optional

from sqlmodel import select

from app.core.auth import hash_password
from app.core.database import get_session_context, init_db
from app.models.base import utcnow
from app.models.membership import Membership
from app.models.organization import Organization
from app.models.user import User
from syncnotes_shared.schemas.common import Role


async def create_user(email: str, password: str, name: str, org_name: Optional[str]):
    await init_db()

    async with get_session_context() as session:
        result = await session.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if not user:
            user = User(email=email.lower(), name=name)
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists, resetting password.")

        user.password_hash = hash_password(password)
        user.email_verified = user.email_verified or utcnow()
        session.add(user)
        await session.flush()

        if org_name:
            org = Organization(name=org_name)
            session.add(org)
            await session.flush()
            session.add(Membership(org_id=org.id, user_id=user.id, role=Role.ADMIN.value))
            print(f"Created organization '{org_name}' with {email} as admin.")

    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument("--name", default="Admin", help="Display name")
    parser.add_argument("--org", default=None, help="Also create an organization with this name")

    args = parser.parse_args()

    asyncio.run(create_user(args.email, args.password, args.name, args.org))
