#!/usr/bin/env python
"""
Seed roles and staff accounts for development.

Prints a bearer token for each created account so the audit API can be
exercised straight away.
"""

import argparse
import asyncio
import sys

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


# Add src to path for imports
sys.path.insert(0, "src")

from stationtrack.core.auth import create_access_token
from stationtrack.core.constants import ADMIN_ROLE, TECHNICIAN_ROLE
from stationtrack.core.database import async_session_factory
from stationtrack.modules.users.models import Role, User


DEFAULT_USERS = [
    {"first_name": "Ada", "last_name": "Admin", "username": "admin", "role": ADMIN_ROLE},
]

DEMO_USERS = [
    {"first_name": "Tom", "last_name": "Field", "username": "tfield", "role": TECHNICIAN_ROLE},
    {"first_name": "Rosa", "last_name": "Diaz", "username": "rdiaz", "role": TECHNICIAN_ROLE},
]


async def ensure_roles(session: AsyncSession) -> dict[str, Role]:
    """Create the admin and technician roles if missing."""
    roles: dict[str, Role] = {}
    for name in (ADMIN_ROLE, TECHNICIAN_ROLE):
        result = await session.execute(select(Role).where(Role.name == name))
        role = result.scalar_one_or_none()
        if role is None:
            role = Role(name=name, status="active")
            session.add(role)
            await session.flush()
            print(f"Created role: {name}")
        roles[name] = role
    return roles


async def seed_users(users: list[dict[str, str]]) -> None:
    async with async_session_factory() as session:
        roles = await ensure_roles(session)

        for data in users:
            result = await session.execute(
                select(User).where(User.username == data["username"])
            )
            existing = result.scalar_one_or_none()

            if existing:
                print(f"User already exists: {existing.username}")
                continue

            user = User(
                first_name=data["first_name"],
                last_name=data["last_name"],
                username=data["username"],
                status="active",
                role_id=roles[data["role"]].id,
            )
            session.add(user)
            await session.flush()

            token = create_access_token(user.id)
            print(f"Created {data['role']} {user.username} ({user.id})")
            print(f"  token: {token}")

        await session.commit()


async def main(scenario: str) -> None:
    """Run the seeding based on scenario."""
    if scenario == "default":
        await seed_users(DEFAULT_USERS)
    elif scenario == "demo":
        await seed_users(DEFAULT_USERS + DEMO_USERS)
    else:
        print(f"Unknown scenario: {scenario}")
        print("Available scenarios: default, demo")
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed roles and staff accounts")
    parser.add_argument(
        "--scenario",
        "-s",
        default="default",
        help="Seed scenario to run (default, demo)",
    )
    args = parser.parse_args()

    asyncio.run(main(args.scenario))
