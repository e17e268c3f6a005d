#!/usr/bin/env python3
"""Admin script to create users directly in the database.

The HTTP API only accepts requests from existing users, so the first admin
has to be created here.

Usage:
    uv run python scripts/create_user.py <email> <name> [--role viewer|developer|project_manager|admin]
    uv run python scripts/create_user.py --list
"""

import asyncio
import logging
import sys

from src.core import db_client
from src.core.deps import build_repositories
from src.core.module_registry import register_default_modules
from src.domain.user import UserRole
from src.modules.users.service import create_user, find_by_email


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def list_users() -> None:
    """List all users."""
    users = await db_client.list_records(collection="users", sort="email ASC")
    for user in users:
        logger.info(
            "%s  %s <%s> role=%s status=%s", user["id"], user["name"], user["email"], user["role"], user["status"]
        )


async def ensure_user(email: str, name: str, role: UserRole) -> None:
    """Create the user unless the email is already registered."""
    repositories = build_repositories()
    existing = await find_by_email(repositories.users, email)
    if existing:
        logger.info("User already exists: %s (id=%s, role=%s)", existing.email, existing.id, existing.role)
        return

    user = await create_user(repositories.users, name=name, email=email, role=role)
    logger.info("Created %s %s with id %s", user.role, user.email, user.id)


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        print_usage()
        return

    register_default_modules()
    await db_client.init_db()

    try:
        if "--list" in args:
            await list_users()
            return

        if len(args) < 2:  # noqa: PLR2004
            print_usage()
            sys.exit(1)

        email, name = args[0], args[1]
        role = UserRole.ADMIN
        if "--role" in args:
            role_index = args.index("--role")
            try:
                role = UserRole(args[role_index + 1])
            except (IndexError, ValueError):
                print_usage()
                sys.exit(1)

        await ensure_user(email, name, role)
    finally:
        await db_client.close_connection()


if __name__ == "__main__":
    asyncio.run(main())
