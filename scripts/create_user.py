#!/usr/bin/env python3
"""Create a SocialHub user, hashing the password with the application's hasher."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure project root is on sys.path when script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from socialhub.core.models.db_helper import db_helper  # noqa: E402
from socialhub.core.models.user import User, UserRole  # noqa: E402
from socialhub.core.repositories.user_repository import UserRepository  # noqa: E402
from socialhub.core.services.security import hash_password  # noqa: E402


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("username", help="Login name of the new user")
    parser.add_argument("password", help="The plaintext password to hash")
    parser.add_argument("--full-name", default=None, help="Display name")
    parser.add_argument(
        "--admin",
        action="store_true",
        help="Grant the admin role (may manage OAuth app credentials)",
    )
    return parser.parse_args(argv)


async def create_user(args: argparse.Namespace) -> int:
    try:
        async with db_helper.session_factory() as session:
            repo = UserRepository(session)
            if await repo.get_by_username(args.username) is not None:
                print(f"User {args.username!r} already exists", file=sys.stderr)
                return 1
            user = await repo.create(
                User(
                    username=args.username,
                    full_name=args.full_name,
                    hashed_password=hash_password(args.password),
                    role=(UserRole.ADMIN if args.admin else UserRole.BASIC).value,
                )
            )
            await session.commit()
            print(f"Created {user.role} user {user.username} ({user.id})")
            return 0
    finally:
        await db_helper.dispose()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    return asyncio.run(create_user(args))


if __name__ == "__main__":
    raise SystemExit(main())
