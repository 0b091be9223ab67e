#!/usr/bin/env python3
"""
Bootstrap an admin account.

User registration through the API is admin-only, so a fresh database needs
one admin created out of band. This script writes it directly through the
user repository.

Usage:
    python scripts/create_admin.py --name "Site Admin" --email admin@example.com --password 's3cret'
    python scripts/create_admin.py --email admin@example.com --password 's3cret' --promote
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence
from uuid import uuid4

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.access_policy import Role
from domain.errors import PersistenceError
from domain.time import utc_now
from domain.user import User, hash_password
from repositories import user_repository


def create_admin(name: str, email: str, password: str, *, promote: bool = False) -> User:
    """
    Create an admin, or promote the existing account with this email when
    `promote` is set.

    Raises:
        ValueError: the email is taken and `promote` is not set
    """

    email = email.strip().lower()
    existing = user_repository.get_user_by_email(email)
    if existing is not None:
        if not promote:
            raise ValueError(f"User already exists: {email}")
        if existing.is_admin:
            return existing
        updated = user_repository.update_user(existing.user_id, {"role": Role.ADMIN})
        return updated or existing

    user = User(
        user_id=uuid4(),
        name=name.strip(),
        email=email,
        role=Role.ADMIN,
        created_at=utc_now(),
        password_hash=hash_password(password),
    )
    return user_repository.insert_user(user)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Create the first admin account in the Supabase database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--name", default="Admin", help="Display name (default: Admin)")
    parser.add_argument("--email", "-e", required=True, help="Login email")
    parser.add_argument("--password", "-p", required=True, help="Initial password")
    parser.add_argument(
        "--promote",
        action="store_true",
        help="If the email already exists, make that account an admin instead of failing",
    )
    args = parser.parse_args(argv)

    if not args.password:
        print("ERROR: password must not be empty", file=sys.stderr)
        return 2

    try:
        user = create_admin(args.name, args.email, args.password, promote=args.promote)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except PersistenceError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print("[SUCCESS] Admin ready")
    print(f"  User ID: {user.user_id}")
    print(f"  Email:   {user.email}")
    print(f"  Role:    {user.role.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
