"""
Name: Admin / Owner Bootstrap Script

Responsibilities:
  - Create an admin or owner account with its empty cart (idempotent)
  - Optionally grant starting points (membership recomputed from points)
  - --fix-existing: repair an existing account (role, reactivate, clear ban)

Usage:
  DATABASE_URL=... python scripts/create_admin.py --email a@b.c --username boss \
      --role owner --points 1000
  DATABASE_URL=... python scripts/create_admin.py --email a@b.c --fix-existing
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from uuid import uuid4

import psycopg
from psycopg.types.json import Json

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from moostyle.domain.membership import membership_for_points  # noqa: E402
from moostyle.identity.auth_users import (  # noqa: E402
    hash_password,
    normalize_email,
    validate_password_strength,
)
from moostyle.identity.users import UserRole, default_notification_settings  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or repair a MooStyle admin account.")
    parser.add_argument("--email", required=True, help="Account email (normalized)")
    parser.add_argument("--username", help="Public username (required to create)")
    parser.add_argument("--password", help="Omit to be prompted")
    parser.add_argument(
        "--role",
        default=UserRole.ADMIN.value,
        choices=[UserRole.ADMIN.value, UserRole.OWNER.value],
    )
    parser.add_argument("--points", type=int, default=0, help="Starting points (>= 0)")
    parser.add_argument(
        "--fix-existing",
        action="store_true",
        help="Set the role on an existing account, reactivate it and clear its ban",
    )
    return parser


def _password_from(args: argparse.Namespace) -> str:
    if args.password:
        password = args.password
    else:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Confirm password: "):
            raise SystemExit("Passwords do not match.")
    problems = validate_password_strength(password)
    if problems:
        raise SystemExit("Invalid password: " + "; ".join(problems))
    return password


def repair_account(conn, *, email: str, role: str) -> bool:
    row = conn.execute(
        """
        UPDATE users
           SET role = %s, is_active = true, ban_reason = NULL, banned_at = NULL,
               updated_at = now()
         WHERE email = %s
        RETURNING id
        """,
        (role, email),
    ).fetchone()
    if row is None:
        print(f"No account with email {email}")
        return False
    print(f"Repaired account id={row[0]} role={role} (active, ban cleared)")
    return True


def create_account(
    conn, *, email: str, username: str, password: str, role: str, points: int
) -> None:
    existing = conn.execute(
        "SELECT id, role FROM users WHERE email = %s OR lower(username) = lower(%s)",
        (email, username),
    ).fetchone()
    if existing is not None:
        print(f"Account already exists: id={existing[0]} role={existing[1]}")
        return

    level = membership_for_points(points)
    user_id = uuid4()
    conn.execute(
        """
        INSERT INTO users (id, email, username, password_hash, role, is_active,
                           points, membership_level, notification_settings)
        VALUES (%s, %s, %s, %s, %s, true, %s, %s, %s)
        """,
        (
            user_id,
            email,
            username,
            hash_password(password),
            role,
            points,
            level.value,
            Json(default_notification_settings()),
        ),
    )
    conn.execute(
        "INSERT INTO carts (id, user_id) VALUES (%s, %s) ON CONFLICT (user_id) DO NOTHING",
        (uuid4(), user_id),
    )
    print(f"Created {role} id={user_id} email={email} points={points} level={level.value}")


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise SystemExit("DATABASE_URL is required.")
    if args.points < 0:
        raise SystemExit("--points must be >= 0")

    email = normalize_email(args.email)
    with psycopg.connect(db_url) as conn:
        if args.fix_existing:
            repair_account(conn, email=email, role=args.role)
            return
        if not args.username:
            raise SystemExit("--username is required to create an account")
        create_account(
            conn,
            email=email,
            username=args.username.strip(),
            password=_password_from(args),
            role=args.role,
            points=args.points,
        )


if __name__ == "__main__":
    main()
