"""
Name: Membership Recompute Script

Responsibilities:
  - Recalcular membership_level de cada usuario a partir de sus puntos
  - Crear el carrito vacío de los usuarios que no lo tengan
  - Reportar cuántas filas se corrigieron (--dry-run no escribe)

Notes:
  - Usa la misma función de dominio que la API (membership_for_points)
  - Corre en una sola transacción
"""

from __future__ import annotations

import argparse
import os
import sys
from uuid import uuid4

import psycopg

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from moostyle.domain.membership import membership_for_points  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recompute membership levels and create missing carts."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report changes without writing them",
    )
    return parser.parse_args()


def recompute(conn: psycopg.Connection, *, dry_run: bool = False) -> dict[str, int]:
    stats = {"users": 0, "levels_fixed": 0, "carts_created": 0}
    with conn.cursor() as cur:
        cur.execute("SELECT id, points, membership_level FROM users FOR UPDATE")
        rows = cur.fetchall()
        stats["users"] = len(rows)

        for user_id, points, current in rows:
            expected = membership_for_points(max(points, 0)).value
            if expected != current:
                stats["levels_fixed"] += 1
                if not dry_run:
                    cur.execute(
                        "UPDATE users SET membership_level = %s, updated_at = now() "
                        "WHERE id = %s",
                        (expected, user_id),
                    )

        cur.execute(
            "SELECT u.id FROM users u LEFT JOIN carts c ON c.user_id = u.id "
            "WHERE c.id IS NULL"
        )
        missing = [row[0] for row in cur.fetchall()]
        stats["carts_created"] = len(missing)
        if not dry_run:
            for user_id in missing:
                cur.execute(
                    "INSERT INTO carts (id, user_id) VALUES (%s, %s) "
                    "ON CONFLICT (user_id) DO NOTHING",
                    (uuid4(), user_id),
                )

    if dry_run:
        conn.rollback()
    else:
        conn.commit()
    return stats


def main() -> None:
    args = _parse_args()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise SystemExit("DATABASE_URL is required.")

    with psycopg.connect(db_url) as conn:
        stats = recompute(conn, dry_run=args.dry_run)

    prefix = "[dry-run] " if args.dry_run else ""
    print(
        f"{prefix}users={stats['users']} levels_fixed={stats['levels_fixed']} "
        f"carts_created={stats['carts_created']}"
    )


if __name__ == "__main__":
    main()
