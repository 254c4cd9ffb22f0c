"""
============================================================
TARJETA CRC — alembic/env.py (migraciones MooStyle)
============================================================
Responsibilities:
  - Resolver la URL de la base: DATABASE_URL (env) o sqlalchemy.url del ini.
  - Forzar el driver psycopg 3 (postgresql+psycopg) para SQLAlchemy.
  - Correr migraciones online (una transacción) u offline (SQL a stdout).

Collaborators:
  - alembic.context, sqlalchemy.create_engine
  - versions/001_initial.py (users, carts, cart_items, point_transactions,
    audit_events)

Policy:
  - Sin ORM ni autogenerate: target_metadata = None, DDL escrito a mano.
  - lock_timeout corto: una migración no debe quedar colgada detrás de una
    descarga que tiene lockeada la fila del usuario.
============================================================
"""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool, text

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = None

_DRIVER_PREFIXES = ("postgresql://", "postgres://")
_LOCK_TIMEOUT = os.environ.get("MIGRATION_LOCK_TIMEOUT", "5s")


def database_url() -> str:
    raw = os.environ.get("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not raw:
        raise RuntimeError("DATABASE_URL is not set and alembic.ini has no sqlalchemy.url")
    for prefix in _DRIVER_PREFIXES:
        if raw.startswith(prefix):
            return "postgresql+psycopg://" + raw[len(prefix):]
    return raw


def run_migrations_offline() -> None:
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(
        database_url(),
        poolclass=pool.NullPool,
        connect_args={"application_name": "moostyle-migrations"},
    )
    with engine.connect() as connection:
        connection.execute(text(f"SET lock_timeout = '{_LOCK_TIMEOUT}'"))
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            transaction_per_migration=False,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
