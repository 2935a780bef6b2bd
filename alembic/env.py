"""Alembic migration environment for the pointledger schema.

The target URL comes from ``DATABASE_URL`` (``.env`` is honoured) and only
falls back to ``sqlalchemy.url`` in ``alembic.ini`` when that is unset.
SQLite targets get batch mode so ALTERs are emulated by table copies.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from alembic import context

load_dotenv()

alembic_cfg = context.config
if os.getenv("DATABASE_URL"):
    alembic_cfg.set_main_option("sqlalchemy.url", os.environ["DATABASE_URL"])
if alembic_cfg.config_file_name is not None:
    fileConfig(alembic_cfg.config_file_name)

from pointledger.database.models import Base  # noqa: E402

MIGRATION_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
}


def _offline() -> None:
    url = alembic_cfg.get_main_option("sqlalchemy.url") or ""
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _online() -> None:
    connectable = engine_from_config(
        alembic_cfg.get_section(alembic_cfg.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            render_as_batch=connection.dialect.name == "sqlite",
            **MIGRATION_OPTIONS,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    _offline()
else:
    _online()
