"""
pointledger.database.engine — Engine factory, sessions and the thread bridge
============================================================================

The process entry point builds one :class:`Engine` and hands it to every
service call; the package itself keeps no module-level database client.

Reward hooks fire from request handlers that may live on an ``asyncio``
loop, while SQLAlchemy + psycopg2 blocks.  :func:`run_db` moves a sync
service call onto the default thread pool so the loop keeps serving.

Usage::

    from pointledger.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # DATABASE_URL from the environment
    init_db(engine)                      # dev/test only, prod uses Alembic

    # From a coroutine:
    result = await run_db(award_points, engine, user_id, "POST_LIKE")
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from pointledger.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Every like/comment/follow can end in a ledger write, so the pool is
# sized for bursts of short transactions.
SERVER_POOL_OPTIONS: dict[str, object] = {
    "pool_size": 10,
    "max_overflow": 20,
    "pool_pre_ping": True,
    "pool_timeout": 10,
    "pool_recycle": 3600,
}


def create_db_engine(url: str | None = None, *, echo: bool = False) -> Engine:
    """Engine for *url*, falling back to ``DATABASE_URL``.

    Server databases get :data:`SERVER_POOL_OPTIONS`; SQLite (local runs,
    tests) keeps SQLAlchemy's default pool.

    Raises ``RuntimeError`` when no URL is available.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "No database configured: pass a URL or set DATABASE_URL "
            "(see .env.example)."
        )

    options = {} if url.startswith("sqlite") else SERVER_POOL_OPTIONS
    engine = create_engine(url, echo=echo, **options)
    logger.info(
        "Database engine ready (%s → %s)",
        engine.dialect.name, engine.url.host or engine.url.database,
    )
    return engine


def init_db(engine: Engine) -> None:
    """Create any missing ledger tables.

    Idempotent.  Production schemas are migrated with ``alembic upgrade
    head``; this exists for local databases and the test suite.
    """
    Base.metadata.create_all(engine)
    logger.info("Ledger tables present.")


@contextmanager
def get_session(engine: Engine, *, expire_on_commit: bool = True) -> Iterator[Session]:
    """Session scoped to a ``with`` block: commit on normal exit, roll back
    and re-raise on error, close either way."""
    with Session(engine, expire_on_commit=expire_on_commit) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        session.commit()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a blocking database call without stalling the event loop.

    ``await run_db(get_leaderboard, engine, {"timeFrame": "weekly"})``
    """
    return await asyncio.to_thread(func, *args, **kwargs)
