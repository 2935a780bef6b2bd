"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from pointledger.config import PointLedgerConfig
from pointledger.database.models import Base, PointTransaction, User


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all pointledger tables.

    Uses StaticPool so every session (and ``asyncio.to_thread`` worker)
    shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine with a real connection pool.

    Needed for multi-threaded tests: each thread gets its own connection,
    so writers genuinely contend for the database lock.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def fast_config() -> PointLedgerConfig:
    """Default config without retry sleeps."""
    return PointLedgerConfig(ledger_retry_backoff_ms=0)


def seed_users(engine: Engine, *users: tuple[str, str, str]) -> None:
    """Insert ``(id, tag_name, display_name)`` user rows."""
    with Session(engine) as session:
        for user_id, tag, name in users:
            session.add(User(
                id=user_id,
                tag_name=tag,
                display_name=name,
                profile_picture_url=f"https://cdn.example.com/{user_id}.png",
            ))
        session.commit()


def backdate(engine: Engine, point_id: str, *, days: float = 0, hours: float = 0) -> None:
    """Move a ledger row's ``created_at`` into the past (test-only mutation)."""
    with Session(engine) as session:
        point = session.get(PointTransaction, point_id)
        point.created_at = datetime.now(UTC) - timedelta(days=days, hours=hours)
        session.commit()
