"""
tests/test_concurrency.py — Concurrent Ledger Writers
======================================================
Many threads award points at once.  Uses a file-backed SQLite database
so each worker holds its own connection and writers really contend.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pointledger.constants import calculate_level
from pointledger.database.models import PointTransaction, UserPointBalance
from pointledger.services.points_service import create_point, get_user_points, ledger_balance
from pointledger.services.reward_service import award_points


def _run_together(fn, args_list):
    barrier = threading.Barrier(len(args_list))

    def worker(args):
        barrier.wait()
        return fn(*args)

    with ThreadPoolExecutor(max_workers=len(args_list)) as pool:
        return list(pool.map(worker, args_list))


def test_two_concurrent_likes_are_both_applied(file_engine, fast_config):
    results = _run_together(
        lambda uid: award_points(file_engine, uid, "POST_LIKE", config=fast_config),
        [("fresh",), ("fresh",)],
    )

    assert all(r is not None for r in results)
    assert get_user_points(file_engine, "fresh").balance == Decimal("4")


def test_many_writers_on_one_user_lose_nothing(file_engine, fast_config):
    workers = 8
    _run_together(
        lambda i: create_point(
            file_engine,
            {"user_id": "hot", "amount": 25, "source": "TOKEN_SWAP", "metadata": {"n": i}},
            config=fast_config,
        ),
        [(i,) for i in range(workers)],
    )

    row = get_user_points(file_engine, "hot")
    assert row.balance == Decimal(25 * workers)
    assert row.level == calculate_level(25 * workers)
    with Session(file_engine) as session:
        assert ledger_balance(session, "hot") == Decimal(25 * workers)
        assert session.scalar(select(func.count()).select_from(PointTransaction)) == workers


def test_parallel_users_are_independent(file_engine, fast_config):
    users = [f"user-{i}" for i in range(6)]
    _run_together(
        lambda uid: award_points(file_engine, uid, "TOKEN_LAUNCH", config=fast_config),
        [(uid,) for uid in users] * 2,
    )

    with Session(file_engine) as session:
        assert session.scalar(select(func.count()).select_from(PointTransaction)) == 12
        for uid in users:
            row = session.get(UserPointBalance, uid)
            assert row.balance == Decimal("100")
            assert row.level == 2
            assert ledger_balance(session, uid) == Decimal("100")
