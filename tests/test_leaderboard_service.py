"""
tests/test_leaderboard_service.py — Leaderboard Aggregation Tests
==================================================================
All-time boards read the balance table; weekly/monthly boards sum ledger
increments inside the window.  Both share ranking, tie-break and
pagination rules.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import delete
from sqlalchemy.orm import Session

from pointledger.config import PointLedgerConfig
from pointledger.database.models import PointAction, UserPointBalance
from pointledger.engine.timeframes import TimeFrame
from pointledger.schemas import LeaderboardQuery
from pointledger.services.leaderboard_service import get_leaderboard
from pointledger.services.points_service import create_point, update_user_points
from tests.conftest import backdate, seed_users


@pytest.fixture
def engine(db_engine):
    """Re-use the shared conftest db_engine (SQLite, StaticPool)."""
    return db_engine


def _earn(engine, user_id, amount, *, days_ago=0, action=PointAction.INCREMENT, source="SEED"):
    result = create_point(engine, {
        "user_id": user_id, "amount": amount, "action": action, "source": source,
    })
    if days_ago:
        backdate(engine, result.point.id, days=days_ago)
    return result


@pytest.fixture
def populated(engine):
    """carol 700, alice 300, bob 300, dave 50; only alice and bob have profiles."""
    seed_users(engine, ("alice", "al", "Alice"), ("bob", "bobby", "Bob"))
    _earn(engine, "carol", 700)
    _earn(engine, "alice", 300)
    _earn(engine, "bob", 300)
    _earn(engine, "dave", 50)
    return engine


class TestAllTime:

    def test_orders_by_balance_then_user_id(self, populated):
        board = get_leaderboard(populated)

        assert [e.user_id for e in board.leaderboard] == ["carol", "alice", "bob", "dave"]
        assert [e.rank for e in board.leaderboard] == [1, 2, 3, 4]
        assert board.leaderboard[0].balance == Decimal("700")
        assert board.leaderboard[0].level == 3
        assert board.time_frame == TimeFrame.ALL_TIME

    def test_profile_fields_are_joined_with_empty_defaults(self, populated):
        entries = {e.user_id: e for e in get_leaderboard(populated).leaderboard}

        assert entries["alice"].tag_name == "al"
        assert entries["alice"].display_name == "Alice"
        assert entries["alice"].profile_picture_url == "https://cdn.example.com/alice.png"
        assert entries["carol"].tag_name == ""
        assert entries["carol"].display_name == ""
        assert entries["carol"].profile_picture_url == ""

    def test_offset_continues_ranks(self, populated):
        board = get_leaderboard(populated, LeaderboardQuery(limit=2, offset=1))

        assert [(e.rank, e.user_id) for e in board.leaderboard] == [(2, "alice"), (3, "bob")]
        assert board.pagination.total == 4
        assert board.pagination.limit == 2
        assert board.pagination.offset == 1

    def test_offset_past_end_is_empty(self, populated):
        board = get_leaderboard(populated, {"offset": 10})
        assert board.leaderboard == []
        assert board.pagination.total == 4

    def test_reflects_decrements(self, populated):
        _earn(populated, "carol", 660, action=PointAction.DECREMENT)
        board = get_leaderboard(populated)
        assert board.leaderboard[-1].user_id == "carol"
        assert board.leaderboard[-1].balance == Decimal("40")

    def test_limit_is_capped_by_config(self, populated):
        default_cap = get_leaderboard(populated, {"limit": 5000})
        small_cap = get_leaderboard(
            populated, {"limit": 50}, config=PointLedgerConfig(leaderboard_max_limit=3),
        )

        assert default_cap.pagination.limit == 100
        assert len(default_cap.leaderboard) == 4
        assert small_cap.pagination.limit == 3
        assert [e.user_id for e in small_cap.leaderboard] == ["carol", "alice", "bob"]
        assert small_cap.pagination.total == 4

    def test_empty_board(self, engine):
        board = get_leaderboard(engine)
        assert board.leaderboard == []
        assert board.pagination.total == 0

    def test_reads_are_idempotent(self, populated):
        assert get_leaderboard(populated).to_dict() == get_leaderboard(populated).to_dict()


class TestWindowed:

    def test_weekly_sums_only_recent_increments(self, engine):
        _earn(engine, "u1", 50, days_ago=10)
        _earn(engine, "u1", 30, days_ago=2)

        weekly = get_leaderboard(engine, {"timeFrame": "weekly"})
        all_time = get_leaderboard(engine, {"timeFrame": "all_time"})

        assert weekly.leaderboard[0].balance == Decimal("30")
        assert all_time.leaderboard[0].balance == Decimal("80")

    def test_monthly_window(self, engine):
        _earn(engine, "u1", 40, days_ago=45)
        _earn(engine, "u1", 25, days_ago=20)
        _earn(engine, "u2", 10, days_ago=3)

        board = get_leaderboard(engine, LeaderboardQuery(time_frame=TimeFrame.MONTHLY))

        assert [(e.user_id, e.balance) for e in board.leaderboard] == [
            ("u1", Decimal("25")),
            ("u2", Decimal("10")),
        ]
        assert board.time_frame == TimeFrame.MONTHLY

    def test_users_without_window_activity_are_absent(self, engine):
        _earn(engine, "old", 500, days_ago=30)
        _earn(engine, "new", 5)

        board = get_leaderboard(engine, {"timeFrame": "weekly"})
        assert [e.user_id for e in board.leaderboard] == ["new"]
        assert board.pagination.total == 1

    def test_decrements_do_not_reduce_window_score(self, engine):
        _earn(engine, "u1", 60, days_ago=1)
        _earn(engine, "u1", 40, action=PointAction.DECREMENT)

        board = get_leaderboard(engine, {"timeFrame": "weekly"})
        assert board.leaderboard[0].balance == Decimal("60")

    def test_level_is_the_all_time_level(self, engine):
        _earn(engine, "whale", 3000, days_ago=20)
        _earn(engine, "whale", 10, days_ago=1)

        entry = get_leaderboard(engine, {"timeFrame": "weekly"}).leaderboard[0]
        assert entry.balance == Decimal("10")
        assert entry.level == 5

    def test_level_defaults_to_one_without_balance_row(self, engine):
        _earn(engine, "u1", 200, days_ago=1)
        with Session(engine) as session:
            session.execute(delete(UserPointBalance).where(UserPointBalance.user_id == "u1"))
            session.commit()

        entry = get_leaderboard(engine, {"timeFrame": "weekly"}).leaderboard[0]
        assert entry.balance == Decimal("200")
        assert entry.level == 1

    def test_level_follows_balance_override(self, engine):
        _earn(engine, "u1", 20, days_ago=1)
        update_user_points(engine, {"user_id": "u1", "level": 7})

        entry = get_leaderboard(engine, {"timeFrame": "weekly"}).leaderboard[0]
        assert entry.level == 7

    def test_ties_and_pagination(self, engine):
        seed_users(engine, ("b", "bee", "B"))
        for user_id in ("c", "b", "a"):
            _earn(engine, user_id, 15, days_ago=1)
        _earn(engine, "z", 99, days_ago=1)

        board = get_leaderboard(engine, {"timeFrame": "weekly", "limit": 2, "offset": 1})

        assert [(e.rank, e.user_id) for e in board.leaderboard] == [(2, "a"), (3, "b")]
        assert board.leaderboard[1].display_name == "B"
        assert board.pagination.total == 4

    def test_anchor_time_controls_window(self, engine):
        _earn(engine, "u1", 10, days_ago=12)
        past = datetime.now(UTC) - timedelta(days=9)

        board = get_leaderboard(engine, {"timeFrame": "weekly"}, now=past)
        assert [e.user_id for e in board.leaderboard] == ["u1"]


class TestQuery:

    def test_defaults(self):
        query = LeaderboardQuery()
        assert query.limit == 10
        assert query.offset == 0
        assert query.time_frame == TimeFrame.ALL_TIME

    def test_accepts_alias_and_field_name(self):
        assert LeaderboardQuery(timeFrame="monthly").time_frame == TimeFrame.MONTHLY
        assert LeaderboardQuery(time_frame="weekly").time_frame == TimeFrame.WEEKLY

    @pytest.mark.parametrize("bad", [{"timeFrame": "daily"}, {"limit": 0}, {"offset": -1}])
    def test_rejects_bad_input(self, bad):
        with pytest.raises(ValidationError):
            LeaderboardQuery(**bad)

    def test_serialized_shape(self, populated):
        payload = get_leaderboard(populated, {"limit": 1}).to_dict()

        assert payload["timeFrame"] == "all_time"
        assert payload["pagination"] == {"total": 4, "offset": 0, "limit": 1}
        assert payload["leaderboard"][0]["user_id"] == "carol"
        assert payload["leaderboard"][0]["rank"] == 1
