"""
pointledger.services.leaderboard_service — Ranked Users per Time Window
========================================================================

Two structurally different queries behind one entry point:

* **all_time** reads the materialized ``user_point_balances`` table.
* **weekly / monthly** sum ledger increments inside the window, because
  the balance table has no historical breakdown.  ``level`` on these
  boards is still the all-time level from the balance table.

Ties are broken by ``user_id`` ascending so pages are reproducible.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Engine, distinct, func, select
from sqlalchemy.orm import Session

from pointledger.config import PointLedgerConfig
from pointledger.constants import MIN_LEVEL
from pointledger.database.models import PointAction, PointTransaction, User, UserPointBalance
from pointledger.engine.timeframes import TimeFrame, window_start
from pointledger.schemas import Leaderboard, LeaderboardEntry, LeaderboardQuery, Pagination

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = PointLedgerConfig()


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal(0)
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _entry(
    rank: int,
    user_id: str,
    user: User | None,
    balance: Any,
    level: int | None,
) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=rank,
        user_id=user_id,
        tag_name=(user.tag_name if user else None) or "",
        display_name=(user.display_name if user else None) or "",
        profile_picture_url=(user.profile_picture_url if user else None) or "",
        balance=_as_decimal(balance),
        level=level or MIN_LEVEL,
    )


# ---------------------------------------------------------------------------
# Strategy 1: all-time board from the balance table
# ---------------------------------------------------------------------------
def _all_time_board(
    session: Session, query: LeaderboardQuery, start: datetime | None
) -> tuple[list[LeaderboardEntry], int]:
    total = session.scalar(select(func.count()).select_from(UserPointBalance)) or 0

    rows = session.execute(
        select(UserPointBalance, User)
        .outerjoin(User, User.id == UserPointBalance.user_id)
        .order_by(UserPointBalance.balance.desc(), UserPointBalance.user_id.asc())
        .offset(query.offset)
        .limit(query.limit)
    ).all()

    entries = [
        _entry(query.offset + i + 1, bal.user_id, user, bal.balance, bal.level)
        for i, (bal, user) in enumerate(rows)
    ]
    return entries, total


# ---------------------------------------------------------------------------
# Strategy 2: windowed board summed from the ledger
# ---------------------------------------------------------------------------
def _windowed_board(
    session: Session, query: LeaderboardQuery, start: datetime | None
) -> tuple[list[LeaderboardEntry], int]:
    conditions = [
        PointTransaction.created_at >= start,
        PointTransaction.action == PointAction.INCREMENT,
    ]
    earned = func.sum(PointTransaction.amount).label("earned")

    rows = session.execute(
        select(PointTransaction.user_id, earned)
        .where(*conditions)
        .group_by(PointTransaction.user_id)
        .order_by(earned.desc(), PointTransaction.user_id.asc())
        .offset(query.offset)
        .limit(query.limit)
    ).all()

    total = session.scalar(
        select(func.count(distinct(PointTransaction.user_id))).where(*conditions)
    ) or 0

    user_ids = [row.user_id for row in rows]
    users: dict[str, User] = {}
    levels: dict[str, int] = {}
    if user_ids:
        users = {
            u.id: u for u in session.scalars(select(User).where(User.id.in_(user_ids))).all()
        }
        levels = {
            row.user_id: row.level
            for row in session.execute(
                select(UserPointBalance.user_id, UserPointBalance.level)
                .where(UserPointBalance.user_id.in_(user_ids))
            ).all()
        }

    entries = [
        _entry(query.offset + i + 1, row.user_id, users.get(row.user_id), row.earned,
               levels.get(row.user_id))
        for i, row in enumerate(rows)
    ]
    return entries, total


_STRATEGIES: dict[
    TimeFrame,
    Callable[[Session, LeaderboardQuery, datetime | None], tuple[list[LeaderboardEntry], int]],
] = {
    TimeFrame.ALL_TIME: _all_time_board,
    TimeFrame.WEEKLY: _windowed_board,
    TimeFrame.MONTHLY: _windowed_board,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def get_leaderboard(
    engine: Engine,
    query: LeaderboardQuery | dict[str, Any] | None = None,
    *,
    now: datetime | None = None,
    config: PointLedgerConfig | None = None,
) -> Leaderboard:
    """Top users by points for ``query.time_frame``.

    *now* anchors the weekly/monthly window (defaults to the current UTC
    time).  ``limit`` is capped at ``config.leaderboard_max_limit``.
    Read-only.
    """
    if query is None:
        query = LeaderboardQuery()
    elif not isinstance(query, LeaderboardQuery):
        query = LeaderboardQuery.model_validate(query)
    cap = (config or _DEFAULT_CONFIG).leaderboard_max_limit
    if query.limit > cap:
        query = query.model_copy(update={"limit": cap})

    start = window_start(query.time_frame, now)
    strategy = _STRATEGIES[query.time_frame]

    with Session(engine) as session:
        entries, total = strategy(session, query, start)

    logger.debug(
        "Leaderboard %s offset=%d limit=%d → %d/%d rows",
        query.time_frame, query.offset, query.limit, len(entries), total,
    )
    return Leaderboard(
        leaderboard=entries,
        pagination=Pagination(total=total, offset=query.offset, limit=query.limit),
        time_frame=query.time_frame,
    )
