"""
pointledger.engine.timeframes — Leaderboard time windows
=========================================================

Pure date arithmetic, no DB I/O.  ``all_time`` has no window start; the
leaderboard reads the balance table for it instead of the ledger.
"""

from __future__ import annotations

import calendar
import enum
from datetime import UTC, datetime, timedelta

__all__ = ["TimeFrame", "subtract_months", "window_start"]


class TimeFrame(enum.StrEnum):
    ALL_TIME = "all_time"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def subtract_months(moment: datetime, months: int) -> datetime:
    """Same wall-clock time *months* calendar months earlier.

    The day is clamped to the last day of the target month, so
    March 31 minus one month is February 28 (or 29).
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def window_start(time_frame: TimeFrame, now: datetime | None = None) -> datetime | None:
    """Inclusive lower bound on ``created_at`` for *time_frame*."""
    now = now or datetime.now(UTC)
    if time_frame == TimeFrame.WEEKLY:
        return now - timedelta(days=7)
    if time_frame == TimeFrame.MONTHLY:
        return subtract_months(now, 1)
    return None
