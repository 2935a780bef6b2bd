"""
pointledger.schemas — Request DTOs and result objects
======================================================

Requests are Pydantic models so collaborators get validation (and
coercion of numeric strings to ``Decimal``) at the boundary.  Results are
plain dataclasses wrapping ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pointledger.constants import MAX_LEVEL, MIN_LEVEL, to_points
from pointledger.database.models import PointAction, PointTransaction, UserPointBalance
from pointledger.engine.timeframes import TimeFrame


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class CreatePointRequest(BaseModel):
    """One ledger entry to write.  ``amount`` is a magnitude; ``action`` carries the sign."""

    user_id: str = Field(min_length=1)
    amount: Decimal
    action: PointAction = PointAction.INCREMENT
    source: str = Field(min_length=1, max_length=50)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Decimal:
        amount = to_points(value)
        if amount < 0:
            raise ValueError("amount must be non-negative; use action='decrement'")
        return amount

    @field_validator("metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value: Any) -> Any:
        return {} if value is None else value


class UpdateUserPointRequest(BaseModel):
    user_id: str = Field(min_length=1)
    balance: Decimal | None = None
    level: int | None = Field(default=None, ge=MIN_LEVEL, le=MAX_LEVEL)

    @field_validator("balance", mode="before")
    @classmethod
    def _coerce_balance(cls, value: Any) -> Decimal | None:
        return None if value is None else to_points(value)


class PointHistoryQuery(BaseModel):
    user_id: str = Field(min_length=1)
    source: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = Field(default=20, ge=1)
    offset: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> PointHistoryQuery:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class LeaderboardQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    limit: int = Field(default=10, ge=1)
    offset: int = Field(default=0, ge=0)
    time_frame: TimeFrame = Field(default=TimeFrame.ALL_TIME, alias="timeFrame")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass
class LedgerWrite:
    """The ledger row and the balance row produced by one write."""

    point: PointTransaction
    user_point: UserPointBalance

    def to_dict(self) -> dict:
        return {"point": self.point.to_dict(), "user_point": self.user_point.to_dict()}


@dataclass
class Pagination:
    total: int
    offset: int
    limit: int

    def to_dict(self) -> dict:
        return {"total": self.total, "offset": self.offset, "limit": self.limit}


@dataclass
class PointHistory:
    points: list[PointTransaction] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(0, 0, 20))

    def to_dict(self) -> dict:
        return {
            "points": [p.to_dict() for p in self.points],
            "pagination": self.pagination.to_dict(),
        }


@dataclass
class LeaderboardEntry:
    """One ranked row.

    ``balance`` is the all-time balance on the all-time board and the
    points earned inside the window on weekly/monthly boards.
    """

    rank: int
    user_id: str
    tag_name: str
    display_name: str
    profile_picture_url: str
    balance: Decimal
    level: int

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "tag_name": self.tag_name,
            "display_name": self.display_name,
            "profile_picture_url": self.profile_picture_url,
            "balance": str(self.balance),
            "level": self.level,
        }


@dataclass
class Leaderboard:
    leaderboard: list[LeaderboardEntry]
    pagination: Pagination
    time_frame: TimeFrame

    def to_dict(self) -> dict:
        return {
            "leaderboard": [e.to_dict() for e in self.leaderboard],
            "pagination": self.pagination.to_dict(),
            "timeFrame": self.time_frame.value,
        }


def balance_view(user_id: str, row: UserPointBalance | None) -> dict:
    """Balance payload for *user_id*, with zero/level-1 defaults when no row exists yet."""
    if row is None:
        return {
            "user_id": user_id,
            "balance": "0",
            "level": MIN_LEVEL,
            "created_at": None,
            "updated_at": None,
        }
    return row.to_dict()
