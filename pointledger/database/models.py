"""
pointledger.database.models — SQLAlchemy 2.0 Data Models
=========================================================

Tables:
- users               — Display metadata owned by the user directory (read-only here)
- point_transactions  — Append-only point ledger, never updated or deleted
- user_point_balances — One running balance + level per user, derived from the ledger
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Exact decimal storage for amounts and balances
POINTS_NUMERIC = Numeric(20, 4)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all pointledger ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PointAction(enum.StrEnum):
    """Direction of a ledger entry; ``amount`` itself is always non-negative."""
    INCREMENT = "increment"
    DECREMENT = "decrement"


# ---------------------------------------------------------------------------
# Users — display metadata joined into leaderboards
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tag_name: Mapped[str | None] = mapped_column(String(64), default=None)
    display_name: Mapped[str | None] = mapped_column(String(100), default=None)
    profile_picture_url: Mapped[str | None] = mapped_column(String(500), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    point_balance: Mapped[UserPointBalance | None] = relationship(
        back_populates="user", uselist=False
    )

    def __repr__(self) -> str:
        return f"<User id={self.id!r} tag={self.tag_name!r}>"


# ---------------------------------------------------------------------------
# PointTransaction — append-only ledger
# ---------------------------------------------------------------------------
class PointTransaction(Base):
    __tablename__ = "point_transactions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(POINTS_NUMERIC, nullable=False)
    action: Mapped[PointAction] = mapped_column(
        Enum(
            PointAction,
            name="point_action",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=PointAction.INCREMENT,
    )
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    metadata_: Mapped[dict] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_point_transactions_user_time", "user_id", "created_at"),
        Index("ix_point_transactions_time_action", "created_at", "action"),
        Index("ix_point_transactions_user_source", "user_id", "source"),
    )

    @property
    def signed_amount(self) -> Decimal:
        """``+amount`` for increments, ``-amount`` for decrements."""
        return self.amount if self.action == PointAction.INCREMENT else -self.amount

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": str(self.amount),
            "action": PointAction(self.action).value,
            "source": self.source,
            "metadata": self.metadata_,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<PointTransaction id={self.id} user={self.user_id!r} "
            f"{self.action} {self.amount} src={self.source}>"
        )


# ---------------------------------------------------------------------------
# UserPointBalance — materialized running total per user
# ---------------------------------------------------------------------------
class UserPointBalance(Base):
    __tablename__ = "user_point_balances"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    balance: Mapped[Decimal] = mapped_column(
        POINTS_NUMERIC, nullable=False, default=Decimal(0)
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship(back_populates="point_balance")

    __table_args__ = (
        Index("ix_user_point_balances_balance", "balance"),
    )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "balance": str(self.balance),
            "level": self.level,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<UserPointBalance user={self.user_id!r} bal={self.balance} lvl={self.level}>"
