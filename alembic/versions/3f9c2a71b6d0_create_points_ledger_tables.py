"""Create users, point_transactions and user_point_balances

Revision ID: 3f9c2a71b6d0
Revises:
Create Date: 2026-10-19 09:12:41.118204

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f9c2a71b6d0'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

point_action = sa.Enum("increment", "decrement", name="point_action")


def upgrade() -> None:
    """Ledger, balance aggregate and the user display table they join."""

    # --- users (owned by the user directory; only created on a bare database) ---
    if not sa.inspect(op.get_bind()).has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(64), primary_key=True),
            sa.Column("tag_name", sa.String(64), nullable=True),
            sa.Column("display_name", sa.String(100), nullable=True),
            sa.Column("profile_picture_url", sa.String(500), nullable=True),
            sa.Column(
                "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
            ),
        )

    # --- point_transactions (append-only) ---
    op.create_table(
        "point_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("amount", sa.Numeric(20, 4), nullable=False),
        sa.Column("action", point_action, nullable=False),
        sa.Column("source", sa.String(50), nullable=False),
        sa.Column(
            "metadata",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            nullable=False, server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_point_transactions_user_time", "point_transactions", ["user_id", "created_at"],
    )
    op.create_index(
        "ix_point_transactions_time_action", "point_transactions", ["created_at", "action"],
    )
    op.create_index(
        "ix_point_transactions_user_source", "point_transactions", ["user_id", "source"],
    )

    # --- user_point_balances (one row per user) ---
    op.create_table(
        "user_point_balances",
        sa.Column(
            "user_id", sa.String(64),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("balance", sa.Numeric(20, 4), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_user_point_balances_balance", "user_point_balances", ["balance"],
    )


def downgrade() -> None:
    op.drop_index("ix_user_point_balances_balance", table_name="user_point_balances")
    op.drop_table("user_point_balances")
    op.drop_index("ix_point_transactions_user_source", table_name="point_transactions")
    op.drop_index("ix_point_transactions_time_action", table_name="point_transactions")
    op.drop_index("ix_point_transactions_user_time", table_name="point_transactions")
    op.drop_table("point_transactions")
    point_action.drop(op.get_bind(), checkfirst=True)
    # users belongs to the user directory and is left in place
