"""
pointledger.services.points_service — Ledger Writer & Balance Reads
====================================================================

``create_point`` is the **only** write path into the ledger/balance pair.
Each call is one database transaction:

  1. Insert the ``point_transactions`` row.
  2. Lock the user's ``user_point_balances`` row (``SELECT … FOR UPDATE``).
  3. Apply ``+amount`` / ``-amount`` and recompute the level.
  4. Commit both, or neither.

Inserting the ledger row first means SQLite takes its write lock before
the balance is read, so concurrent writers serialize there; PostgreSQL
serializes on the row lock.  Two first-time writers for the same user
can both miss the balance row; the loser's insert fails on the primary
key and the whole unit is retried.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Engine, case, func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from pointledger.config import PointLedgerConfig
from pointledger.constants import calculate_level
from pointledger.database.models import PointAction, PointTransaction, UserPointBalance
from pointledger.database.retry import run_with_retry
from pointledger.schemas import (
    CreatePointRequest,
    LedgerWrite,
    Pagination,
    PointHistory,
    PointHistoryQuery,
    UpdateUserPointRequest,
)

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = PointLedgerConfig()

# +amount for increments, -amount for decrements (SQL side)
SIGNED_AMOUNT = case(
    (PointTransaction.action == PointAction.INCREMENT, PointTransaction.amount),
    else_=-PointTransaction.amount,
)


class BalanceConflictError(Exception):
    """Another writer created the user's balance row first; retry the unit."""


# ---------------------------------------------------------------------------
# Ledger writer
# ---------------------------------------------------------------------------
def _lock_balance(session: Session, user_id: str) -> UserPointBalance | None:
    return session.scalar(
        select(UserPointBalance)
        .where(UserPointBalance.user_id == user_id)
        .with_for_update()
    )


def _write_ledger_entry(engine: Engine, request: CreatePointRequest) -> LedgerWrite:
    with Session(engine, expire_on_commit=False) as session:
        point = PointTransaction(
            user_id=request.user_id,
            amount=request.amount,
            action=request.action,
            source=request.source,
            # JSON-safe copy: Decimals become strings, datetimes ISO-8601
            metadata_=request.model_dump(mode="json", include={"metadata"})["metadata"],
            created_at=datetime.now(UTC),
        )
        session.add(point)
        # Constraint errors on the ledger row itself are not conflicts
        session.flush()

        delta = point.signed_amount
        user_point = _lock_balance(session, request.user_id)

        if user_point is not None:
            user_point.balance = Decimal(user_point.balance) + delta
            user_point.level = calculate_level(user_point.balance)
        else:
            user_point = UserPointBalance(
                user_id=request.user_id,
                balance=delta,
                level=calculate_level(delta),
            )
            session.add(user_point)
            try:
                session.flush()
            except IntegrityError as exc:
                raise BalanceConflictError(request.user_id) from exc

        session.commit()
        session.refresh(point)
        session.refresh(user_point)
        session.expunge_all()
        return LedgerWrite(point=point, user_point=user_point)


def create_point(
    engine: Engine,
    request: CreatePointRequest | dict[str, Any],
    *,
    config: PointLedgerConfig | None = None,
) -> LedgerWrite:
    """Append one ledger entry and apply it to the user's balance atomically.

    *request* may be a :class:`CreatePointRequest` or a plain dict, which
    is validated (``pydantic.ValidationError`` on bad input).

    Conflicting concurrent writes are retried as a whole unit up to
    ``config.ledger_max_attempts`` times.  Storage errors propagate; this
    is the authoritative write path and never fails silently.
    """
    if not isinstance(request, CreatePointRequest):
        request = CreatePointRequest.model_validate(request)
    cfg = config or _DEFAULT_CONFIG

    result = run_with_retry(
        lambda: _write_ledger_entry(engine, request),
        operation_name="points.create_point",
        max_attempts=cfg.ledger_max_attempts,
        initial_backoff_ms=cfg.ledger_retry_backoff_ms,
        retriable=(BalanceConflictError, OperationalError),
    )
    logger.debug(
        "Ledger %s %s %s for %s → balance=%s level=%d",
        result.point.id, request.action, request.amount, request.user_id,
        result.user_point.balance, result.user_point.level,
    )
    return result


# ---------------------------------------------------------------------------
# Administrative balance override
# ---------------------------------------------------------------------------
def update_user_points(
    engine: Engine,
    request: UpdateUserPointRequest | dict[str, Any],
) -> UserPointBalance:
    """Upsert a balance row directly, bypassing the ledger.

    Use with caution: the balance stops matching the ledger until the
    reconciliation job corrects it.  When only ``balance`` is given the
    level is recomputed from it; an explicit ``level`` wins.
    """
    if not isinstance(request, UpdateUserPointRequest):
        request = UpdateUserPointRequest.model_validate(request)

    with Session(engine, expire_on_commit=False) as session:
        user_point = _lock_balance(session, request.user_id)
        if user_point is None:
            user_point = UserPointBalance(
                user_id=request.user_id,
                balance=request.balance if request.balance is not None else Decimal(0),
                level=1,
            )
            session.add(user_point)

        if request.balance is not None:
            user_point.balance = request.balance
        user_point.level = (
            request.level if request.level is not None else calculate_level(user_point.balance)
        )

        session.commit()
        session.refresh(user_point)
        session.expunge(user_point)

    logger.warning(
        "Balance for %s overridden outside the ledger: balance=%s level=%d",
        request.user_id, user_point.balance, user_point.level,
    )
    return user_point


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_user_points(engine: Engine, user_id: str) -> UserPointBalance | None:
    """The user's balance row, or ``None`` if they never earned or spent points."""
    if not user_id:
        return None
    with Session(engine) as session:
        user_point = session.get(UserPointBalance, user_id)
        if user_point is not None:
            session.expunge(user_point)
        return user_point


def get_point_history(
    engine: Engine,
    query: PointHistoryQuery | dict[str, Any],
    *,
    config: PointLedgerConfig | None = None,
) -> PointHistory:
    """One page of a user's ledger, newest first, plus the filtered total.

    ``limit`` is capped at ``config.history_max_limit``.
    """
    if not isinstance(query, PointHistoryQuery):
        query = PointHistoryQuery.model_validate(query)
    cap = (config or _DEFAULT_CONFIG).history_max_limit
    if query.limit > cap:
        query = query.model_copy(update={"limit": cap})

    conditions = [PointTransaction.user_id == query.user_id]
    if query.source:
        conditions.append(PointTransaction.source == query.source)
    if query.start_date is not None:
        conditions.append(PointTransaction.created_at >= query.start_date)
    if query.end_date is not None:
        conditions.append(PointTransaction.created_at <= query.end_date)

    with Session(engine) as session:
        total = session.scalar(
            select(func.count()).select_from(PointTransaction).where(*conditions)
        ) or 0

        points = list(
            session.scalars(
                select(PointTransaction)
                .where(*conditions)
                .order_by(PointTransaction.created_at.desc(), PointTransaction.id.desc())
                .offset(query.offset)
                .limit(query.limit)
            ).all()
        )
        session.expunge_all()

    return PointHistory(
        points=points,
        pagination=Pagination(total=total, offset=query.offset, limit=query.limit),
    )


def ledger_balance(session: Session, user_id: str) -> Decimal:
    """Signed sum of the user's ledger, i.e. what their balance should be."""
    total = session.scalar(
        select(func.coalesce(func.sum(SIGNED_AMOUNT), 0)).where(
            PointTransaction.user_id == user_id
        )
    )
    return Decimal(str(total)) if total is not None else Decimal(0)
