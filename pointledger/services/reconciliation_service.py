"""
pointledger.services.reconciliation_service — Balance Reconciliation
=====================================================================

Weekly (or ad-hoc) job that validates ``user_point_balances`` against the
raw ``point_transactions`` ledger.

How it works:
    1. Sum the signed ledger amounts grouped by ``user_id``.
    2. Compare against the stored balance and check the stored level is
       ``calculate_level(balance)``.
    3. With ``fix=True``, overwrite drifted rows (and create missing ones)
       with the ledger-derived values.
    4. Log all corrections for audit.

Drift should only appear after a manual ``update_user_points`` override
or an out-of-band database edit; ``create_point`` keeps both tables in
lock-step.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Engine, func, select

from pointledger.constants import calculate_level
from pointledger.database.engine import get_session
from pointledger.database.models import PointTransaction, UserPointBalance
from pointledger.services.points_service import SIGNED_AMOUNT

logger = logging.getLogger(__name__)


def reconcile_balances(engine: Engine, *, fix: bool = False) -> dict:
    """Validate every balance row against the ledger; optionally correct drift.

    Returns ``{"checked": N, "mismatched": M, "corrected": K,
    "corrections": [...], "timestamp": ...}``.
    """
    corrections: list[dict] = []
    corrected = 0

    with get_session(engine) as session:
        # Ground truth: signed sum per user from the ledger
        truth_rows = session.execute(
            select(
                PointTransaction.user_id,
                func.sum(SIGNED_AMOUNT).label("actual"),
            ).group_by(PointTransaction.user_id)
        ).all()
        truth_map: dict[str, Decimal] = {
            row.user_id: Decimal(str(row.actual or 0)) for row in truth_rows
        }

        balance_map: dict[str, UserPointBalance] = {
            b.user_id: b for b in session.scalars(select(UserPointBalance)).all()
        }

        # Balance rows with no ledger entries should be zero
        user_ids = sorted(set(truth_map) | set(balance_map))
        for user_id in user_ids:
            actual = truth_map.get(user_id, Decimal(0))
            row = balance_map.get(user_id)
            stored = Decimal(str(row.balance)) if row is not None else None
            expected_level = calculate_level(actual)

            if row is not None and stored == actual and row.level == expected_level:
                continue

            corrections.append({
                "user_id": user_id,
                "stored": str(stored) if stored is not None else None,
                "actual": str(actual),
                "stored_level": row.level if row is not None else None,
                "expected_level": expected_level,
            })

            if not fix:
                continue
            if row is None:
                session.add(UserPointBalance(
                    user_id=user_id, balance=actual, level=expected_level,
                ))
            else:
                row.balance = actual
                row.level = expected_level
            corrected += 1

    if corrections:
        logger.warning(
            "Balance reconciliation: %d/%d balances drifted (corrected %d): %s",
            len(corrections), len(user_ids), corrected, corrections,
        )
    else:
        logger.info("Balance reconciliation: all %d balances match", len(user_ids))

    return {
        "checked": len(user_ids),
        "mismatched": len(corrections),
        "corrected": corrected,
        "corrections": corrections,
        "timestamp": datetime.now(UTC).isoformat(),
    }
