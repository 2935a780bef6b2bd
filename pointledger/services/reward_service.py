"""
pointledger.services.reward_service — Best-Effort Activity Rewards
===================================================================

Called by post/like/comment/follow/swap/send handlers **after** their own
work has committed.  Rewarding is a side channel: a bad activity name,
a missing user id or a storage failure is logged and turned into
``None``, never raised back into the handler.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pointledger.database.engine import run_db
from pointledger.database.models import PointAction
from pointledger.engine.activities import POINT_VALUES, Activity, resolve_activity
from pointledger.schemas import CreatePointRequest, LedgerWrite
from pointledger.services.points_service import create_point

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from pointledger.config import PointLedgerConfig

logger = logging.getLogger(__name__)


def award_points(
    engine: Engine,
    user_id: str,
    activity: Activity | str,
    metadata: dict[str, Any] | None = None,
    *,
    config: PointLedgerConfig | None = None,
) -> LedgerWrite | None:
    """Award the fixed point value of *activity* to *user_id*.

    Returns the ledger/balance pair, or ``None`` when nothing was awarded.
    """
    if not user_id:
        logger.error("Cannot award points: no user id provided (activity=%s)", activity)
        return None

    resolved = resolve_activity(activity)
    if resolved is None:
        logger.error("Unknown activity type %r for user %s", activity, user_id)
        return None

    amount = POINT_VALUES[resolved]
    try:
        request = CreatePointRequest(
            user_id=user_id,
            amount=amount,
            action=PointAction.INCREMENT,
            source=resolved.value,
            metadata=metadata or {},
        )
        result = create_point(engine, request, config=config)
    except Exception:
        logger.exception("Error awarding %s points to %s for %s", amount, user_id, resolved)
        return None

    logger.info("Awarded %d points to user %s for %s", amount, user_id, resolved)
    return result


async def award_points_async(
    engine: Engine,
    user_id: str,
    activity: Activity | str,
    metadata: dict[str, Any] | None = None,
    *,
    config: PointLedgerConfig | None = None,
) -> LedgerWrite | None:
    """:func:`award_points` on a worker thread, for asyncio callers."""
    return await run_db(award_points, engine, user_id, activity, metadata, config=config)
