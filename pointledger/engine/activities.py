"""
pointledger.engine.activities — Activity catalogue and point values
===================================================================

Every rewardable thing a user can do in the app maps to one ``Activity``.
The amount awarded is fixed per activity; adjust ``POINT_VALUES`` to
retune the economy.
"""

from __future__ import annotations

import enum

__all__ = ["Activity", "POINT_VALUES", "resolve_activity"]


class Activity(enum.StrEnum):
    """Rewardable activities; the value doubles as the ledger ``source`` tag."""
    # Social engagement
    POST_CREATION = "POST_CREATION"
    POST_LIKE = "POST_LIKE"
    POST_COMMENT = "POST_COMMENT"
    USER_FOLLOW = "USER_FOLLOW"

    # Financial activities
    TOKEN_SWAP = "TOKEN_SWAP"
    TOKEN_LAUNCH = "TOKEN_LAUNCH"
    DONATION = "DONATION"

    # Daily engagement
    DAILY_LOGIN = "DAILY_LOGIN"
    PROFILE_COMPLETION = "PROFILE_COMPLETION"

    # Referrals
    REFERRAL_SIGNUP = "REFERRAL_SIGNUP"


POINT_VALUES: dict[Activity, int] = {
    Activity.POST_CREATION: 10,
    Activity.POST_LIKE: 2,
    Activity.POST_COMMENT: 5,
    Activity.USER_FOLLOW: 3,
    Activity.TOKEN_SWAP: 15,
    Activity.TOKEN_LAUNCH: 50,
    Activity.DONATION: 20,
    Activity.DAILY_LOGIN: 5,
    Activity.PROFILE_COMPLETION: 25,
    Activity.REFERRAL_SIGNUP: 100,
}


def resolve_activity(activity: Activity | str | None) -> Activity | None:
    """Return the :class:`Activity` for *activity*, or ``None`` if unknown."""
    if isinstance(activity, Activity):
        return activity
    if not isinstance(activity, str):
        return None
    try:
        return Activity(activity)
    except ValueError:
        return None
