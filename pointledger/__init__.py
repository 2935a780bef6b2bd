"""
pointledger — Points Ledger & Leaderboard Engine for a SocialFi backend
========================================================================
Records every point award in an append-only ledger, keeps a per-user
running balance and level consistent with it, and answers balance,
history and leaderboard queries for the rest of the application.

Package layout::

    pointledger/
    ├── __main__.py        # click CLI (init-db, award, leaderboard, ...)
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Level thresholds + calculate_level
    ├── schemas.py         # Pydantic request DTOs + result dataclasses
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── retry.py       # Whole-transaction retry with backoff
    │   └── models.py      # users, point_transactions, user_point_balances
    ├── engine/
    │   ├── activities.py  # Activity enum + POINT_VALUES table
    │   └── timeframes.py  # Leaderboard windows (all_time / weekly / monthly)
    └── services/
        ├── points_service.py         # Ledger writer + balance/history reads
        ├── reward_service.py         # Best-effort activity rewards
        ├── leaderboard_service.py    # Ranked lists per time window
        └── reconciliation_service.py # Ledger ↔ balance drift check
"""

__version__ = "0.1.0"
