"""
pointledger.config — YAML Configuration Loader
===============================================

Reads ``config.yaml`` for **infrastructure-only** settings (page sizes,
ledger retry tuning).  The database DSN is a secret and comes from the
``DATABASE_URL`` environment variable instead.

Usage::

    from pointledger.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.leaderboard_max_limit) # 100
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PointLedgerConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    service_name: str = "pointledger"

    # Read paths
    leaderboard_default_limit: int = 10
    leaderboard_max_limit: int = 100
    history_default_limit: int = 20
    history_max_limit: int = 200

    # Ledger writer
    ledger_max_attempts: int = 3  # Includes the first attempt
    ledger_retry_backoff_ms: int = 50


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PointLedgerConfig:
    """Read *path* and return a :class:`PointLedgerConfig` instance.

    Keys missing from the file fall back to the dataclass defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a numeric setting is not a positive integer.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = PointLedgerConfig()
    leaderboard = raw.get("leaderboard") or {}
    history = raw.get("history") or {}
    ledger = raw.get("ledger") or {}

    cfg = PointLedgerConfig(
        service_name=raw.get("service_name", defaults.service_name),
        leaderboard_default_limit=int(
            leaderboard.get("default_limit", defaults.leaderboard_default_limit)
        ),
        leaderboard_max_limit=int(
            leaderboard.get("max_limit", defaults.leaderboard_max_limit)
        ),
        history_default_limit=int(
            history.get("default_limit", defaults.history_default_limit)
        ),
        history_max_limit=int(history.get("max_limit", defaults.history_max_limit)),
        ledger_max_attempts=int(ledger.get("max_attempts", defaults.ledger_max_attempts)),
        ledger_retry_backoff_ms=int(
            ledger.get("retry_backoff_ms", defaults.ledger_retry_backoff_ms)
        ),
    )

    for name in (
        "leaderboard_default_limit",
        "leaderboard_max_limit",
        "history_default_limit",
        "history_max_limit",
        "ledger_max_attempts",
    ):
        if getattr(cfg, name) < 1:
            raise ValueError(f"{name} must be a positive integer, got {getattr(cfg, name)}")
    if cfg.ledger_retry_backoff_ms < 0:
        raise ValueError("ledger_retry_backoff_ms must not be negative")

    return cfg
