"""
pointledger.constants — Shared Constants & Helpers
===================================================

Single source of truth for the level formula.  Import from here instead
of duplicating thresholds in services, the CLI or reports.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# ---------------------------------------------------------------------------
# Level thresholds — balance strictly below the bound maps to the level
# ---------------------------------------------------------------------------
LEVEL_THRESHOLDS: tuple[tuple[Decimal, int], ...] = (
    (Decimal(100), 1),
    (Decimal(500), 2),
    (Decimal(1000), 3),
    (Decimal(2500), 4),
    (Decimal(5000), 5),
    (Decimal(10000), 6),
    (Decimal(25000), 7),
    (Decimal(50000), 8),
    (Decimal(100000), 9),
)

MIN_LEVEL = 1
MAX_LEVEL = 10

# Scale and integer-digit bound of the Numeric(20, 4) amount and balance columns
POINTS_QUANTUM = Decimal("0.0001")
POINTS_LIMIT = Decimal(10) ** 16


def to_decimal(value: int | float | str | Decimal) -> Decimal:
    """Normalize a plain number, numeric string or Decimal to :class:`Decimal`.

    Floats go through ``str()`` so ``99.99`` becomes ``Decimal("99.99")``
    rather than its binary expansion.

    Raises ``ValueError`` for non-numeric or non-finite input.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric value: {value!r}") from exc
    else:
        raise ValueError(f"Not a numeric value: {value!r}")

    if not result.is_finite():
        raise ValueError(f"Not a finite value: {value!r}")
    return result


# ---------------------------------------------------------------------------
# Leveling formula — THE single canonical implementation
# ---------------------------------------------------------------------------
def calculate_level(balance: int | float | str | Decimal) -> int:
    """Level (1–10) for a point *balance*.

    Pure and total over real balances: negatives map to level 1, anything
    at or above 100 000 maps to level 10.
    """
    amount = to_decimal(balance)
    for bound, level in LEVEL_THRESHOLDS:
        if amount < bound:
            return level
    return MAX_LEVEL


def to_points(value: int | float | str | Decimal) -> Decimal:
    """:func:`to_decimal` rounded half-up to the stored four decimal places.

    Levels must be derived from the value the database will hold, so
    ``"99.99996"`` becomes ``Decimal("100.0000")`` before anything else
    sees it.  Raises ``ValueError`` for values the column cannot hold.
    """
    amount = to_decimal(value)
    if abs(amount) >= POINTS_LIMIT:
        raise ValueError(f"Points value out of range: {value!r}")
    return amount.quantize(POINTS_QUANTUM, rounding=ROUND_HALF_UP)
