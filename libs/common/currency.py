"""Money helpers for Cementflow.

Storage unit: Naira as ``Decimal`` with two places (kobo precision),
persisted as ``Numeric(12, 2)``.
API unit: the same Decimal, serialised by pydantic.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

# ─── constants ───────────────────────────────────────────────────────────────

ZERO = Decimal("0.00")
_CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


# ─── helpers ─────────────────────────────────────────────────────────────────


def to_money(value: Number | None) -> Decimal:
    """Coerce ``value`` to a two-place Decimal (round half-up).

    Floats go through ``str`` so 0.1 stays 0.10 instead of its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def sum_money(values: Iterable[Number]) -> Decimal:
    """Add amounts exactly, then quantize once."""
    total = Decimal("0")
    for value in values:
        total += to_money(value)
    return to_money(total)


def format_naira(amount: Number) -> str:
    """Display form, e.g. ``₦15,000.00``."""
    return f"₦{to_money(amount):,.2f}"
