"""Currency helpers for the store.

Internal storage unit: rupees as ``Decimal`` with two decimal places.
Gateway unit: paise (smallest INR unit, 100 paise = ₹1), always ``int``.

Conversion chain
----------------
Rupees × 100 → Paise
Paise  ÷ 100 → Rupees
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ─── constants ───────────────────────────────────────────────────────────────

PAISE_PER_RUPEE: int = 100
CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


# ─── conversion helpers ───────────────────────────────────────────────────────


def to_decimal(value: Number) -> Decimal:
    """Coerce a number to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Round to the nearest paisa, halves away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def rupees_to_paise(rupees: Number) -> int:
    """Convert rupees to paise (round half-up). ₹1 = 100 paise."""
    return int(round_money(rupees) * PAISE_PER_RUPEE)


def paise_to_rupees(paise: int) -> Decimal:
    """Convert paise to rupees. 100 paise = ₹1."""
    return round_money(Decimal(paise) / PAISE_PER_RUPEE)


def format_inr(amount: Number) -> str:
    """Format an amount for display, e.g. ``₹1,234.50``."""
    return f"₹{round_money(amount):,.2f}"
