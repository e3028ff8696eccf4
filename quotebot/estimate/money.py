"""Money arithmetic for estimates.

All amounts are integers in the currency's minor unit (KRW has no
subunit in practice). Rates are applied with Decimal and rounded half-up
so the summary never depends on binary float artefacts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from quotebot.estimate.models import EstimateDocument, LineItem

CURRENCY_SYMBOL = "₩"

# Quantities and prices with more digits than this are treated as junk
MAX_AMOUNT_DIGITS = 15


@dataclass(frozen=True)
class EstimateSummary:
    subtotal: int
    discount_amount: int
    discounted_subtotal: int
    tax: int
    total: int


def coerce_amount(value) -> int:
    """Numeric coercion for quantities and prices: junk or negatives -> 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if 0 < value < 10 ** MAX_AMOUNT_DIGITS else 0
    try:
        number = Decimal(str(value).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        return 0
    if not number.is_finite() or number <= 0 or number.adjusted() >= MAX_AMOUNT_DIGITS:
        return 0
    return int(number)


def coerce_rate(value, upper: float) -> float:
    """Coerce a rate to a float within [0, upper]; junk -> 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        rate = float(str(value).strip().rstrip("%"))
    except ValueError:
        return 0.0
    if rate != rate or rate < 0:  # NaN or negative
        return 0.0
    return min(rate, upper)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def subtotal(items: Iterable[LineItem]) -> int:
    return sum(item.quantity * item.unit_price for item in items)


def discount(subtotal_amount: int, rate: float) -> int:
    """Discount for a percentage rate (10 == 10%)."""
    return _round_half_up(Decimal(subtotal_amount) * Decimal(str(rate)) / Decimal(100))


def tax(discounted_subtotal: int, rate: float) -> int:
    """Tax for a fractional rate (0.1 == 10%)."""
    return _round_half_up(Decimal(discounted_subtotal) * Decimal(str(rate)))


def total(discounted_subtotal: int, tax_amount: int) -> int:
    return discounted_subtotal + tax_amount


def summarize(doc: EstimateDocument) -> EstimateSummary:
    sub = subtotal(doc.items)
    disc = discount(sub, doc.discount_rate)
    discounted = sub - disc
    tax_amount = tax(discounted, doc.tax_rate)
    return EstimateSummary(
        subtotal=sub,
        discount_amount=disc,
        discounted_subtotal=discounted,
        tax=tax_amount,
        total=total(discounted, tax_amount),
    )


def format_currency(amount: int) -> str:
    """1234567 -> '₩1,234,567'"""
    return f"{CURRENCY_SYMBOL}{amount:,}"


def parse_currency(text: str) -> int:
    """Inverse of format_currency for strings it produced."""
    cleaned = re.sub(r"[^\d-]", "", text or "")
    return int(cleaned) if cleaned not in ("", "-") else 0


def format_rate(rate: float) -> str:
    """Percent label without trailing zeros: 0.1 -> '10', 0.075 -> '7.5'."""
    pct = Decimal(str(rate)) * 100
    return format(pct.normalize(), "f")
