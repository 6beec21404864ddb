# Overview: Pure pricing functions for line totals, tax, cart totals and payment settlement.

"""
Pricing engine.

All amounts are integer cents and tax rates integer basis points
(1500 = 15%). Nothing here touches the database or the request.

Rounding rules:
- line tax is rounded half-up to the cent per line, before summing
- subtotal is the exact sum of unit_price * quantity
- grand total = subtotal + tax total
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from ..errors import InsufficientPayment


PAYMENT_CASH = "cash"
PAYMENT_METHODS = ("cash", "card", "bank_transfer")

_BPS_PER_PERCENT = 100
_BPS_PER_UNIT = 10_000


def round_half_up(value: Decimal) -> int:
    """Round a Decimal number of cents to a whole cent, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(amount: Decimal) -> int:
    return round_half_up(amount * 100)


def from_cents(cents: int | None) -> float | None:
    """Serialize cents as a 2-place decimal number for JSON."""
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


def percent_to_bps(percent: Decimal) -> int:
    return round_half_up(percent * _BPS_PER_PERCENT)


def bps_to_percent(bps: int | None) -> float | int | None:
    if bps is None:
        return None
    pct = Decimal(bps) / _BPS_PER_PERCENT
    # 1500 -> 15, 825 -> 8.25
    return int(pct) if pct == pct.to_integral_value() else float(pct)


@dataclass(frozen=True)
class LinePrice:
    unit_price_cents: int
    quantity: int
    tax_rate_bps: int
    line_total_cents: int
    tax_cents: int

    @property
    def line_grand_cents(self) -> int:
        return self.line_total_cents + self.tax_cents


@dataclass(frozen=True)
class CartTotals:
    subtotal_cents: int
    tax_cents: int
    grand_total_cents: int


@dataclass(frozen=True)
class Settlement:
    payment_method: str
    amount_paid_cents: int
    change_cents: int


def line_tax_cents(line_total_cents: int, tax_rate_bps: int) -> int:
    return round_half_up(Decimal(line_total_cents) * tax_rate_bps / _BPS_PER_UNIT)


def price_line(unit_price_cents: int, tax_rate_bps: int, quantity: int) -> LinePrice:
    if quantity <= 0:
        raise ValueError("quantity must be > 0")
    line_total = unit_price_cents * quantity
    return LinePrice(
        unit_price_cents=unit_price_cents,
        quantity=quantity,
        tax_rate_bps=tax_rate_bps,
        line_total_cents=line_total,
        tax_cents=line_tax_cents(line_total, tax_rate_bps),
    )


def price_cart(lines: Iterable[LinePrice]) -> CartTotals:
    subtotal = 0
    tax_total = 0
    for line in lines:
        subtotal += line.line_total_cents
        tax_total += line.tax_cents
    return CartTotals(
        subtotal_cents=subtotal,
        tax_cents=tax_total,
        grand_total_cents=subtotal + tax_total,
    )


def settle_payment(payment_method: str, grand_total_cents: int, amount_paid_cents: int | None) -> Settlement:
    """
    Cash must cover the total and gets change back.
    Card and bank transfer are charged exactly the total; any tendered
    amount from the client is ignored.
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValueError(f"Unknown payment method: {payment_method}")

    if payment_method != PAYMENT_CASH:
        return Settlement(payment_method, grand_total_cents, 0)

    if amount_paid_cents is None:
        raise InsufficientPayment(
            "Amount paid is required for cash payments",
            details={"grand_total": from_cents(grand_total_cents)},
        )
    if amount_paid_cents < grand_total_cents:
        raise InsufficientPayment(
            "Insufficient payment",
            details={
                "grand_total": from_cents(grand_total_cents),
                "amount_paid": from_cents(amount_paid_cents),
            },
        )
    return Settlement(payment_method, amount_paid_cents, amount_paid_cents - grand_total_cents)
