from decimal import Decimal

import pytest

from quickpos.errors import InsufficientPayment
from quickpos.services.pricing import (
    bps_to_percent,
    from_cents,
    line_tax_cents,
    percent_to_bps,
    price_cart,
    price_line,
    round_half_up,
    settle_payment,
    to_cents,
)


def test_receipt_line_pen_box():
    line = price_line(1299, 1500, 2)

    assert line.line_total_cents == 2598
    assert line.tax_cents == 390  # 3.897 -> 3.90
    assert line.line_grand_cents == 2988


def test_tax_rounds_half_up_at_the_cent():
    # 10 cents at 5% = 0.5 cent
    assert line_tax_cents(10, 500) == 1
    # 10 cents at 4.9% = 0.49 cent
    assert line_tax_cents(10, 490) == 0
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("3.5")) == 4


def test_tax_is_rounded_per_line_before_summing():
    # 0.05 @ 10% -> 0.005 tax, 0.15 @ 5% -> 0.0075 tax
    lines = [price_line(5, 1000, 1), price_line(15, 500, 1)]
    totals = price_cart(lines)

    assert [line.tax_cents for line in lines] == [1, 1]
    assert totals.subtotal_cents == 20
    # Summing unrounded tax would give 0.0125 -> 0.01
    assert totals.tax_cents == 2
    assert totals.grand_total_cents == 22


def test_cart_totals_reconcile():
    lines = [price_line(1299, 1500, 2), price_line(850, 1500, 3), price_line(4500, 0, 1)]
    totals = price_cart(lines)

    assert totals.subtotal_cents == 2598 + 2550 + 4500
    assert totals.tax_cents == 390 + 383 + 0
    assert totals.grand_total_cents == totals.subtotal_cents + totals.tax_cents


def test_price_line_rejects_non_positive_quantity():
    with pytest.raises(ValueError):
        price_line(100, 1500, 0)


def test_cash_settlement_gives_change():
    settlement = settle_payment("cash", 2988, 5000)
    assert settlement.amount_paid_cents == 5000
    assert settlement.change_cents == 2012


def test_cash_exact_amount_has_no_change():
    assert settle_payment("cash", 2988, 2988).change_cents == 0


def test_cash_underpayment_is_rejected():
    with pytest.raises(InsufficientPayment) as exc:
        settle_payment("cash", 2988, 2987)
    assert exc.value.details["grand_total"] == 29.88


def test_cash_without_amount_is_rejected():
    with pytest.raises(InsufficientPayment):
        settle_payment("cash", 2988, None)


@pytest.mark.parametrize("method", ["card", "bank_transfer"])
def test_non_cash_ignores_tendered_amount(method):
    settlement = settle_payment(method, 2988, 10)
    assert settlement.amount_paid_cents == 2988
    assert settlement.change_cents == 0


def test_unknown_payment_method():
    with pytest.raises(ValueError):
        settle_payment("cheque", 100, 100)


def test_boundary_conversions():
    assert to_cents(Decimal("12.99")) == 1299
    assert to_cents(Decimal("0.005")) == 1
    assert from_cents(2598) == 25.98
    assert percent_to_bps(Decimal("15")) == 1500
    assert percent_to_bps(Decimal("8.25")) == 825
    assert bps_to_percent(1500) == 15
    assert bps_to_percent(825) == 8.25
