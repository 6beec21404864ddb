# Overview: Service-layer operations for the sales dashboard; read-only aggregates over the ledger and catalog.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, Transaction
from ..time_utils import local_date, local_day_bounds, reference_zone, utcnow
from .checkout_service import list_transactions
from .pricing import from_cents


RECENT_LIMIT_MIN = 5
RECENT_LIMIT_MAX = 10


def _transactions_between(start: datetime, end: datetime) -> list[Transaction]:
    return (
        db.session.query(Transaction)
        .filter(Transaction.created_at >= start, Transaction.created_at < end)
        .order_by(Transaction.id.asc())
        .all()
    )


def today_stats(transactions: list[Transaction]) -> dict:
    """
    Count, revenue, tax and profit for a set of transactions.

    Profit uses each product's current cost, not the cost at sale time.
    Lines whose product no longer exists count with cost 0.
    """
    product_ids = {line.product_id for tx in transactions for line in tx.lines}
    costs = {}
    if product_ids:
        rows = db.session.query(Product.id, Product.cost_cents).filter(Product.id.in_(product_ids)).all()
        costs = {row.id: row.cost_cents for row in rows}

    profit_cents = 0
    for tx in transactions:
        for line in tx.lines:
            profit_cents += (line.unit_price_cents - costs.get(line.product_id, 0)) * line.quantity

    return {
        "transactions": len(transactions),
        "revenue": from_cents(sum(tx.grand_total_cents for tx in transactions)),
        "tax": from_cents(sum(tx.tax_cents for tx in transactions)),
        "profit": from_cents(profit_cents),
    }


def all_time_stats() -> dict:
    count, revenue_cents = db.session.query(
        func.count(Transaction.id),
        func.coalesce(func.sum(Transaction.grand_total_cents), 0),
    ).one()
    return {
        "transactions": int(count or 0),
        "revenue": from_cents(int(revenue_cents or 0)),
    }


def top_selling(transactions: list[Transaction], limit: int = 5) -> list[dict]:
    """Quantities per product name, highest first; ties keep first-seen order."""
    quantities: dict[str, int] = {}
    for tx in transactions:
        for line in tx.lines:
            quantities[line.name] = quantities.get(line.name, 0) + line.quantity

    ranked = sorted(quantities.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "qty": qty} for name, qty in ranked[:limit]]


def payment_breakdown(transactions: list[Transaction]) -> list[dict]:
    totals: dict[str, dict] = {}
    for tx in transactions:
        row = totals.setdefault(tx.payment_method, {"count": 0, "total_cents": 0})
        row["count"] += 1
        row["total_cents"] += tx.grand_total_cents

    ranked = sorted(totals.items(), key=lambda item: item[1]["total_cents"], reverse=True)
    return [
        {"method": method, "count": row["count"], "total": from_cents(row["total_cents"])}
        for method, row in ranked
    ]


def low_stock(threshold: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.stock < threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )


def sales_by_day(transactions: list[Transaction], tz) -> list[dict]:
    """Count and revenue per local calendar day, newest day first."""
    days: dict = {}
    for tx in transactions:
        day = local_date(tx.created_at, tz)
        row = days.setdefault(day, {"transactions": 0, "revenue_cents": 0})
        row["transactions"] += 1
        row["revenue_cents"] += tx.grand_total_cents

    return [
        {
            "date": day.isoformat(),
            "transactions": row["transactions"],
            "revenue": from_cents(row["revenue_cents"]),
        }
        for day, row in sorted(days.items(), reverse=True)
    ]


def build_dashboard(now: datetime | None = None) -> dict:
    """
    Dashboard payload, computed on every call.

    "Today" is the current calendar day in POS_TIMEZONE, so a sale from
    late yesterday is excluded even if it is less than 24 hours old.
    """
    config = current_app.config
    tz = reference_zone(config.get("POS_TIMEZONE", "UTC"))
    now = now or utcnow()

    today = local_date(now, tz)
    day_start, day_end = local_day_bounds(today, tz)
    todays = _transactions_between(day_start, day_end)

    trend_days = config.get("SALES_TREND_DAYS", 7)
    trend_start, _ = local_day_bounds(today - timedelta(days=trend_days - 1), tz)
    trend = _transactions_between(trend_start, day_end)

    recent_limit = config.get("DASHBOARD_RECENT_LIMIT", RECENT_LIMIT_MIN)
    recent_limit = max(RECENT_LIMIT_MIN, min(RECENT_LIMIT_MAX, recent_limit))

    return {
        "date": today.isoformat(),
        "timezone": str(tz),
        "today": today_stats(todays),
        "allTime": all_time_stats(),
        "topSelling": top_selling(todays, limit=config.get("DASHBOARD_TOP_SELLING_LIMIT", 5)),
        "paymentBreakdown": payment_breakdown(todays),
        "lowStock": [p.to_dict() for p in low_stock(config.get("LOW_STOCK_THRESHOLD", 20))],
        "salesByDay": sales_by_day(trend, tz),
        "recentTransactions": [tx.to_dict() for tx in list_transactions(limit=recent_limit)],
    }
