# backend/quickpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/quickpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///quickpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Reference time zone for "today" on the dashboard and daily grouping
    POS_TIMEZONE = os.environ.get("POS_TIMEZONE", "UTC")

    # Dashboard
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "20"))
    DASHBOARD_TOP_SELLING_LIMIT = 5
    DASHBOARD_RECENT_LIMIT = int(os.environ.get("DASHBOARD_RECENT_LIMIT", "5"))
    SALES_TREND_DAYS = 7

    # Invoice numbering: INV-01001, INV-01002, ...
    INVOICE_PREFIX = "INV"
    INVOICE_PAD = 5
    INVOICE_SEQUENCE_START = int(os.environ.get("INVOICE_SEQUENCE_START", "1001"))

    CHECKOUT_RETRY_ATTEMPTS = int(os.environ.get("CHECKOUT_RETRY_ATTEMPTS", "3"))
