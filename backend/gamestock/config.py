# backend/gamestock/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/gamestock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///gamestock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Flat fee charged on trade-up and even trades (PHP 200.00)
    TRADE_FEE_CENTS = int(os.environ.get("TRADE_FEE_CENTS", "20000"))

    # Per-variant sanity ceiling for stock counters
    STOCK_CEILING = int(os.environ.get("STOCK_CEILING", "9999"))

    # "clamp": unchecked decrements floor at zero (logged + audited)
    # "strict": unchecked over-deduction raises InsufficientStock
    STOCK_REVERSAL_POLICY = os.environ.get("STOCK_REVERSAL_POLICY", "clamp")

    RETRY_ATTEMPTS = int(os.environ.get("RETRY_ATTEMPTS", "3"))
    RETRY_BACKOFF_BASE = float(os.environ.get("RETRY_BACKOFF_BASE", "0.1"))
