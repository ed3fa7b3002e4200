from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # SQLite DB stored in backend/instance/shopsavvy.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopsavvy.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # First run seeds the demo shops/products/inventory/sales
    LEDGER_SEED_DEMO_DATA = _env_bool("LEDGER_SEED_DEMO_DATA", True)

    # Upper bound on a single persistence flush; exceeding it is an IO failure
    LEDGER_FLUSH_TIMEOUT_SECONDS = float(os.environ.get("LEDGER_FLUSH_TIMEOUT_SECONDS", "5"))
    LEDGER_FLUSH_RETRY_ATTEMPTS = int(os.environ.get("LEDGER_FLUSH_RETRY_ATTEMPTS", "3"))

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "20"))
    EXPIRY_WARNING_DAYS = int(os.environ.get("EXPIRY_WARNING_DAYS", "7"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
