"""Configuration management for the TuraPay transfer backend"""

import os


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    """Application configuration"""

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./turapay.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Lipila payment gateway (collections + disbursements)
    LIPILA_API_KEY = os.getenv("LIPILA_API_KEY", "")
    LIPILA_BASE_URL = os.getenv("LIPILA_BASE_URL", "https://api.lipila.dev/api/v1").rstrip("/")
    LIPILA_TIMEOUT_SECONDS = _env_int("LIPILA_TIMEOUT_SECONDS", 20)
    LIPILA_WEBHOOK_SECRET = os.getenv("LIPILA_WEBHOOK_SECRET", "")

    # Public USD-base exchange rate feed
    EXCHANGE_RATE_URL = os.getenv("EXCHANGE_RATE_URL", "https://open.er-api.com/v6/latest/USD")
    EXCHANGE_RATE_TTL_SECONDS = _env_int("EXCHANGE_RATE_TTL_SECONDS", 300)
    DEFAULT_RECEIVER_CURRENCY = os.getenv("DEFAULT_RECEIVER_CURRENCY", "ZMW")
    DEFAULT_COLLECTION_CURRENCY = os.getenv("DEFAULT_COLLECTION_CURRENCY", "ZMW")

    # Status polling / reconciliation bounds
    STATUS_POLL_INTERVAL_SECONDS = _env_int("STATUS_POLL_INTERVAL_SECONDS", 5)
    STATUS_POLL_MAX_ATTEMPTS = _env_int("STATUS_POLL_MAX_ATTEMPTS", 60)
    RECONCILIATION_MAX_ATTEMPTS = _env_int("RECONCILIATION_MAX_ATTEMPTS", 5)
