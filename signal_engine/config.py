"""Signal engine — application configuration.

Loads .env variables into a typed config object.  Every variable is
optional; malformed numeric values fail fast on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    db_path: str
    log_level: str
    cache_ttl_seconds: float
    api_host: str
    api_port: int
    large_tx_alert_count: int


def _read_number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(
            f"Environment variable {name} must be a {cast.__name__}, got {raw!r}"
        ) from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the variable when a numeric value cannot be
    parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    cache_ttl = _read_number("CACHE_TTL_SECONDS", "300", float)
    if cache_ttl < 0:
        raise ValueError(f"CACHE_TTL_SECONDS must be >= 0, got {cache_ttl}")

    return Config(
        db_path=os.environ.get("SIGNAL_DB_PATH", "data/signals.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        cache_ttl_seconds=cache_ttl,
        api_host=os.environ.get("API_HOST", "0.0.0.0"),
        api_port=_read_number("API_PORT", "8080", int),
        large_tx_alert_count=_read_number("LARGE_TX_ALERT_COUNT", "50", int),
    )
