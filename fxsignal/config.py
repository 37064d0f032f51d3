"""fxsignal — application configuration.

Loads .env variables into a typed config object.
Every variable is optional; malformed values fail fast on startup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from fxsignal.market.pairs import TIMEFRAME_INTERVALS


_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    alpha_vantage_api_key: Optional[str] = None
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    cache_ttl_seconds: float = 60.0
    synthetic_fallback: bool = True
    default_timeframe: str = "M5"
    log_level: str = "INFO"
    http_port: int = 5000

    @property
    def has_api_key(self) -> bool:
        """True when live Alpha Vantage data can be requested."""
        return bool(self.alpha_vantage_api_key)

    @property
    def telegram_configured(self) -> bool:
        """True when both Telegram credentials are present."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got '{raw}'")


def _parse_number(name: str, raw: str, cast):
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be numeric, got '{raw}'") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the variable when a value cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    ttl = _parse_number(
        "CANDLE_CACHE_TTL_SECONDS",
        os.environ.get("CANDLE_CACHE_TTL_SECONDS", "60"),
        float,
    )
    if ttl < 0:
        raise ValueError("CANDLE_CACHE_TTL_SECONDS must be >= 0")

    timeframe = os.environ.get("DEFAULT_TIMEFRAME", "M5").upper()
    if timeframe not in TIMEFRAME_INTERVALS:
        raise ValueError(
            f"DEFAULT_TIMEFRAME must be one of "
            f"{', '.join(TIMEFRAME_INTERVALS)}, got '{timeframe}'"
        )

    return Config(
        alpha_vantage_api_key=os.environ.get("ALPHA_VANTAGE_API_KEY") or None,
        telegram_bot_token=os.environ.get("TELEGRAM_BOT_TOKEN") or None,
        telegram_chat_id=os.environ.get("TELEGRAM_CHAT_ID") or None,
        cache_ttl_seconds=ttl,
        synthetic_fallback=_parse_bool(
            "SYNTHETIC_FALLBACK", os.environ.get("SYNTHETIC_FALLBACK", "true"),
        ),
        default_timeframe=timeframe,
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        http_port=_parse_number(
            "HTTP_PORT", os.environ.get("HTTP_PORT", "5000"), int,
        ),
    )
