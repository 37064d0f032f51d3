"""Pair accuracy tiers and trading-session classification — pure functions.

Sessions are evaluated on the wall clock at a fixed UTC offset
(``SESSION_UTC_OFFSET_HOURS``, East Africa Time).  No daylight-saving
adjustment is applied.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

SESSION_UTC_OFFSET_HOURS = 3
SESSION_TZ = timezone(timedelta(hours=SESSION_UTC_OFFSET_HOURS))

MORNING_START = 7   # inclusive
AFTERNOON_START = 12
EVENING_START = 17

PAIR_TIERS: dict[str, str] = {
    "EUR/USD": "HIGH",
    "GBP/USD": "HIGH",
    "USD/JPY": "HIGH",
    "AUD/USD": "HIGH",
    "USD/CHF": "MEDIUM",
    "USD/CAD": "MEDIUM",
    "NZD/USD": "MEDIUM",
    "EUR/GBP": "MEDIUM",
    "EUR/JPY": "MEDIUM",
    "GBP/JPY": "LOW",
    "AUD/JPY": "LOW",
    "EUR/AUD": "LOW",
}

# Sessions with London or New York liquidity
HOT_ZONE_SESSIONS = frozenset({"MORNING", "AFTERNOON"})


def get_pair_tier(pair: str) -> str:
    """Return ``"HIGH"``, ``"MEDIUM"`` or ``"LOW"``; unlisted pairs are LOW."""
    return PAIR_TIERS.get(pair, "LOW")


def session_for_hour(local_hour: int) -> str:
    """Map an hour in session-local time (0–23) to a session label.

    [07:00, 12:00) → MORNING, [12:00, 17:00) → AFTERNOON, else EVENING.
    """
    if MORNING_START <= local_hour < AFTERNOON_START:
        return "MORNING"
    if AFTERNOON_START <= local_hour < EVENING_START:
        return "AFTERNOON"
    return "EVENING"


def get_session(now: Optional[datetime] = None) -> str:
    """Session label for *now* (default: current UTC time).

    Naive datetimes are treated as UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return session_for_hour(now.astimezone(SESSION_TZ).hour)


def is_hot_zone(session: str) -> bool:
    return session in HOT_ZONE_SESSIONS


def is_strict_mode(session: str, pair_tier: str) -> bool:
    """Strict mode: afternoon session on a MEDIUM or LOW accuracy pair."""
    return session == "AFTERNOON" and pair_tier in ("MEDIUM", "LOW")
