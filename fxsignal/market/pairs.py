"""Instrument metadata — the configured pair table and timeframe mapping."""

from fxsignal.errors import UnknownPairError, UnknownTimeframeError


FOREX_PAIRS: list[str] = [
    "EUR/USD", "GBP/USD", "USD/JPY", "USD/CHF",
    "AUD/USD", "USD/CAD", "NZD/USD", "EUR/GBP",
    "EUR/JPY", "GBP/JPY", "AUD/JPY", "EUR/AUD",
]

PAIR_CURRENCIES: dict[str, tuple[str, str]] = {
    pair: (pair[:3], pair[4:]) for pair in FOREX_PAIRS
}

# Anchor prices for the synthetic feed
BASE_PRICES: dict[str, float] = {
    "EUR/USD": 1.0850,
    "GBP/USD": 1.2650,
    "USD/JPY": 149.50,
    "USD/CHF": 0.8850,
    "AUD/USD": 0.6550,
    "USD/CAD": 1.3650,
    "NZD/USD": 0.6050,
    "EUR/GBP": 0.8580,
    "EUR/JPY": 162.20,
    "GBP/JPY": 189.10,
    "AUD/JPY": 97.90,
    "EUR/AUD": 1.6560,
}

# H4 reuses 60-minute data: the intraday feed has no 4-hour granularity,
# so H4 signals are computed on H1 candles.
TIMEFRAME_INTERVALS: dict[str, str] = {
    "M1": "1min",
    "M5": "5min",
    "M15": "15min",
    "M30": "30min",
    "H1": "60min",
    "H4": "60min",
}

TIMEFRAME_MINUTES: dict[str, int] = {
    "M1": 1,
    "M5": 5,
    "M15": 15,
    "M30": 30,
    "H1": 60,
    "H4": 240,
}

VALID_INTERVALS = frozenset(TIMEFRAME_INTERVALS.values())

JPY_PIP = 0.01
DEFAULT_PIP = 0.0001


def normalize_pair(raw: str) -> str:
    """Return the canonical ``"EUR/USD"`` spelling of *raw*.

    Accepts ``"EUR/USD"``, ``"EUR_USD"``, ``"eurusd"`` and similar.
    Raises ``UnknownPairError`` when the result is not a configured pair.
    """
    cleaned = raw.strip().upper().replace("_", "/").replace("-", "/")
    if "/" not in cleaned and len(cleaned) == 6:
        cleaned = f"{cleaned[:3]}/{cleaned[3:]}"
    if cleaned not in PAIR_CURRENCIES:
        raise UnknownPairError(raw)
    return cleaned


def split_pair(pair: str) -> tuple[str, str]:
    """Return ``(from_currency, to_currency)`` for a configured pair."""
    try:
        return PAIR_CURRENCIES[pair]
    except KeyError:
        raise UnknownPairError(pair) from None


def pip_value(pair: str) -> float:
    """Size of one pip: 0.01 for JPY-quoted pairs, 0.0001 otherwise."""
    return JPY_PIP if "JPY" in pair else DEFAULT_PIP


def interval_for_timeframe(timeframe: str) -> str:
    """Map a timeframe label (``"M5"``) to a data-source interval (``"5min"``)."""
    try:
        return TIMEFRAME_INTERVALS[timeframe.upper()]
    except KeyError:
        raise UnknownTimeframeError(timeframe) from None
