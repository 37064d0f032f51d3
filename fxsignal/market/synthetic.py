"""Synthetic market feed — plausible candles and quotes without an API key.

The walk follows a slow sine-wave drift plus uniform noise around the pair's
anchor price, so indicator output looks like a real intraday session.
"""

from datetime import datetime, timezone
from typing import Optional

import numpy as np

from fxsignal.market.models import Candle, ForexQuote
from fxsignal.market.pairs import BASE_PRICES

DEFAULT_CANDLE_COUNT = 200
FIVE_MINUTES_MS = 5 * 60 * 1000


def _volatility(pair: str) -> float:
    return 0.001 if "JPY" in pair else 0.0001


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def generate_candles(
    pair: str,
    count: int = DEFAULT_CANDLE_COUNT,
    interval_ms: int = FIVE_MINUTES_MS,
    rng: Optional[np.random.Generator] = None,
    end_ms: Optional[int] = None,
) -> list[Candle]:
    """Generate *count* OHLC candles ending at *end_ms* (default: now).

    Each candle opens at the previous close, so the series is gap-free and
    ``low <= min(open, close) <= max(open, close) <= high`` always holds.
    """
    if count <= 0:
        return []
    rng = rng or np.random.default_rng()
    end_ms = _now_ms() if end_ms is None else end_ms
    base = BASE_PRICES.get(pair, 1.0)
    vol = _volatility(pair) * base

    # Offsets count down so the sine phase matches a series ending "now"
    offsets = np.arange(count - 1, -1, -1)
    drift = np.sin(offsets * 0.1) * vol
    noise = (rng.random(count) - 0.5) * vol
    changes = drift + noise

    closes = base + np.cumsum(changes)
    opens = np.concatenate(([base], closes[:-1]))
    upper_wicks = rng.random(count) * vol * 0.5
    lower_wicks = rng.random(count) * vol * 0.5
    highs = np.maximum(opens, closes) + upper_wicks
    lows = np.minimum(opens, closes) - lower_wicks
    timestamps = end_ms - offsets * interval_ms

    return [
        Candle(
            timestamp=int(ts),
            open=float(o),
            high=float(h),
            low=float(lo),
            close=float(c),
        )
        for ts, o, h, lo, c in zip(timestamps, opens, highs, lows, closes)
    ]


def generate_quote(
    pair: str,
    rng: Optional[np.random.Generator] = None,
) -> ForexQuote:
    """Generate a quote jittered around the pair's anchor price."""
    rng = rng or np.random.default_rng()
    base = BASE_PRICES.get(pair, 1.0)
    jitter = 0.0002 if "JPY" in pair else 0.00002
    walk = (float(rng.random()) - 0.5) * 2 * jitter * base
    price = base + walk
    spread = 0.02 if "JPY" in pair else 0.00002
    return ForexQuote(
        pair=pair,
        price=price,
        bid=price - spread / 2,
        ask=price + spread / 2,
        timestamp=_now_ms(),
        change=walk,
        change_percent=walk / base * 100,
    )
