"""Technical indicators — SMA, EMA, RSI, MACD, Bollinger, Stochastic, ATR, ADX,
Supertrend. Pure functions, no I/O.

Every indicator degrades to a defined value on short input instead of
raising; only an empty series is an error.
"""

import math

from fxsignal.market.models import Candle
from fxsignal.strategy.models import (
    BollingerValues,
    MacdValues,
    StochasticValues,
    SupertrendValues,
)


def _require_data(values: list, what: str = "price") -> None:
    if not values:
        raise ValueError(f"Need at least 1 {what}, got 0")


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(prices: list[float], period: int) -> float:
    """Simple moving average of the last *period* prices.

    Returns the last price when fewer than *period* samples exist.
    """
    _require_data(prices)
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(prices) < period:
        return prices[-1]
    window = prices[-period:]
    return sum(window) / period


def calculate_ema_series(prices: list[float], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the standard EMA formula:
        ``EMA_today = price × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first EMA value is seeded with the SMA of the first *period*
    prices.  Returns a list the same length as *prices*; entries before
    the seed are ``float('nan')``.  With fewer than *period* prices every
    entry is ``nan``.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    ema: list[float] = [float("nan")] * len(prices)
    if len(prices) < period:
        return ema

    k = 2.0 / (period + 1)
    ema[period - 1] = sum(prices[:period]) / period
    for i in range(period, len(prices)):
        ema[i] = prices[i] * k + ema[i - 1] * (1 - k)
    return ema


def calculate_ema(prices: list[float], period: int) -> float:
    """Latest EMA value; the last price when fewer than *period* samples exist."""
    _require_data(prices)
    if len(prices) < period:
        return prices[-1]
    return calculate_ema_series(prices, period)[-1]


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(prices: list[float], period: int = 14) -> float:
    """Relative Strength Index over the trailing *period* deltas.

    Only the last *period* price changes are averaged (no smoothing across
    the whole series).

    Returns:
        ``50.0`` with fewer than ``period + 1`` prices or a window with
        neither gains nor losses; ``100.0`` when the window has gains but
        no losses.
    """
    if len(prices) < period + 1:
        return 50.0

    gains = 0.0
    losses = 0.0
    for i in range(len(prices) - period, len(prices)):
        change = prices[i] - prices[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 50.0 if avg_gain == 0 else 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    prices: list[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MacdValues:
    """Moving Average Convergence Divergence.

    The signal line is the EMA(*signal*) of the MACD-line history, where
    the history holds ``EMA(fast) − EMA(slow)`` for every prefix of at
    least *slow* prices.  Both EMA series are built once, so entry ``i``
    of the history equals the MACD line of ``prices[: i + 1]``.

    With fewer than *signal* history points the signal line equals the
    MACD line (histogram 0).
    """
    _require_data(prices)
    macd_line = calculate_ema(prices, fast) - calculate_ema(prices, slow)

    fast_series = calculate_ema_series(prices, fast)
    slow_series = calculate_ema_series(prices, slow)
    history = [
        fast_series[i] - slow_series[i]
        for i in range(slow - 1, len(prices))
    ]

    signal_line = (
        calculate_ema(history, signal) if len(history) >= signal else macd_line
    )
    return MacdValues(
        macd_line=macd_line,
        signal_line=signal_line,
        histogram=macd_line - signal_line,
    )


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    prices: list[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerValues:
    """Calculate Bollinger Bands on the trailing window.

    Middle = SMA(price, *period*)
    Upper  = middle + *std_dev* × σ
    Lower  = middle − *std_dev* × σ    (population σ)

    ``percent_b`` is ``0.5`` when the bands have zero width (constant
    prices or fewer than *period* samples, where the bands collapse onto
    the last price).  ``breakout`` is true when the price is strictly
    outside either band.
    """
    _require_data(prices)
    price = prices[-1]
    middle = calculate_sma(prices, period)

    if len(prices) < period:
        sigma = 0.0
    else:
        window = prices[-period:]
        variance = sum((x - middle) ** 2 for x in window) / period
        sigma = math.sqrt(variance)

    upper = middle + std_dev * sigma
    lower = middle - std_dev * sigma
    width = upper - lower
    percent_b = (price - lower) / width if width > 0 else 0.5

    return BollingerValues(
        upper=upper,
        middle=middle,
        lower=lower,
        percent_b=percent_b,
        breakout=price > upper or price < lower,
    )


# ── Stochastic ───────────────────────────────────────────────────────────


def _stochastic_k(candles: list[Candle], end: int, k_period: int) -> float:
    window = candles[end - k_period + 1 : end + 1]
    highest = max(c.high for c in window)
    lowest = min(c.low for c in window)
    if highest == lowest:
        return 50.0
    return (candles[end].close - lowest) / (highest - lowest) * 100.0


def calculate_stochastic(
    candles: list[Candle],
    k_period: int = 14,
    d_period: int = 3,
) -> StochasticValues:
    """Stochastic oscillator.

    ``%K`` compares the close with the high/low range of the trailing
    *k_period* candles.  ``%D`` is the mean of the last *d_period* ``%K``
    values (fewer when the history is short).

    Returns ``k = d = 50`` with fewer than *k_period* candles.
    """
    n = len(candles)
    if n < k_period:
        return StochasticValues(k=50.0, d=50.0)

    start = max(k_period - 1, n - d_period)
    ks = [_stochastic_k(candles, i, k_period) for i in range(start, n)]
    return StochasticValues(k=ks[-1], d=sum(ks) / len(ks))


# ── ATR ──────────────────────────────────────────────────────────────────


def _true_range(candle: Candle, prev_close: float) -> float:
    return max(
        candle.high - candle.low,
        abs(candle.high - prev_close),
        abs(candle.low - prev_close),
    )


def calculate_atr(candles: list[Candle], period: int = 14) -> float:
    """Calculate the Average True Range over *period* candles.

    Uses the standard True Range definition:
        TR = max(high - low, |high - prev_close|, |low - prev_close|)

    Returns the simple average of the last *period* true ranges, or the
    last candle's high − low when fewer than ``period + 1`` candles exist.
    """
    _require_data(candles, "candle")
    if len(candles) < period + 1:
        last = candles[-1]
        return last.high - last.low

    recent = [
        _true_range(candles[i], candles[i - 1].close)
        for i in range(len(candles) - period, len(candles))
    ]
    return sum(recent) / period


# ── ADX ──────────────────────────────────────────────────────────────────

ADX_NEUTRAL = 25.0


def calculate_adx(candles: list[Candle], period: int = 14) -> float:
    """Simplified Average Directional Index.

    Algorithm:
        1. +DM / −DM and TR per bar over the trailing *period* bars.
        2. Sum each (no Wilder smoothing).
        3. +DI = 100 × Σ+DM / ΣTR,  −DI = 100 × Σ−DM / ΣTR
        4. DX = 100 × |+DI − −DI| / (+DI + −DI)

    Returns ``ADX_NEUTRAL`` (25) with fewer than ``period + 1`` candles or
    when there is no directional movement at all.
    """
    n = len(candles)
    if n < period + 1:
        return ADX_NEUTRAL

    plus_dm = 0.0
    minus_dm = 0.0
    tr_sum = 0.0
    for i in range(n - period, n):
        up_move = candles[i].high - candles[i - 1].high
        down_move = candles[i - 1].low - candles[i].low
        if up_move > down_move and up_move > 0:
            plus_dm += up_move
        if down_move > up_move and down_move > 0:
            minus_dm += down_move
        tr_sum += _true_range(candles[i], candles[i - 1].close)

    if tr_sum == 0:
        return ADX_NEUTRAL
    plus_di = 100.0 * plus_dm / tr_sum
    minus_di = 100.0 * minus_dm / tr_sum
    di_sum = plus_di + minus_di
    if di_sum == 0:
        return ADX_NEUTRAL
    return 100.0 * abs(plus_di - minus_di) / di_sum


# ── Supertrend ───────────────────────────────────────────────────────────


def calculate_supertrend(
    candles: list[Candle],
    period: int = 10,
    multiplier: float = 3.0,
) -> SupertrendValues:
    """ATR-band trend overlay.

    For each candle from index *period* on:
        upper = hl2 + multiplier × ATR,  lower = hl2 − multiplier × ATR

    The direction flips to BULLISH when the close exceeds the previous
    candle's upper band and to BEARISH when it falls below the previous
    candle's lower band.  Otherwise the prior direction persists; the
    first evaluated candle seeds it from close vs hl2 (left undecided when
    they are equal).

    The reported value is the lower band in a BULLISH trend, the upper band
    in a BEARISH one, and the last close when the direction is undecided or
    fewer than ``period + 1`` candles exist.
    """
    _require_data(candles, "candle")
    last_close = candles[-1].close
    if len(candles) < period + 1:
        return SupertrendValues(direction=None, value=last_close)

    direction = None
    prev_upper = prev_lower = None
    upper = lower = last_close
    for i in range(period, len(candles)):
        candle = candles[i]
        atr = calculate_atr(candles[: i + 1], period)
        hl2 = (candle.high + candle.low) / 2
        upper = hl2 + multiplier * atr
        lower = hl2 - multiplier * atr

        if prev_upper is not None and candle.close > prev_upper:
            direction = "BULLISH"
        elif prev_lower is not None and candle.close < prev_lower:
            direction = "BEARISH"
        elif direction is None:
            if candle.close > hl2:
                direction = "BULLISH"
            elif candle.close < hl2:
                direction = "BEARISH"

        prev_upper, prev_lower = upper, lower

    if direction == "BULLISH":
        return SupertrendValues(direction=direction, value=lower)
    if direction == "BEARISH":
        return SupertrendValues(direction=direction, value=upper)
    return SupertrendValues(direction=None, value=last_close)
