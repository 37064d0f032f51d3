"""Stop-loss and take-profit calculation — pure math, no I/O.

Volatility-adaptive approach:
    SL distance = max(ATR × volatility multiplier, MIN_STOP_PIPS pips).
    TP distance = SL distance × reward ratio, where the ratio grows with
    the bullish/bearish score differential (stronger confluence → larger
    target).
"""

from dataclasses import dataclass

from fxsignal.market.pairs import pip_value

VOLATILITY_SL_MULTIPLIERS: dict[str, float] = {
    "HIGH": 2.0,
    "MEDIUM": 1.5,
    "LOW": 1.2,
}
MIN_STOP_PIPS = 15.0

# (minimum score differential, reward ratio), checked top-down
REWARD_RATIO_TIERS: list[tuple[float, float]] = [
    (60.0, 3.0),
    (40.0, 2.5),
    (20.0, 2.0),
]
BASE_REWARD_RATIO = 1.8


@dataclass(frozen=True)
class RiskLevels:
    """Computed entry, stop-loss and take-profit for a signal."""

    entry: float
    stop_loss: float
    take_profit: float
    sl_distance: float
    rr_ratio: float


def stop_distance(atr: float, volatility: str, pair: str) -> float:
    """Stop-loss distance in price units, floored at ``MIN_STOP_PIPS`` pips.

    Unknown volatility labels use the LOW multiplier.
    """
    multiplier = VOLATILITY_SL_MULTIPLIERS.get(volatility, VOLATILITY_SL_MULTIPLIERS["LOW"])
    return max(atr * multiplier, MIN_STOP_PIPS * pip_value(pair))


def reward_ratio(score_diff: float) -> float:
    """Reward-to-risk ratio for a bullish/bearish score differential."""
    for threshold, ratio in REWARD_RATIO_TIERS:
        if score_diff >= threshold:
            return ratio
    return BASE_REWARD_RATIO


def calculate_risk_levels(
    price: float,
    signal_type: str,
    atr: float,
    volatility: str,
    score_diff: float,
    pair: str,
) -> RiskLevels:
    """Position SL/TP around *price* for a CALL or PUT.

    - **CALL**: SL = price − distance, TP = price + distance × ratio
    - **PUT**:  SL = price + distance, TP = price − distance × ratio

    Prices are rounded to 5 decimal places.

    Raises:
        ValueError: If *signal_type* is not ``"CALL"`` or ``"PUT"``.
    """
    sl_dist = stop_distance(atr, volatility, pair)
    ratio = reward_ratio(score_diff)
    tp_dist = sl_dist * ratio

    if signal_type == "CALL":
        sl = price - sl_dist
        tp = price + tp_dist
    elif signal_type == "PUT":
        sl = price + sl_dist
        tp = price - tp_dist
    else:
        raise ValueError(f"signal_type must be 'CALL' or 'PUT', got '{signal_type}'")

    return RiskLevels(
        entry=round(price, 5),
        stop_loss=round(sl, 5),
        take_profit=round(tp, 5),
        sl_distance=sl_dist,
        rr_ratio=ratio,
    )
