"""Market data models — typed representations of candles and quotes."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Candle:
    """A single candlestick bar, timestamp in epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    def to_dict(self) -> dict:
        data = {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }
        if self.volume is not None:
            data["volume"] = self.volume
        return data


@dataclass(frozen=True)
class ForexQuote:
    """A spot quote for a currency pair."""

    pair: str
    price: float
    bid: float
    ask: float
    timestamp: int
    change: float = 0.0
    change_percent: float = 0.0

    def to_dict(self) -> dict:
        return {
            "pair": self.pair,
            "price": self.price,
            "bid": self.bid,
            "ask": self.ask,
            "timestamp": self.timestamp,
            "change": self.change,
            "changePercent": self.change_percent,
        }
