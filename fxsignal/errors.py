"""Exception hierarchy for the signal engine."""

from typing import Optional


class SignalEngineError(Exception):
    """Base class for every error raised by fxsignal."""


class UnknownPairError(SignalEngineError, KeyError):
    """The pair is not in the configured symbol table."""

    def __init__(self, pair: str) -> None:
        self.pair = pair
        super().__init__(f"Unknown pair: {pair}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class UnknownTimeframeError(SignalEngineError, ValueError):
    """The timeframe has no data-source interval mapping."""

    def __init__(self, timeframe: str) -> None:
        self.timeframe = timeframe
        super().__init__(f"Unknown timeframe: {timeframe}")


class DataUnavailableError(SignalEngineError):
    """The candle or quote source failed or returned no usable history."""

    def __init__(
        self,
        pair: str,
        reason: str,
        interval: Optional[str] = None,
    ) -> None:
        self.pair = pair
        self.interval = interval
        self.reason = reason
        where = f"{pair} ({interval})" if interval else pair
        super().__init__(f"Market data unavailable for {where}: {reason}")
