"""Telegram alert formatting and delivery.

Only valid signals are sent: a suppressed analysis raises ``ValueError``
instead of reaching the channel.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from fxsignal.config import Config
from fxsignal.market.pairs import TIMEFRAME_MINUTES
from fxsignal.strategy.models import SignalAnalysis
from fxsignal.strategy.session_filter import (
    SESSION_TZ,
    get_pair_tier,
    get_session,
    is_hot_zone,
    is_strict_mode,
)

logger = logging.getLogger("fxsignal.telegram")

TELEGRAM_API_URL = "https://api.telegram.org"

CONFLUENCE_KEYWORDS = ("MACD", "Supertrend", "RSI", "Bollinger", "SMA")


def confidence_emoji(confidence: int) -> str:
    if confidence >= 90:
        return "🔥"
    if confidence >= 70:
        return "⚡"
    return "⚠"


def rsi_status(rsi: float) -> str:
    if rsi < 30:
        return "Oversold"
    if rsi > 70:
        return "Overbought"
    if rsi < 45:
        return "Slightly Oversold"
    if rsi > 55:
        return "Slightly Overbought"
    return "Neutral"


def bollinger_status(breakout: bool, percent_b: float) -> str:
    if breakout and percent_b > 1:
        return "Upper breakout (bullish)"
    if breakout and percent_b < 0:
        return "Lower breakout (bearish)"
    if percent_b > 0.8:
        return "Near upper band"
    if percent_b < 0.2:
        return "Near lower band"
    return "Mid-range"


def sma_status(price: float, sma20: float, sma50: float, sma200: float) -> str:
    if price > sma20 and price > sma50 and price > sma200:
        return "Above all SMAs (bullish)"
    if price < sma20 and price < sma50 and price < sma200:
        return "Below all SMAs (bearish)"
    if price > sma20 and price > sma50:
        return "Above SMA20/50"
    if price < sma20 and price < sma50:
        return "Below SMA20/50"
    return "Mixed"


def entry_window(timeframe: str, now: datetime) -> tuple[str, str]:
    """Entry window in session-local time: next full minute, one bar long."""
    local = now.astimezone(SESSION_TZ).replace(second=0, microsecond=0)
    start = local + timedelta(minutes=1)
    end = start + timedelta(minutes=TIMEFRAME_MINUTES.get(timeframe, 5))
    return start.strftime("%H:%M"), end.strftime("%H:%M")


def format_signal_message(
    analysis: SignalAnalysis,
    is_auto: bool = False,
    now: Optional[datetime] = None,
) -> str:
    """Render the plain-text alert for a valid signal."""
    now = now or datetime.now(timezone.utc)
    session = get_session(now)
    tech = analysis.technicals
    start, end = entry_window(analysis.timeframe, now)
    mode = "AUTO" if is_auto else "MANUAL"

    lines = [
        f"🚀 NEW HIGH-CONFIDENCE SIGNAL ({mode})",
        "",
        f"📊 Pair: {analysis.pair}",
        f"⚡ Type: {analysis.signal_type} ({analysis.timeframe})",
        "",
        f"⏱ Entry Time: {start} - {end}",
        f"🎯 Entry Price: {analysis.entry:.5f}",
        f"🛑 Stop Loss: {analysis.stop_loss:.5f}",
        f"💰 Take Profit: {analysis.take_profit:.5f}",
        "",
        f"💪 Confidence: {analysis.confidence}% {confidence_emoji(analysis.confidence)}",
        "",
    ]

    matches = [
        r for r in analysis.reasoning
        if any(k in r for k in CONFLUENCE_KEYWORDS)
    ]
    confluence = min(95, 50 + len(matches) * 8)
    macd_label = "Bullish crossover" if tech.macd.histogram > 0 else "Bearish crossover"
    pattern = (
        tech.candle_pattern.replace("_", " ").upper() if tech.candle_pattern else "NONE"
    )
    lines += [
        "📈 Trade Rationale:",
        f"• Indicator Confluence: {confluence}%",
        f"• RSI: {tech.rsi:.1f} ({rsi_status(tech.rsi)})",
        f"• MACD: {macd_label}",
        f"• Supertrend: {tech.supertrend.direction or 'UNDEFINED'}",
        f"• Bollinger: {bollinger_status(tech.bollinger.breakout, tech.bollinger.percent_b)}",
        f"• SMA/EMA Trend: {sma_status(analysis.current_price, tech.sma20, tech.sma50, tech.sma200)}",
        f"• ADX: {tech.adx:.1f} ({'Strong' if tech.adx > 25 else 'Weak'} Trend)",
        f"• Candle Pattern: {pattern}",
    ]

    if tech.rsi > 90 or tech.stochastic.k > 90:
        lines += ["", "⚠️ CAUTION: Extreme overbought detected - monitor for early reversal"]
    elif tech.rsi < 10 or tech.stochastic.k < 10:
        lines += ["", "⚠️ CAUTION: Extreme oversold detected - monitor for early reversal"]
    if tech.candle_pattern == "doji":
        lines.append("⚠️ NOTE: Doji pattern shows indecision - entry timing critical")

    strict = is_strict_mode(session, get_pair_tier(analysis.pair))
    modifiers = [r for r in analysis.reasoning if "(+" in r][:3]
    lines += [
        "",
        f"⚡ Strict Mode Notes: {'Active - Higher threshold required' if strict else 'Standard analysis'}",
        f"🌍 Session Hot-Zone: {'YES ✅' if is_hot_zone(session) else 'NO'} ({session})",
        "",
        "🔍 Analysis:",
        f"• Positive modifiers applied: {', '.join(modifiers) if modifiers else 'Standard indicators'}",
        f"• Trade filtered by hot-zone session: {session}",
        "",
        "📌 Trading Rules:",
        "- ✅ FIXED STAKE ONLY (No Martingale)",
        "- ✅ KENYA TIME (EAT, UTC+3)",
        "- ✅ Adaptive TP/SL based on volatility & trend strength",
        "- ✅ Confluence-based confidence scoring",
    ]
    return "\n".join(lines)


class TelegramNotifier:
    """Sends signal alerts through the Telegram Bot API."""

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        api_url: str = TELEGRAM_API_URL,
    ) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._api_url = api_url

    @classmethod
    def from_config(cls, config: Config) -> "TelegramNotifier":
        return cls(config.telegram_bot_token, config.telegram_chat_id)

    @property
    def configured(self) -> bool:
        return bool(self._bot_token and self._chat_id)

    async def send(
        self,
        analysis: SignalAnalysis,
        is_auto: bool = False,
        now: Optional[datetime] = None,
    ) -> bool:
        """Send *analysis* to the configured chat.

        Returns ``False`` when Telegram is not configured or the API call
        fails.

        Raises:
            ValueError: If *analysis* is suppressed.
        """
        if analysis.suppressed:
            raise ValueError(
                f"Refusing to send suppressed signal for {analysis.pair}: "
                f"{'; '.join(analysis.vetoes)}"
            )
        if not self.configured:
            logger.info("Telegram not configured — skipping alert for %s", analysis.pair)
            return False

        url = f"{self._api_url}/bot{self._bot_token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": format_signal_message(analysis, is_auto=is_auto, now=now),
        }
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(url, json=payload, timeout=15.0)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Telegram send failed for %s: %s", analysis.pair, exc)
            return False

        ok = isinstance(body, dict) and bool(body.get("ok"))
        if not ok:
            logger.warning("Telegram API rejected alert for %s", analysis.pair)
        return ok
