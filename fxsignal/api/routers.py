"""HTTP routers — /api/forex/* and /api/telegram/* endpoints.

No scoring logic here. Delegates to the scanner, the market data source and
the Telegram notifier injected at startup.
"""

import logging
from typing import Optional
from urllib.parse import unquote

from fastapi import APIRouter, HTTPException, Query

from fxsignal.errors import (
    DataUnavailableError,
    SignalEngineError,
    UnknownPairError,
    UnknownTimeframeError,
)
from fxsignal.market.pairs import normalize_pair
from fxsignal.notify.telegram import TelegramNotifier
from fxsignal.scanner import SignalScanner

logger = logging.getLogger("fxsignal.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_scanner: Optional[SignalScanner] = None    # Set via configure_routers()
_notifier: Optional[TelegramNotifier] = None  # Set via configure_routers()
_default_timeframe: str = "M5"


def configure_routers(
    scanner: Optional[SignalScanner],
    notifier: Optional[TelegramNotifier] = None,
    default_timeframe: str = "M5",
) -> None:
    """Inject dependencies from the application startup.

    Args:
        scanner: A ``SignalScanner`` bound to the market data source
            (or duck-type for tests); ``None`` leaves the engine unconfigured.
        notifier: A ``TelegramNotifier`` (or duck-type for tests).
        default_timeframe: Timeframe used when a request omits one.
    """
    global _scanner, _notifier, _default_timeframe  # noqa: PLW0603
    _scanner = scanner
    _notifier = notifier
    _default_timeframe = default_timeframe


def _require_scanner() -> SignalScanner:
    if _scanner is None:
        raise HTTPException(status_code=503, detail="Signal engine not configured")
    return _scanner


def _http_error(exc: SignalEngineError) -> HTTPException:
    """Map engine errors to HTTP status codes."""
    if isinstance(exc, (UnknownPairError, UnknownTimeframeError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DataUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _pair_param(raw: str) -> str:
    try:
        return normalize_pair(unquote(raw))
    except UnknownPairError as exc:
        raise _http_error(exc) from exc


# ── Market data ──────────────────────────────────────────────────────────


@router.get("/api/forex/quote/{pair:path}")
async def get_quote(pair: str):
    """Return the latest quote for one pair."""
    scanner = _require_scanner()
    try:
        quote = await scanner.source.get_quote(_pair_param(pair))
    except SignalEngineError as exc:
        raise _http_error(exc) from exc
    return quote.to_dict()


@router.get("/api/forex/quotes")
async def get_quotes():
    """Return quotes for every configured pair."""
    scanner = _require_scanner()
    try:
        quotes = await scanner.source.get_all_quotes(scanner.pairs)
    except SignalEngineError as exc:
        raise _http_error(exc) from exc
    return [q.to_dict() for q in quotes]


@router.get("/api/forex/candles/{pair:path}")
async def get_candles(pair: str, interval: str = Query(default="5min")):
    """Return the candle history for one pair, oldest-first."""
    scanner = _require_scanner()
    try:
        candles = await scanner.source.get_candles(_pair_param(pair), interval)
    except SignalEngineError as exc:
        raise _http_error(exc) from exc
    return [c.to_dict() for c in candles]


@router.get("/api/forex/analysis/{pair:path}")
async def get_analysis(pair: str, interval: str = Query(default="5min")):
    """Return the technical snapshot for one pair."""
    scanner = _require_scanner()
    symbol = _pair_param(pair)
    try:
        snapshot = await scanner.analyze(symbol, interval)
    except SignalEngineError as exc:
        raise _http_error(exc) from exc
    return {
        "pair": symbol,
        "currentPrice": snapshot.price,
        "technicals": snapshot.to_dict(),
    }


# ── Signals ──────────────────────────────────────────────────────────────


@router.post("/api/forex/signal")
async def post_signal(body: dict):
    """Score a signal for ``{"pair": ..., "timeframe": ...}``.

    Suppressed signals are returned with ``confidence == 0`` and
    ``suppressed == true``; they are not errors.
    """
    if not body.get("pair") or not body.get("timeframe"):
        raise HTTPException(status_code=400, detail="Missing pair or timeframe")
    scanner = _require_scanner()
    try:
        analysis = await scanner.generate(
            _pair_param(body["pair"]), str(body["timeframe"]),
        )
    except SignalEngineError as exc:
        raise _http_error(exc) from exc
    return analysis.to_dict()


@router.post("/api/forex/scan")
async def post_scan(body: Optional[dict] = None):
    """Scan every configured pair and rank by confidence."""
    scanner = _require_scanner()
    timeframe = (body or {}).get("timeframe") or _default_timeframe
    try:
        result = await scanner.scan(str(timeframe))
    except SignalEngineError as exc:
        raise _http_error(exc) from exc
    return result.to_dict()


# ── Telegram ─────────────────────────────────────────────────────────────


@router.post("/api/telegram/send")
async def post_telegram_send(body: dict):
    """Score a fresh signal and send it to Telegram.

    Expects ``{"pair": ..., "timeframe": ..., "isAuto": bool}``.  A
    suppressed signal is not sent; the response explains why.
    """
    if not body.get("pair"):
        raise HTTPException(status_code=400, detail="Missing signal pair")
    scanner = _require_scanner()
    timeframe = str(body.get("timeframe") or _default_timeframe)
    try:
        analysis = await scanner.generate(_pair_param(body["pair"]), timeframe)
    except SignalEngineError as exc:
        raise _http_error(exc) from exc

    if analysis.suppressed:
        logger.info("Telegram send skipped for %s: signal suppressed", analysis.pair)
        return {
            "success": False,
            "suppressed": True,
            "message": "Signal suppressed — not sent",
            "vetoes": list(analysis.vetoes),
        }
    if _notifier is None:
        return {"success": False, "message": "Telegram not configured or failed"}

    sent = await _notifier.send(analysis, is_auto=bool(body.get("isAuto", False)))
    return {
        "success": sent,
        "message": "Signal sent to Telegram" if sent else "Telegram not configured or failed",
        "signal": analysis.to_dict(),
    }


@router.get("/api/telegram/status")
async def get_telegram_status():
    return {"configured": bool(_notifier and _notifier.configured)}
