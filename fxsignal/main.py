"""fxsignal — application entry point.

Boots the FastAPI server and provides the CLI for one-shot signal
generation and multi-pair scans.
"""

import json
import logging

from fastapi import FastAPI

from fxsignal.api.routers import configure_routers, router
from fxsignal.config import Config
from fxsignal.market.source import MarketDataSource
from fxsignal.notify.telegram import TelegramNotifier
from fxsignal.scanner import SignalScanner

app = FastAPI(title="fxsignal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("fxsignal")


@app.get("/health")
async def health():
    return {"status": "ok"}


def bootstrap(config: Config) -> SignalScanner:
    """Wire the data source, scanner and notifier into the routers."""
    source = MarketDataSource.from_config(config)
    scanner = SignalScanner(source)
    notifier = TelegramNotifier.from_config(config)
    configure_routers(
        scanner=scanner,
        notifier=notifier,
        default_timeframe=config.default_timeframe,
    )
    if not config.has_api_key:
        logger.warning("ALPHA_VANTAGE_API_KEY not set — serving synthetic market data")
    if not notifier.configured:
        logger.info("Telegram credentials not set — alerts disabled")
    return scanner


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the requested command."""
    import argparse
    import asyncio

    from fxsignal.config import load_config

    parser = argparse.ArgumentParser(description="fxsignal forex signal engine")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None, help="Overrides HTTP_PORT")

    signal = sub.add_parser("signal", help="Score one pair and print the result")
    signal.add_argument("pair", help="Pair symbol, e.g. EUR/USD or EUR_USD")
    signal.add_argument("--timeframe", default=None, help="M1, M5, M15, M30, H1 or H4")

    scan = sub.add_parser("scan", help="Scan every pair and print the ranking")
    scan.add_argument("--timeframe", default=None, help="M1, M5, M15, M30, H1 or H4")

    args = parser.parse_args()
    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    scanner = bootstrap(config)

    if args.command == "serve":
        import uvicorn

        uvicorn.run(app, host=args.host, port=args.port or config.http_port)
        return

    from fxsignal.errors import SignalEngineError
    from fxsignal.market.pairs import normalize_pair

    timeframe = args.timeframe or config.default_timeframe
    try:
        if args.command == "signal":
            result = asyncio.run(scanner.generate(normalize_pair(args.pair), timeframe))
        else:
            result = asyncio.run(scanner.scan(timeframe))
    except SignalEngineError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    _run_cli()
