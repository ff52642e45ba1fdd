#!/usr/bin/env python3
"""
Print a public market snapshot for one instrument.

Checks performed:
- Instrument list can be fetched and contains the symbol
- Ticker for the symbol
- Top N levels of the order book

Usage examples:
  python scripts/market_snapshot.py --symbol ETH_BTC
  python scripts/market_snapshot.py --version v1 --symbol ETH_BTC --depth 10
"""

import argparse
import asyncio
import sys

from core.config import settings
from core.errors import ExchangeError
from core.logging import setup_logging
from exchanges.cryptocom import CryptoComAPIClient
from exchanges.cryptocom_v1 import CryptoComV1APIClient


CLIENTS = {
    "v1": CryptoComV1APIClient,
    "v2": CryptoComAPIClient,
}


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Print a public market snapshot.")
    p.add_argument("--version", choices=sorted(CLIENTS), default="v2", help="API version (default: v2)")
    p.add_argument("--symbol", required=True, help="Instrument (e.g., ETH_BTC)")
    p.add_argument("--depth", type=int, default=5, help="Order book levels to print (default: 5)")
    p.add_argument("--verbose", action="store_true", help="Log requests and pacing")
    return p.parse_args()


async def snapshot(version: str, symbol: str, depth: int) -> None:
    async with CLIENTS[version]() as client:
        symbols = await client.get_symbols()
        known = {s.symbol for s in symbols}
        print(f"{len(symbols)} instruments listed" + ("" if symbol.upper() in known else f" ({symbol} not among them)"))

        ticker = await client.get_ticker(symbol)
        print(f"{symbol}: last={ticker.last} high={ticker.high} low={ticker.low} vol={ticker.volume}")

        book = await client.get_order_book(symbol)
        print(f"{'bid size':>14} {'bid':>14} | {'ask':<14} {'ask size':<14}")
        for i in range(depth):
            bid = book.bids[i] if i < len(book.bids) else None
            ask = book.asks[i] if i < len(book.asks) else None
            left = f"{bid.size:>14} {bid.price:>14}" if bid else " " * 29
            right = f"{ask.price:<14} {ask.size:<14}" if ask else ""
            print(f"{left} | {right}")


def main() -> int:
    args = parse_args()
    setup_logging(log_level="DEBUG" if args.verbose else settings.log_level)
    try:
        asyncio.run(snapshot(args.version, args.symbol, args.depth))
    except ExchangeError as e:
        print(f"FAIL: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
