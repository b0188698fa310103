"""
Yahoo Finance quote source via yfinance.

Latest close from a short daily history window. Symbol mapping lets a position
file use its own keys (e.g. "BTC" -> "BTC-USD").
"""

from __future__ import annotations

import logging

import yfinance as yf

from folio_core.errors import QuoteFetchError
from folio_core.quotes.source import QuoteSource

logger = logging.getLogger(__name__)


def _resolve_symbol(internal: str, symbol_map: dict[str, str] | None) -> str:
    """Map internal symbol to provider symbol. Identity if no map or not present."""
    if symbol_map and internal in symbol_map:
        return symbol_map[internal]
    return internal


class YahooQuoteSource(QuoteSource):
    """Fetch latest close prices from Yahoo Finance."""

    def __init__(self, *, period: str = "5d", symbol_map: dict[str, str] | None = None) -> None:
        self._period = period
        self._symbol_map = symbol_map or {}

    def fetch(self, symbol: str) -> float:
        provider_symbol = _resolve_symbol(symbol, self._symbol_map)
        logger.debug("yahoo fetch: symbol=%s (provider=%s)", symbol, provider_symbol)
        try:
            history = yf.Ticker(provider_symbol).history(period=self._period)
        except Exception as e:  # noqa: BLE001
            logger.exception("yahoo fetch failed: symbol=%s", symbol)
            raise QuoteFetchError(symbol, "NETWORK", f"Yahoo request failed for {symbol}: {e!s}") from e

        if history is None or history.empty or "Close" not in history:
            raise QuoteFetchError(symbol, "NOT_FOUND", f"No price data for {symbol}")
        closes = history["Close"].dropna()
        if closes.empty:
            raise QuoteFetchError(symbol, "NOT_FOUND", f"No price data for {symbol}")
        price = float(closes.iloc[-1])
        if price <= 0:
            raise QuoteFetchError(symbol, "BAD_RESPONSE", f"Non-positive price {price} for {symbol}")
        return price
