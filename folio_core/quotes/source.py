"""
Quote source abstraction.

QuoteSource ABC: fetch(symbol) -> price. One call per symbol per round; the
resolver handles concurrency, timeouts and fallback. StaticQuoteSource serves
fixed prices for offline use and tests; YahooQuoteSource (quotes.yahoo) talks
to the market.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

from folio_core.errors import QuoteFetchError


class QuoteSource(ABC):
    """
    External price lookup. Implementations are synchronous and may block;
    the resolver runs each call in a worker thread.
    """

    @abstractmethod
    def fetch(self, symbol: str) -> float:
        """
        Return the latest price for symbol.
        Raises QuoteFetchError on network failure or unknown symbol.
        """
        ...


class StaticQuoteSource(QuoteSource):
    """
    Serves prices from a fixed mapping. Symbols listed in `failing` (or absent
    from `prices`) raise QuoteFetchError, which makes fallback paths testable.
    """

    def __init__(
        self,
        prices: Mapping[str, float] | None = None,
        *,
        failing: Iterable[str] = (),
    ) -> None:
        self._prices = dict(prices or {})
        self._failing = set(failing)
        self.calls: list[str] = []

    def fetch(self, symbol: str) -> float:
        self.calls.append(symbol)
        if symbol in self._failing:
            raise QuoteFetchError(symbol, "NETWORK", f"Simulated network failure for {symbol}")
        if symbol not in self._prices:
            raise QuoteFetchError(symbol, "NOT_FOUND", f"Unknown symbol {symbol}")
        return self._prices[symbol]

    def set_price(self, symbol: str, price: float) -> None:
        self._prices[symbol] = price
        self._failing.discard(symbol)

    def fail(self, symbol: str) -> None:
        self._failing.add(symbol)
