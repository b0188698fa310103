"""
Quote resolver: one concurrent fetch per unique symbol, joined into a single
immutable QuoteRound.

Per symbol: fresh quote on success; on failure the cached quote marked stale;
with no cache entry the symbol is left out and a warning names it. A failed
symbol never fails the round. Successful fetches are written back to the cache
once the whole round has completed, so a cancelled round writes nothing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime

from folio_core.errors import CacheError, QuoteFetchError
from folio_core.quotes.cache import QuoteCache
from folio_core.quotes.source import QuoteSource
from folio_core.quotes.types import Quote, QuoteRound

logger = logging.getLogger(__name__)

DEFAULT_MAX_IN_FLIGHT = 8
DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class _FetchOutcome:
    symbol: str
    price: float | None = None
    error: QuoteFetchError | None = None


class QuoteResolver:
    """
    Fan-out/join quote fetching with bounded concurrency and per-request timeout.
    Cache is optional; without one, failures simply leave symbols unresolved.
    """

    def __init__(
        self,
        source: QuoteSource,
        cache: QuoteCache | None = None,
        *,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._source = source
        self._cache = cache
        self._max_in_flight = max(1, max_in_flight)
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    async def _fetch_one(
        self,
        symbol: str,
        semaphore: asyncio.Semaphore,
        executor: ThreadPoolExecutor,
    ) -> _FetchOutcome:
        async with semaphore:
            started = time.perf_counter()
            loop = asyncio.get_running_loop()
            try:
                price = await asyncio.wait_for(
                    loop.run_in_executor(executor, self._source.fetch, symbol),
                    timeout=self._timeout_seconds,
                )
            except asyncio.TimeoutError:
                error = QuoteFetchError(
                    symbol, "TIMEOUT", f"Quote request for {symbol} timed out after {self._timeout_seconds:g}s"
                )
                return _FetchOutcome(symbol, error=error)
            except QuoteFetchError as error:
                return _FetchOutcome(symbol, error=error)
            except Exception as e:  # noqa: BLE001
                logger.exception("quote source unexpected failure: symbol=%s", symbol)
                return _FetchOutcome(symbol, error=QuoteFetchError(symbol, "NETWORK", str(e)))
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.debug("quote fetched: symbol=%s price=%s latency_ms=%s", symbol, price, elapsed_ms)
            if price is None or price <= 0:
                return _FetchOutcome(
                    symbol, error=QuoteFetchError(symbol, "BAD_RESPONSE", f"Non-positive price for {symbol}")
                )
            return _FetchOutcome(symbol, price=float(price))

    def _cached(self, symbol: str) -> Quote | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(symbol)
        except CacheError as e:
            logger.warning("quote cache read failed: symbol=%s error=%s", symbol, e)
            return None

    async def resolve(self, symbols: Iterable[str]) -> QuoteRound:
        """
        Fetch every unique symbol concurrently and publish the joined result.
        Never raises for per-symbol failures; see QuoteRound.warnings.
        """
        unique = sorted(set(symbols))
        now = self._clock()
        if not unique:
            return QuoteRound(fetched_at=now)

        semaphore = asyncio.Semaphore(self._max_in_flight)
        # One worker per symbol so only the semaphore bounds in-flight calls.
        # Timed-out calls are abandoned on shutdown, not joined.
        executor = ThreadPoolExecutor(max_workers=len(unique), thread_name_prefix="quote-fetch")
        try:
            outcomes = await asyncio.gather(*(self._fetch_one(s, semaphore, executor) for s in unique))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        fresh: dict[str, Quote] = {}
        quotes: dict[str, Quote] = {}
        warnings: list[str] = []
        for outcome in outcomes:
            if outcome.price is not None:
                quote = Quote(symbol=outcome.symbol, price=outcome.price, as_of=now)
                fresh[outcome.symbol] = quote
                quotes[outcome.symbol] = quote
                continue
            error = outcome.error
            cached = self._cached(outcome.symbol)
            if cached is not None:
                quotes[outcome.symbol] = cached.as_stale()
                warnings.append(
                    f"{outcome.symbol}: using cached price from {cached.as_of:%Y-%m-%d %H:%M} ({error})"
                )
                logger.warning(
                    "quote fetch failed, using cache: symbol=%s code=%s as_of=%s",
                    outcome.symbol,
                    error.code if error else None,
                    cached.as_of,
                )
            else:
                warnings.append(f"{outcome.symbol}: price unavailable ({error})")
                logger.warning(
                    "quote fetch failed, no cache: symbol=%s code=%s",
                    outcome.symbol,
                    error.code if error else None,
                )

        self.cache_update(fresh)
        logger.info(
            "quote round complete: requested=%d fresh=%d stale=%d missing=%d",
            len(unique),
            len(fresh),
            len(quotes) - len(fresh),
            len(unique) - len(quotes),
        )
        return QuoteRound(quotes=quotes, warnings=tuple(warnings), fetched_at=now)

    def resolve_blocking(self, symbols: Iterable[str]) -> QuoteRound:
        """Run one resolution round from synchronous code (the UI loop)."""
        return asyncio.run(self.resolve(symbols))

    def cache_update(self, quotes: Mapping[str, Quote]) -> None:
        """Best-effort write of fresh quotes to the cache. Failures are logged only."""
        if self._cache is None:
            return
        for symbol, quote in quotes.items():
            if quote.stale:
                continue
            try:
                self._cache.put(symbol, quote)
            except CacheError as e:
                logger.warning("quote cache write failed: symbol=%s error=%s", symbol, e)
