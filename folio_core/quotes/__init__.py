"""
Quote layer: source abstraction, last-known-quote cache and the concurrent resolver.

QuoteSource interface; static and Yahoo sources; cache fallback on partial failure.
YahooQuoteSource is imported from folio_core.quotes.yahoo so yfinance loads only when used.
"""

from folio_core.quotes.cache import JsonFileQuoteCache, MemoryQuoteCache, QuoteCache
from folio_core.quotes.resolver import QuoteResolver
from folio_core.quotes.source import QuoteSource, StaticQuoteSource
from folio_core.quotes.types import Quote, QuoteRound

__all__ = [
    "Quote",
    "QuoteRound",
    "QuoteSource",
    "StaticQuoteSource",
    "QuoteCache",
    "MemoryQuoteCache",
    "JsonFileQuoteCache",
    "QuoteResolver",
]
