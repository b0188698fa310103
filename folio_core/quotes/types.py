"""
Quote-layer types: a priced snapshot per symbol and the immutable result of one
resolution round.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class Quote:
    """Last known price for a symbol. stale=True when served from cache."""

    symbol: str
    price: float
    as_of: datetime
    stale: bool = False

    def as_stale(self) -> Quote:
        return replace(self, stale=True)


@dataclass(frozen=True)
class QuoteRound:
    """
    Complete result of one resolve() call. Published as a whole so a
    valuation never sees a half-updated quote map.
    """

    quotes: Mapping[str, Quote] = field(default_factory=lambda: MappingProxyType({}))
    warnings: tuple[str, ...] = ()
    fetched_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.quotes, MappingProxyType):
            object.__setattr__(self, "quotes", MappingProxyType(dict(self.quotes)))

    @property
    def stale_symbols(self) -> tuple[str, ...]:
        return tuple(s for s, q in self.quotes.items() if q.stale)
