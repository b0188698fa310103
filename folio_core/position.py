"""
Position: one portfolio line item.

Immutable. The store replaces a position wholesale when its amount changes.
"""

from __future__ import annotations

from dataclasses import dataclass

# Classes the renderer knows how to color; any other string is accepted and
# grouped under its own name.
KNOWN_ASSET_CLASSES = ("Stocks", "Bonds", "Commodities", "Gold", "Crypto", "Cash")


@dataclass(frozen=True)
class Position:
    """A holding. No quote_symbol means the amount is its own balance (e.g. cash)."""

    name: str
    asset_class: str
    amount: float
    quote_symbol: str | None = None

    @property
    def is_cash_like(self) -> bool:
        return self.quote_symbol is None

    def with_amount(self, amount: float) -> Position:
        return Position(
            name=self.name,
            asset_class=self.asset_class,
            amount=amount,
            quote_symbol=self.quote_symbol,
        )
