"""
Offline portfolio report with fixed prices.

Demonstrates: load position file → resolve quotes → value → print balances,
allocation and performance. Swap StaticQuoteSource for YahooQuoteSource to
use live prices.
"""

from pathlib import Path

from rich.console import Console

from folio_core import PositionStore, compute
from folio_core.quotes import MemoryQuoteCache, QuoteResolver, StaticQuoteSource
from folio_tui import print_allocation, print_balances, print_performance


def main() -> None:
    data_dir = Path(__file__).resolve().parent / "data"
    store = PositionStore.load((data_dir / "positions.json").read_bytes())

    # GLD has no price here, so the resolver reports it and the valuation leaves it out
    source = StaticQuoteSource({"SPX": 374.64, "TLT": 92.10, "BTC-USD": 61_250.0})
    resolver = QuoteResolver(source, MemoryQuoteCache())
    quotes = resolver.resolve_blocking(store.symbols())

    snapshot = compute(store.positions, quotes.quotes)
    console = Console()
    print_balances(console, snapshot, quotes)
    print_allocation(console, snapshot, quotes)

    # Halve the cash position and compare against the first snapshot
    store.apply_edit("Cash", "100")
    after = compute(store.positions, quotes.quotes, snapshot)
    print_performance(console, after, quotes)


if __name__ == "__main__":
    main()
