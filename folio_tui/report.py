"""
Printed reports: balances, allocation and performance without the interactive UI.
"""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from folio_core.quotes.types import QuoteRound
from folio_core.valuation import ValuationSnapshot
from folio_tui.metrics import PeriodMetrics
from folio_tui.render import UNKNOWN, format_amount, format_money


def _print_warnings(console: Console, quotes: QuoteRound, snapshot: ValuationSnapshot) -> None:
    for warning in quotes.warnings:
        console.print(f"[yellow]warning:[/yellow] {warning}")
    for name in snapshot.unresolved:
        console.print(f"[yellow]warning:[/yellow] {name}: balance unknown, excluded from total")


def print_balances(console: Console, snapshot: ValuationSnapshot, quotes: QuoteRound) -> None:
    """One row per position plus the total."""
    table = Table(title="Portfolio Balances")
    table.add_column("Name", style="cyan")
    table.add_column("Asset Class")
    table.add_column("Amount", justify="right")
    table.add_column("Balance", justify="right", style="green")
    for p in snapshot.positions:
        balance = UNKNOWN if p.unresolved else format_money(p.balance) + (" *" if p.stale else "")
        table.add_row(p.name, p.asset_class, format_amount(p.amount), balance)
    table.add_section()
    table.add_row("TOTAL", "", "", format_money(snapshot.total_balance), style="bold")
    console.print(table)
    _print_warnings(console, quotes, snapshot)


def print_allocation(console: Console, snapshot: ValuationSnapshot, quotes: QuoteRound) -> None:
    """Asset classes by share of the resolved total, largest first."""
    table = Table(title="Asset Allocation")
    table.add_column("Asset Class", style="cyan")
    table.add_column("Balance", justify="right")
    table.add_column("Share", justify="right", style="yellow")
    for alloc in snapshot.allocation_by_weight():
        table.add_row(alloc.asset_class, format_money(alloc.balance), f"{alloc.percentage:.2f}%")
    console.print(table)
    _print_warnings(console, quotes, snapshot)


def print_performance(
    console: Console,
    snapshot: ValuationSnapshot,
    quotes: QuoteRound,
    metrics: PeriodMetrics | None = None,
) -> None:
    """Change versus baseline, then period metrics when history exists."""
    table = Table(title="Performance", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    perf = snapshot.performance
    table.add_row("Current", format_money(snapshot.total_balance))
    if perf is not None:
        table.add_row("Baseline", format_money(perf.baseline_total))
        table.add_row("Change", f"{perf.delta:+,.2f} ({perf.percent_change:+.2f}%)")
    if metrics is not None and metrics.observations:
        for label, value in (
            ("YTD", metrics.ytd_pct),
            ("Monthly", metrics.monthly_pct),
            ("Since last record", metrics.recent_pct),
            ("Max drawdown", metrics.max_drawdown_pct),
        ):
            table.add_row(label, "n/a" if value is None else f"{value:+.2f}%")
    console.print(table)
    _print_warnings(console, quotes, snapshot)
