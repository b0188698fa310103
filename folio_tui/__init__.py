"""
Terminal front end on top of folio-core.

Drives a Session through the EventLoop with key presses, paints it with rich,
keeps the daily balance history, and exposes the `folio` command.
"""

from folio_tui.app import TerminalApp, build_resolver, file_writer, load_store
from folio_tui.history import BalanceHistory
from folio_tui.metrics import PeriodMetrics, compute_period_metrics
from folio_tui.render import render
from folio_tui.report import print_allocation, print_balances, print_performance

__all__ = [
    "TerminalApp",
    "build_resolver",
    "file_writer",
    "load_store",
    "BalanceHistory",
    "PeriodMetrics",
    "compute_period_metrics",
    "render",
    "print_allocation",
    "print_balances",
    "print_performance",
]
