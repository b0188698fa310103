"""
Tests for folio_tui.render and folio_tui.report against a recording console.
"""

import io
from dataclasses import replace
from datetime import datetime

from rich.console import Console

from folio_core import Position, compute
from folio_core.config import COMPONENTS, Tab
from folio_core.quotes import Quote, QuoteRound
from folio_core.session import EditBuffer, Mode, SessionState
from folio_tui.metrics import PeriodMetrics
from folio_tui.render import format_amount, format_money, render
from folio_tui.report import print_allocation, print_balances, print_performance

NOW = datetime(2024, 6, 3, 12, 0, 0)

POSITIONS = [
    Position("S&P500", "Stocks", 2.0, "SPX"),
    Position("Cash", "Cash", 200.0),
]
QUOTES = {"SPX": Quote("SPX", 374.64, NOW)}


def _console():
    return Console(record=True, width=120, height=40, file=io.StringIO(), color_system=None)


def _text(renderable):
    console = _console()
    console.print(renderable)
    return console.export_text()


def _state(**kwargs):
    return SessionState(visible_components=frozenset(COMPONENTS), **kwargs)


# --- formatting ---


def test_format_money():
    assert format_money(949.28) == "949.28"
    assert format_money(1234567.891) == "1,234,567.89"


def test_format_amount():
    assert format_amount(2.0) == "2.00"
    assert format_amount(0.015) == "0.015"
    assert format_amount(1234.5) == "1,234.50"


# --- render ---


def test_overview_shows_total_and_allocation():
    snap = compute(POSITIONS, QUOTES)
    layout = render(_state(), snap)
    for name in ("tabs", "total", "allocation-chart", "allocation-list", "help"):
        assert layout.get(name) is not None
    assert layout.get("balances") is None
    text = _text(layout)
    assert "949.28" in text
    assert "78.93%" in text
    assert "21.07%" in text


def test_hidden_components_are_omitted():
    snap = compute(POSITIONS, QUOTES)
    visible = frozenset(COMPONENTS) - {"total", "help"}
    layout = render(_state(), snap, visible)
    assert layout.get("total") is None
    assert layout.get("help") is None
    assert layout.get("allocation-chart") is not None


def test_visible_components_default_to_state():
    snap = compute(POSITIONS, QUOTES)
    state = SessionState(visible_components=frozenset(COMPONENTS) - {"tabs"})
    assert render(state, snap).get("tabs") is None


def test_balances_tab_lists_positions():
    snap = compute(POSITIONS, QUOTES)
    text = _text(render(_state(active_tab=Tab.BALANCES), snap))
    assert "S&P500" in text
    assert "749.28" in text
    assert "TOTAL" in text
    assert "949.28" in text


def test_unresolved_balance_shows_placeholder():
    positions = POSITIONS + [Position("Bitcoin", "Crypto", 0.5, "BTC-USD")]
    snap = compute(positions, QUOTES)
    text = _text(render(_state(active_tab=Tab.BALANCES), snap))
    assert "Bitcoin" in text
    assert "—" in text


def test_stale_balance_is_marked():
    snap = compute(POSITIONS, {"SPX": Quote("SPX", 374.64, NOW, stale=True)})
    text = _text(render(_state(active_tab=Tab.BALANCES), snap))
    assert "749.28 *" in text
    assert "cached price" in text


def test_edit_buffer_is_rendered():
    snap = compute(POSITIONS, QUOTES)
    state = _state(
        active_tab=Tab.BALANCES,
        mode=Mode.EDITING,
        selected_index=1,
        edit_buffer=EditBuffer.seed("Cash", 200.0).with_text("15x"),
    )
    text = _text(render(state, snap))
    assert "15x" in text
    assert "Invalid amount format" in text
    assert "Enter save" in text


def test_performance_tab_with_metrics():
    prior = compute(POSITIONS, {"SPX": Quote("SPX", 400.0, NOW)})
    snap = compute(POSITIONS, QUOTES, prior)
    metrics = PeriodMetrics(current_total=949.28, ytd_pct=5.0, recent_pct=-1.5, observations=3)
    layout = render(_state(active_tab=Tab.PERFORMANCE), snap, metrics=metrics)
    assert layout.get("performance") is not None
    assert layout.get("history") is not None
    text = _text(layout)
    assert "-50.72" in text
    assert "+5.00%" in text
    assert "n/a" in text


def test_warnings_panel_only_when_needed():
    snap = compute(POSITIONS, QUOTES)
    assert render(_state(), snap).get("warnings") is None
    state = replace(_state(), status_message="Changes saved", warnings=("SPX: price unavailable",))
    layout = render(state, snap)
    assert layout.get("warnings") is not None
    text = _text(layout)
    assert "Changes saved" in text


def test_render_does_not_mutate_inputs():
    snap = compute(POSITIONS, QUOTES)
    state = _state(active_tab=Tab.BALANCES)
    render(state, snap)
    assert state == _state(active_tab=Tab.BALANCES)
    assert snap == compute(POSITIONS, QUOTES)


# --- report ---


def test_print_reports():
    snap = compute(POSITIONS, QUOTES)
    rnd = QuoteRound(quotes=QUOTES, warnings=("GLD: price unavailable (Unknown symbol GLD)",))
    console = _console()
    print_balances(console, snap, rnd)
    print_allocation(console, snap, rnd)
    print_performance(console, snap, rnd)
    text = console.export_text()
    assert "Portfolio Balances" in text
    assert "949.28" in text
    assert "78.93%" in text
    assert "GLD: price unavailable" in text
