"""
Tests for folio_tui.app: TerminalApp driven by a scripted key sequence.
"""

import io
import json
import shutil

import pytest
from rich.console import Console

from folio_core import BaselineMode, Key, KeyEvent, LaunchConfig, Settings, Tab
from folio_core.quotes import QuoteResolver, StaticQuoteSource
from folio_tui.app import TerminalApp, build_resolver, file_writer
from folio_tui.history import BalanceHistory

RECORDS = [
    {"name": "S&P500", "asset_class": "Stocks", "amount": 2.0, "quote_symbol": "SPX"},
    {"name": "Cash", "asset_class": "Cash", "amount": 200.0, "quote_symbol": None},
]


@pytest.fixture
def position_file(tmp_path):
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    path = data_dir / "positions.json"
    path.write_text(json.dumps(RECORDS))
    return path


def _settings(tmp_path):
    return Settings(
        cache_path=tmp_path / "quotes.json",
        history_path=tmp_path / "history.csv",
        log_file=tmp_path / "folio.log",
    )


def _app(position_file, tmp_path, **config):
    settings = _settings(tmp_path)
    resolver = build_resolver(settings, source=StaticQuoteSource({"SPX": 374.64}))
    return TerminalApp(
        LaunchConfig(path=position_file, **config),
        settings,
        resolver=resolver,
        history=BalanceHistory(path=settings.history_path),
        console=Console(file=io.StringIO(), width=120, height=40),
    )


def _edit_cash_keys(text):
    keys = [KeyEvent.of(Key.TAB), KeyEvent.of(Key.DOWN), KeyEvent.of(Key.ENTER)]
    keys += [KeyEvent.of(Key.BACKSPACE)] * 5
    keys += [KeyEvent.text(c) for c in text]
    keys += [KeyEvent.of(Key.ENTER)]
    return keys


def test_build_resolver_uses_file_cache(tmp_path):
    settings = _settings(tmp_path)
    resolver = build_resolver(settings, source=StaticQuoteSource({"SPX": 1.0}))
    resolver.resolve_blocking({"SPX"})
    assert (tmp_path / "quotes.json").exists()


def test_build_resolver_without_cache(tmp_path):
    settings = _settings(tmp_path)
    resolver = build_resolver(settings, use_cache=False, source=StaticQuoteSource({"SPX": 1.0}))
    resolver.resolve_blocking({"SPX"})
    assert not (tmp_path / "quotes.json").exists()
    assert isinstance(resolver, QuoteResolver)


def test_file_writer_replaces_target(tmp_path):
    target = tmp_path / "out.json"
    target.write_text("old")
    file_writer(target)(b"new")
    assert target.read_bytes() == b"new"
    assert not (tmp_path / "out.json.tmp").exists()


def test_start_values_portfolio(position_file, tmp_path):
    app = _app(position_file, tmp_path, start_tab=Tab.BALANCES)
    session = app.start()
    assert session.snapshot.total_balance == pytest.approx(949.28)
    assert session.state.active_tab == Tab.BALANCES
    assert len(app.history) == 1


def test_run_edit_and_quit(position_file, tmp_path):
    app = _app(position_file, tmp_path)
    events = _edit_cash_keys("150") + [KeyEvent.text("q")]
    assert app.run(iter(events)) == 0

    saved = json.loads(position_file.read_text())
    assert saved[1]["amount"] == 150.0
    assert app.session.finished
    assert app.session.snapshot.total_balance == pytest.approx(899.28)
    history = BalanceHistory.load(tmp_path / "history.csv")
    assert history.series.iloc[-1] == pytest.approx(899.28)


def test_run_stops_at_quit(position_file, tmp_path):
    app = _app(position_file, tmp_path)
    seen = []
    events = [KeyEvent.text("q"), KeyEvent.of(Key.TAB)]

    def feed():
        for e in events:
            seen.append(e)
            yield e

    assert app.run(feed()) == 0
    assert len(seen) == 1


def test_failed_save_exits_nonzero(position_file, tmp_path):
    app = _app(position_file, tmp_path, autosave=False)
    app.start()
    shutil.rmtree(position_file.parent)
    events = _edit_cash_keys("150") + [KeyEvent.of(Key.INTERRUPT)]
    assert app.run(iter(events)) == 1
    assert app.session.exit_error


def test_persisted_baseline(position_file, tmp_path):
    settings = _settings(tmp_path)
    settings.history_path.write_text("date,total\n2000-01-03,1000.0\n")
    app = _app(position_file, tmp_path, baseline=BaselineMode.PERSISTED)
    app.history = BalanceHistory.load(settings.history_path)
    session = app.start()
    perf = session.snapshot.performance
    assert perf.baseline_total == 1000.0
    assert perf.delta == pytest.approx(-50.72)
