"""
Tests for folio_core.session: tab/mode state machine, editing, write-back.
"""

import json
from datetime import datetime

import pytest

from folio_core import Key, KeyEvent, LaunchConfig, Mode, PositionStore, Session, Tab
from folio_core.quotes import QuoteResolver, StaticQuoteSource

NOW = datetime(2024, 6, 3, 12, 0, 0)

RECORDS = [
    {"name": "S&P500", "asset_class": "Stocks", "amount": 2.0, "quote_symbol": "SPX"},
    {"name": "Cash", "asset_class": "Cash", "amount": 200.0, "quote_symbol": None},
]


class RecordingWriter:
    def __init__(self, fail=False):
        self.fail = fail
        self.writes = []

    def __call__(self, data):
        if self.fail:
            raise OSError("disk full")
        self.writes.append(data)


def _session(*, autosave=True, writer=None, tab=Tab.OVERVIEW):
    source = StaticQuoteSource({"SPX": 374.64})
    resolver = QuoteResolver(source, clock=lambda: NOW)
    store = PositionStore.load(json.dumps(RECORDS))
    quotes = resolver.resolve_blocking(store.symbols())
    config = LaunchConfig(path="positions.json", start_tab=tab, autosave=autosave)
    session = Session(
        store,
        quotes,
        config,
        refresher=resolver.resolve_blocking,
        writer=writer,
        clock=lambda: NOW,
    )
    return session, source


def _press(session, *keys):
    for k in keys:
        if isinstance(k, Key):
            session.handle(KeyEvent.of(k))
        else:
            for ch in k:
                session.handle(KeyEvent.text(ch))


def _edit_cash(session, text):
    session.select_tab(Tab.BALANCES)
    _press(session, Key.DOWN, Key.ENTER)
    for _ in range(len(session.state.edit_buffer.text)):
        _press(session, Key.BACKSPACE)
    _press(session, text)


# --- startup ---


def test_initial_state():
    session, _ = _session()
    state = session.state
    assert state.active_tab == Tab.OVERVIEW
    assert state.mode == Mode.VIEWING
    assert state.selected_index == 0
    assert state.edit_buffer is None
    assert session.snapshot.total_balance == pytest.approx(949.28)
    assert session.snapshot.performance.delta == 0.0


def test_start_tab_from_config():
    session, _ = _session(tab=Tab.PERFORMANCE)
    assert session.state.active_tab == Tab.PERFORMANCE


# --- navigation ---


def test_tab_cycles_and_wraps():
    session, _ = _session()
    _press(session, Key.TAB)
    assert session.state.active_tab == Tab.BALANCES
    _press(session, Key.TAB, Key.TAB)
    assert session.state.active_tab == Tab.OVERVIEW
    _press(session, Key.BACKTAB)
    assert session.state.active_tab == Tab.PERFORMANCE
    _press(session, Key.LEFT)
    assert session.state.active_tab == Tab.BALANCES


def test_number_keys_jump_to_tab():
    session, _ = _session()
    _press(session, "3")
    assert session.state.active_tab == Tab.PERFORMANCE
    _press(session, "1")
    assert session.state.active_tab == Tab.OVERVIEW


def test_selection_clamps_without_wrap():
    session, _ = _session(tab=Tab.BALANCES)
    _press(session, Key.UP)
    assert session.state.selected_index == 0
    _press(session, Key.DOWN, Key.DOWN, Key.DOWN)
    assert session.state.selected_index == 1
    _press(session, "k")
    assert session.state.selected_index == 0


def test_tab_switch_resets_selection():
    session, _ = _session(tab=Tab.BALANCES)
    _press(session, Key.DOWN)
    _press(session, Key.TAB)
    assert session.state.selected_index == 0


def test_performance_tab_has_no_rows():
    session, _ = _session(tab=Tab.PERFORMANCE)
    assert session.row_count() == 0
    _press(session, Key.DOWN)
    assert session.state.selected_index == 0


# --- editing ---


def test_edit_only_from_balances():
    session, _ = _session()
    _press(session, Key.ENTER)
    assert session.state.mode == Mode.VIEWING
    session.select_tab(Tab.BALANCES)
    _press(session, "e")
    assert session.state.mode == Mode.EDITING
    assert session.state.edit_buffer.name == "S&P500"
    assert session.state.edit_buffer.text == "2.0"


def test_commit_edit_recomputes_without_fetch():
    writer = RecordingWriter()
    session, source = _session(writer=writer)
    calls_before = list(source.calls)
    _edit_cash(session, "150.00")
    assert session.state.edit_buffer.valid
    _press(session, Key.ENTER)

    assert session.state.mode == Mode.VIEWING
    assert session.state.edit_buffer is None
    assert session.store.get("Cash").amount == 150.0
    assert session.snapshot.total_balance == pytest.approx(899.28)
    assert session.snapshot.performance.delta == pytest.approx(-50.0)
    assert source.calls == calls_before
    assert len(writer.writes) == 1
    assert json.loads(writer.writes[0])[1]["amount"] == 150.0
    assert not session.store.is_dirty()
    assert session.state.status_message == "Changes saved"


def test_invalid_commit_stays_editing():
    session, _ = _session()
    _edit_cash(session, "abc")
    assert not session.state.edit_buffer.valid
    _press(session, Key.ENTER)
    assert session.state.mode == Mode.EDITING
    assert session.state.status_message
    assert session.store.get("Cash").amount == 200.0
    assert session.snapshot.total_balance == pytest.approx(949.28)


def test_negative_amount_rejected():
    session, _ = _session()
    _edit_cash(session, "-5")
    assert session.commit_edit() is False
    assert session.state.mode == Mode.EDITING
    assert "negative" in session.state.edit_buffer.error


def test_cancel_edit_discards_buffer():
    session, _ = _session()
    _edit_cash(session, "1")
    _press(session, Key.ESCAPE)
    assert session.state.mode == Mode.VIEWING
    assert session.state.edit_buffer is None
    assert session.state.status_message == "Edit cancelled"
    assert session.store.get("Cash").amount == 200.0
    assert not session.finished


def test_tab_while_editing_drops_edit():
    session, _ = _session()
    _edit_cash(session, "1")
    _press(session, Key.TAB)
    assert session.state.active_tab == Tab.PERFORMANCE
    assert session.state.mode == Mode.VIEWING
    assert session.store.get("Cash").amount == 200.0


def test_letters_are_typed_while_editing():
    session, _ = _session()
    _edit_cash(session, "q")
    assert session.state.mode == Mode.EDITING
    assert session.state.edit_buffer.text == "q"


# --- write-back ---


def test_failed_write_keeps_session_running():
    writer = RecordingWriter(fail=True)
    session, _ = _session(writer=writer)
    _edit_cash(session, "150")
    _press(session, Key.ENTER)
    assert session.state.mode == Mode.VIEWING
    assert "Could not save changes" in session.state.status_message
    assert session.store.is_dirty()
    assert session.snapshot.total_balance == pytest.approx(899.28)

    _press(session, "q")
    assert session.finished
    assert session.exit_error


def test_no_autosave_writes_on_quit():
    writer = RecordingWriter()
    session, _ = _session(writer=writer, autosave=False)
    _edit_cash(session, "150")
    _press(session, Key.ENTER)
    assert writer.writes == []
    _press(session, Key.ESCAPE)
    assert session.finished
    assert len(writer.writes) == 1
    assert session.exit_error is None


def test_quit_without_changes_writes_nothing():
    writer = RecordingWriter()
    session, _ = _session(writer=writer)
    _press(session, "q")
    assert session.finished
    assert writer.writes == []


def test_interrupt_quits_from_editing():
    session, _ = _session()
    _edit_cash(session, "1")
    _press(session, Key.INTERRUPT)
    assert session.finished
    assert session.store.get("Cash").amount == 200.0


def test_last_input_time_follows_key_events():
    session, _ = _session()
    assert session.last_input_at is None
    pressed = datetime(2024, 6, 3, 12, 0, 5)
    session.handle(KeyEvent(timestamp=pressed, key=Key.TAB))
    assert session.last_input_at == pressed
    assert session.state.active_tab == Tab.BALANCES


def test_events_after_quit_are_ignored():
    session, _ = _session()
    _press(session, "q", Key.TAB)
    assert session.state.active_tab == Tab.OVERVIEW


# --- quotes ---


def test_refresh_fetches_and_revalues():
    session, source = _session()
    source.set_price("SPX", 400.0)
    _press(session, "r")
    assert source.calls.count("SPX") == 2
    assert session.snapshot.total_balance == pytest.approx(1000.0)
    assert session.snapshot.performance.delta == pytest.approx(50.72)
    assert session.state.status_message == "Quotes refreshed at 12:00:00"


def test_unresolved_positions_produce_warnings():
    session, source = _session()
    source.fail("SPX")
    session.refresh_quotes()
    assert session.snapshot.unresolved == ("S&P500",)
    assert any("S&P500" in w for w in session.state.warnings)
    assert session.snapshot.total_balance == 200.0
