"""
Session: the interactive state machine behind the terminal UI.

States are (tab x mode) with mode in {VIEWING, EDITING} plus the terminal QUIT.
Every transition replaces the immutable SessionState; renderers only read it.
A committed edit goes through the position store, re-runs the valuation with
the quotes already held (amount edits never need a new fetch) and writes the
serialized positions back when autosave is on. Leaving the session flushes
anything still unsaved.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from folio_core.config import COMPONENTS, LaunchConfig, Tab
from folio_core.errors import EditError, SerializeError
from folio_core.events import Event, Key, KeyEvent
from folio_core.quotes.types import QuoteRound
from folio_core.store import PositionStore, parse_amount
from folio_core.valuation import ValuationSnapshot, compute

logger = logging.getLogger(__name__)

Refresher = Callable[[set[str]], QuoteRound]
Writer = Callable[[bytes], None]


class Mode(Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    QUIT = "quit"


def _validation_error(text: str) -> str | None:
    try:
        parse_amount(text)
    except EditError as e:
        return str(e)
    return None


@dataclass(frozen=True)
class EditBuffer:
    """In-progress amount edit for one position, validated on every keystroke."""

    name: str
    text: str
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.error is None

    @classmethod
    def seed(cls, name: str, amount: float) -> EditBuffer:
        return cls(name=name, text=str(amount))

    def with_text(self, text: str) -> EditBuffer:
        return EditBuffer(name=self.name, text=text, error=_validation_error(text))

    def with_error(self, error: str) -> EditBuffer:
        return replace(self, error=error)


@dataclass(frozen=True)
class SessionState:
    """UI-facing state. edit_buffer is set only while editing on the Balances tab."""

    active_tab: Tab = Tab.OVERVIEW
    mode: Mode = Mode.VIEWING
    selected_index: int = 0
    edit_buffer: EditBuffer | None = None
    visible_components: frozenset[str] = field(default_factory=lambda: frozenset(COMPONENTS))
    status_message: str | None = None
    warnings: tuple[str, ...] = ()


class Session:
    """
    Owns the position store, the latest quote round, the current valuation and
    the UI state. Single writer for all of them; call handle() from one thread.
    """

    def __init__(
        self,
        store: PositionStore,
        quotes: QuoteRound,
        config: LaunchConfig,
        *,
        refresher: Refresher | None = None,
        writer: Writer | None = None,
        baseline: ValuationSnapshot | None = None,
        on_revalue: Callable[[ValuationSnapshot], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._quotes = quotes
        self._config = config
        self._refresher = refresher
        self._writer = writer
        self._on_revalue = on_revalue
        self._clock = clock
        self.exit_error: str | None = None
        self.last_input_at: datetime | None = None

        if baseline is None:
            baseline = compute(store.positions, quotes.quotes, as_of=clock())
        self._baseline = baseline
        self._snapshot = compute(store.positions, quotes.quotes, baseline, as_of=clock())
        self._state = SessionState(
            active_tab=config.start_tab,
            visible_components=config.visible_components(),
            warnings=self._collect_warnings(),
        )

    # --- read access ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def snapshot(self) -> ValuationSnapshot:
        return self._snapshot

    @property
    def quotes(self) -> QuoteRound:
        return self._quotes

    @property
    def store(self) -> PositionStore:
        return self._store

    @property
    def finished(self) -> bool:
        return self._state.mode == Mode.QUIT

    def row_count(self, tab: Tab | None = None) -> int:
        """Selectable rows on a tab: allocation classes, positions, or none."""
        tab = tab or self._state.active_tab
        if tab == Tab.OVERVIEW:
            return len(self._snapshot.allocation)
        if tab == Tab.BALANCES:
            return len(self._snapshot.positions)
        return 0

    # --- event dispatch ---

    def handle(self, event: Event) -> None:
        """Apply one input event. Non-key events and events after QUIT are ignored."""
        if not isinstance(event, KeyEvent) or self.finished:
            return
        self.last_input_at = event.timestamp
        logger.debug(
            "key=%s mode=%s tab=%s at=%s",
            event.key.value,
            self._state.mode.value,
            self._state.active_tab.value,
            event.timestamp.isoformat(timespec="milliseconds"),
        )
        if event.key == Key.INTERRUPT:
            self.quit()
        elif self._state.mode == Mode.EDITING:
            self._handle_editing(event)
        else:
            self._handle_viewing(event)

    def _handle_viewing(self, event: KeyEvent) -> None:
        key, char = event.key, event.char
        if key in (Key.TAB, Key.RIGHT):
            self.next_tab()
        elif key in (Key.BACKTAB, Key.LEFT):
            self.previous_tab()
        elif key == Key.UP or char == "k":
            self.move_selection(-1)
        elif key == Key.DOWN or char == "j":
            self.move_selection(1)
        elif key == Key.ENTER or char == "e":
            self.begin_edit()
        elif key == Key.ESCAPE or char == "q":
            self.quit()
        elif char == "r":
            self.refresh_quotes()
        elif char in ("1", "2", "3"):
            self.select_tab(Tab.all()[int(char) - 1])

    def _handle_editing(self, event: KeyEvent) -> None:
        key = event.key
        if key == Key.ENTER:
            self.commit_edit()
        elif key == Key.ESCAPE:
            self.cancel_edit()
        elif key == Key.BACKSPACE:
            self.backspace()
        elif key == Key.CHAR and event.char:
            self.type_text(event.char)
        elif key == Key.TAB:
            self.next_tab()
        elif key == Key.BACKTAB:
            self.previous_tab()

    # --- navigation ---

    def select_tab(self, tab: Tab) -> None:
        """Switch tab. Drops any in-progress edit without saving."""
        if self._state.mode == Mode.EDITING:
            logger.debug("Edit of %r discarded by tab switch", self._state.edit_buffer.name)
        self._state = replace(
            self._state,
            active_tab=tab,
            mode=Mode.VIEWING,
            edit_buffer=None,
            selected_index=0,
        )

    def next_tab(self) -> None:
        tabs = Tab.all()
        i = tabs.index(self._state.active_tab)
        self.select_tab(tabs[(i + 1) % len(tabs)])

    def previous_tab(self) -> None:
        tabs = Tab.all()
        i = tabs.index(self._state.active_tab)
        self.select_tab(tabs[(i + len(tabs) - 1) % len(tabs)])

    def _clamped(self, index: int) -> int:
        n = self.row_count()
        if n == 0:
            return 0
        return min(max(index, 0), n - 1)

    def move_selection(self, delta: int) -> None:
        """Move within [0, row_count). No wraparound."""
        self._state = replace(self._state, selected_index=self._clamped(self._state.selected_index + delta))

    # --- editing ---

    def begin_edit(self) -> None:
        """Start editing the selected position's amount. Only from Balances while viewing."""
        if self._state.active_tab != Tab.BALANCES or self._state.mode != Mode.VIEWING:
            return
        if self.row_count() == 0:
            return
        name = self._snapshot.positions[self._state.selected_index].name
        position = self._store.get(name)
        self._state = replace(
            self._state,
            mode=Mode.EDITING,
            edit_buffer=EditBuffer.seed(name, position.amount),
            status_message=None,
        )

    def type_text(self, text: str) -> None:
        buffer = self._state.edit_buffer
        if buffer is None:
            return
        printable = "".join(c for c in text if c.isprintable())
        if printable:
            self._state = replace(self._state, edit_buffer=buffer.with_text(buffer.text + printable))

    def backspace(self) -> None:
        buffer = self._state.edit_buffer
        if buffer is None:
            return
        self._state = replace(self._state, edit_buffer=buffer.with_text(buffer.text[:-1]))

    def cancel_edit(self) -> None:
        if self._state.mode != Mode.EDITING:
            return
        self._state = replace(self._state, mode=Mode.VIEWING, edit_buffer=None, status_message="Edit cancelled")

    def commit_edit(self) -> bool:
        """
        Apply the buffer if valid. On success: store updated, valuation recomputed
        with the current quotes, written back if autosave, back to VIEWING.
        On failure the state stays EDITING with the error on the buffer.
        """
        buffer = self._state.edit_buffer
        if self._state.mode != Mode.EDITING or buffer is None:
            return False
        if not buffer.valid:
            self._state = replace(self._state, status_message=buffer.error)
            return False
        try:
            self._store.apply_edit(buffer.name, buffer.text)
        except EditError as e:
            self._state = replace(self._state, edit_buffer=buffer.with_error(str(e)), status_message=str(e))
            return False

        self._state = replace(
            self._state,
            mode=Mode.VIEWING,
            edit_buffer=None,
            status_message=f"Updated {buffer.name}",
        )
        self.revalue()
        if self._config.autosave:
            self._write_back()
        return True

    # --- valuation and quotes ---

    def revalue(self) -> ValuationSnapshot:
        """Recompute the snapshot from the store and the held quote round."""
        self._snapshot = compute(self._store.positions, self._quotes.quotes, self._baseline, as_of=self._clock())
        self._state = replace(
            self._state,
            selected_index=self._clamped(self._state.selected_index),
            warnings=self._collect_warnings(),
        )
        if self._on_revalue is not None:
            self._on_revalue(self._snapshot)
        return self._snapshot

    def refresh_quotes(self) -> None:
        """Run a new resolution round (blocking on its join) and revalue."""
        if self._refresher is None:
            self._state = replace(self._state, status_message="Quote refresh is not available")
            return
        self._quotes = self._refresher(self._store.symbols())
        self.revalue()
        stamp = self._quotes.fetched_at or self._clock()
        self._state = replace(self._state, status_message=f"Quotes refreshed at {stamp:%H:%M:%S}")

    def _collect_warnings(self) -> tuple[str, ...]:
        warnings = list(self._quotes.warnings)
        for p in self._snapshot.positions:
            if p.unresolved:
                warnings.append(f"{p.name}: balance unknown, excluded from total")
        return tuple(warnings)

    # --- persistence and exit ---

    def _write_back(self) -> bool:
        if self._writer is None:
            return False
        try:
            self._writer(self._store.serialize())
        except (SerializeError, OSError) as e:
            logger.warning("Saving positions failed: %s", e)
            self._state = replace(self._state, status_message=f"Could not save changes: {e}")
            return False
        self._store.clear_dirty()
        logger.info("Positions written back")
        self._state = replace(self._state, status_message="Changes saved")
        return True

    def flush(self) -> bool:
        """Write back if anything is unsaved. False when a write was owed and failed."""
        if not self._store.is_dirty() or self._writer is None:
            return True
        if self._write_back():
            return True
        self.exit_error = self._state.status_message
        return False

    def quit(self) -> None:
        """Enter the terminal QUIT state, discarding any edit and flushing unsaved changes."""
        self._state = replace(self._state, mode=Mode.VIEWING, edit_buffer=None)
        self.flush()
        self._state = replace(self._state, mode=Mode.QUIT)
