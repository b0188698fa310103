"""
Interactive terminal runner.

Loads the position file, runs the first quote round, builds the Session and
drives it through an EventLoop fed by blocking key reads. rich's Live display
repaints on every event and on its own refresh timer.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.live import Live

from folio_core.config import BaselineMode, LaunchConfig, Settings
from folio_core.event_loop import EventLoop
from folio_core.events import Key, KeyEvent
from folio_core.quotes.cache import JsonFileQuoteCache
from folio_core.quotes.resolver import QuoteResolver
from folio_core.quotes.source import QuoteSource
from folio_core.session import Session, Writer
from folio_core.store import PositionStore
from folio_core.valuation import ValuationSnapshot
from folio_tui.history import BalanceHistory
from folio_tui.keys import decode_key
from folio_tui.metrics import PeriodMetrics, compute_period_metrics
from folio_tui.render import render

logger = logging.getLogger(__name__)


def build_resolver(
    settings: Settings,
    *,
    use_cache: bool = True,
    source: QuoteSource | None = None,
) -> QuoteResolver:
    """Resolver with the Yahoo source and the on-disk cache unless overridden."""
    if source is None:
        from folio_core.quotes.yahoo import YahooQuoteSource

        source = YahooQuoteSource()
    cache = JsonFileQuoteCache(settings.cache_path) if use_cache else None
    return QuoteResolver(
        source,
        cache,
        max_in_flight=settings.max_in_flight,
        timeout_seconds=settings.quote_timeout_seconds,
    )


def load_store(path: str | Path) -> PositionStore:
    """Read and parse the position file. OSError and ParseError propagate."""
    return PositionStore.load(Path(path).read_bytes())


def file_writer(path: str | Path) -> Writer:
    """Writer that replaces `path` atomically with the serialized positions."""
    target = Path(path)

    def _write(data: bytes) -> None:
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, target)
        logger.info("Wrote %d bytes to %s", len(data), target)

    return _write


def read_key_events() -> Iterator[KeyEvent]:
    """Blocking key reads from the controlling terminal, decoded to events."""
    while True:
        try:
            raw = click.getchar()
        except (KeyboardInterrupt, EOFError):
            yield KeyEvent.of(Key.INTERRUPT)
            continue
        event = decode_key(raw)
        if event is not None:
            yield event


class TerminalApp:
    """
    One interactive run: session construction, event loop, live display,
    balance history bookkeeping.
    """

    def __init__(
        self,
        config: LaunchConfig,
        settings: Settings,
        *,
        resolver: QuoteResolver,
        history: BalanceHistory | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.settings = settings
        self.resolver = resolver
        self.history = history
        self.console = console or Console()
        self.session: Session | None = None
        self._metrics: PeriodMetrics | None = None

    def _baseline(self) -> ValuationSnapshot | None:
        if self.config.baseline != BaselineMode.PERSISTED or self.history is None:
            return None
        found = self.history.baseline_before(datetime.now())
        if found is None:
            logger.info("No persisted baseline yet; measuring against session start")
            return None
        as_of, total = found
        return ValuationSnapshot.baseline(total, as_of=as_of)

    def _on_revalue(self, snapshot: ValuationSnapshot) -> None:
        if self.history is None:
            return
        # A total missing unresolved positions would distort the history.
        if not snapshot.unresolved:
            self.history.record(snapshot.total_balance)
        self._metrics = compute_period_metrics(self.history.series, current_total=snapshot.total_balance)

    def start(self) -> Session:
        """Load positions, resolve quotes once, and build the session."""
        store = load_store(self.config.path)
        quotes = self.resolver.resolve_blocking(store.symbols())
        self.session = Session(
            store,
            quotes,
            self.config,
            refresher=self.resolver.resolve_blocking,
            writer=file_writer(self.config.path),
            baseline=self._baseline(),
            on_revalue=self._on_revalue,
        )
        self._on_revalue(self.session.snapshot)
        return self.session

    def frame(self):
        session = self.session
        return render(session.state, session.snapshot, metrics=self._metrics)

    def run(self, events: Iterator[KeyEvent] | None = None) -> int:
        """Run until the session quits. Returns a process exit status."""
        session = self.session or self.start()
        loop = EventLoop()
        loop.subscribe(session.handle)
        with Live(
            get_renderable=self.frame,
            console=self.console,
            screen=True,
            auto_refresh=True,
            refresh_per_second=self.settings.refresh_per_second,
        ) as live:
            loop.subscribe(lambda _event: live.refresh())
            loop.run(events if events is not None else read_key_events(), until=lambda: session.finished)

        if self.history is not None:
            self.history.save()
        if session.exit_error:
            self.console.print(f"[bold red]Changes were not saved:[/bold red] {session.exit_error}")
            return 1
        return 0
