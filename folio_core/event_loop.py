"""
Event loop: single-threaded, in-order event processing for the session.

Dispatches events to registered handlers. No async; the order of handlers is
explicit (state machine first, then the re-render).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from folio_core.events import Event


class EventLoop:
    """
    Handlers are called in registration order for each event. The loop itself
    does no I/O; the terminal runner feeds it decoded key presses.
    """

    def __init__(self) -> None:
        self._handlers: list[Callable[[Event], None]] = []

    def subscribe(self, handler: Callable[[Event], None]) -> None:
        """Add a handler; it sees every dispatched event."""
        self._handlers.append(handler)

    def dispatch(self, event: Event) -> None:
        """Hand one event to each handler in registration order."""
        for handler in self._handlers:
            handler(event)

    def run(self, events: Iterable[Event], *, until: Callable[[], bool] | None = None) -> None:
        """Process events in order, stopping early once `until()` is true."""
        for event in events:
            self.dispatch(event)
            if until is not None and until():
                break
