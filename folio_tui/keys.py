"""Raw terminal key sequences (as returned by click.getchar) -> KeyEvent."""

from __future__ import annotations

from folio_core.events import Key, KeyEvent

SEQUENCES: dict[str, Key] = {
    "\x1b[A": Key.UP,
    "\x1b[B": Key.DOWN,
    "\x1b[C": Key.RIGHT,
    "\x1b[D": Key.LEFT,
    "\x1bOA": Key.UP,
    "\x1bOB": Key.DOWN,
    "\x1bOC": Key.RIGHT,
    "\x1bOD": Key.LEFT,
    "\x1b[Z": Key.BACKTAB,
    "\t": Key.TAB,
    "\r": Key.ENTER,
    "\n": Key.ENTER,
    "\x1b": Key.ESCAPE,
    "\x7f": Key.BACKSPACE,
    "\x08": Key.BACKSPACE,
    "\x03": Key.INTERRUPT,
    # Windows console: prefix byte followed by scan code
    "\xe0H": Key.UP,
    "\xe0P": Key.DOWN,
    "\xe0M": Key.RIGHT,
    "\xe0K": Key.LEFT,
    "\x00H": Key.UP,
    "\x00P": Key.DOWN,
    "\x00M": Key.RIGHT,
    "\x00K": Key.LEFT,
}


def decode_key(raw: str) -> KeyEvent | None:
    """Map one read to an event. Unknown escape sequences are dropped (None)."""
    if not raw:
        return None
    key = SEQUENCES.get(raw)
    if key is not None:
        return KeyEvent.of(key)
    if raw.startswith("\x1b") or raw[0] in "\xe0\x00":
        return None
    if raw.isprintable():
        return KeyEvent.text(raw)
    return None
