"""
Input events for the interactive session.

Events are immutable data carriers. The session reacts to them; they do not
contain behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Key(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    TAB = "tab"
    BACKTAB = "backtab"
    ENTER = "enter"
    ESCAPE = "escape"
    BACKSPACE = "backspace"
    CHAR = "char"
    INTERRUPT = "interrupt"
    TICK = "tick"


@dataclass(frozen=True)
class Event:
    """Something the session reacts to, stamped when it was read."""

    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class KeyEvent(Event):
    """One decoded key press. char is set only for Key.CHAR."""

    key: Key = Key.TICK
    char: str | None = None

    @classmethod
    def of(cls, key: Key, char: str | None = None) -> KeyEvent:
        return cls(key=key, char=char)

    @classmethod
    def text(cls, char: str) -> KeyEvent:
        return cls.of(Key.CHAR, char)
