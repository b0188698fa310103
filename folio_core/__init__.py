"""
folio-core: valuation and session engine for a file-backed personal portfolio.

No terminal drawing, no HTTP client details. Positions in, quotes in, snapshots
and UI state out.
"""

__version__ = "0.1.0"

from folio_core.config import BaselineMode, LaunchConfig, Settings, Tab
from folio_core.errors import (
    CacheError,
    EditError,
    EditErrorKind,
    FolioError,
    ParseError,
    QuoteFetchError,
    SerializeError,
)
from folio_core.event_loop import EventLoop
from folio_core.events import Event, Key, KeyEvent
from folio_core.position import Position
from folio_core.session import EditBuffer, Mode, Session, SessionState
from folio_core.store import PositionStore
from folio_core.valuation import ValuationSnapshot, compute

__all__ = [
    "BaselineMode",
    "LaunchConfig",
    "Settings",
    "Tab",
    "CacheError",
    "EditError",
    "EditErrorKind",
    "FolioError",
    "ParseError",
    "QuoteFetchError",
    "SerializeError",
    "Event",
    "EventLoop",
    "Key",
    "KeyEvent",
    "Position",
    "PositionStore",
    "EditBuffer",
    "Mode",
    "Session",
    "SessionState",
    "ValuationSnapshot",
    "compute",
]
