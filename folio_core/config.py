"""
Launch configuration and environment-driven settings.

Both are plain values passed into the session and the runner at construction;
nothing here is read from process-wide state after startup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class Tab(Enum):
    OVERVIEW = "overview"
    BALANCES = "balances"
    PERFORMANCE = "performance"

    @property
    def title(self) -> str:
        return self.value.capitalize()

    @classmethod
    def all(cls) -> tuple[Tab, ...]:
        return (cls.OVERVIEW, cls.BALANCES, cls.PERFORMANCE)


class BaselineMode(Enum):
    """What performance is measured against."""

    SESSION = "session"  # snapshot taken when the session starts
    PERSISTED = "persisted"  # last total recorded on an earlier day


# UI element tags that can be hidden from the launch command line.
COMPONENTS = (
    "tabs",
    "total",
    "allocation-chart",
    "allocation-list",
    "balances",
    "performance",
    "history",
    "warnings",
    "help",
)


@dataclass(frozen=True)
class LaunchConfig:
    """
    What the command line hands the session: target file, starting tab,
    components to hide, performance baseline, and whether edits are written
    back immediately.
    """

    path: Path
    start_tab: Tab = Tab.OVERVIEW
    hidden_components: frozenset[str] = field(default_factory=frozenset)
    baseline: BaselineMode = BaselineMode.SESSION
    autosave: bool = True

    def __post_init__(self) -> None:
        unknown = set(self.hidden_components) - set(COMPONENTS)
        if unknown:
            raise ValueError(f"Unknown component tag(s): {', '.join(sorted(unknown))}")
        object.__setattr__(self, "path", Path(self.path))
        object.__setattr__(self, "hidden_components", frozenset(self.hidden_components))

    def visible_components(self) -> frozenset[str]:
        return frozenset(c for c in COMPONENTS if c not in self.hidden_components)


def _default_cache_dir() -> Path:
    return Path.home() / ".cache" / "folio"


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring malformed integer setting %r", value)
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring malformed numeric setting %r", value)
        return default


@dataclass(frozen=True)
class Settings:
    """Runtime settings. Defaults keep all state under ~/.cache/folio."""

    cache_path: Path = field(default_factory=lambda: _default_cache_dir() / "quotes.json")
    history_path: Path = field(default_factory=lambda: _default_cache_dir() / "history.csv")
    log_file: Path = field(default_factory=lambda: _default_cache_dir() / "folio.log")
    quote_timeout_seconds: float = 5.0
    max_in_flight: int = 8
    refresh_per_second: float = 4.0

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from FOLIO_* environment variables."""
        defaults = cls()

        def _path(name: str, default: Path) -> Path:
            raw = os.getenv(name)
            return Path(raw).expanduser() if raw else default

        return cls(
            cache_path=_path("FOLIO_CACHE_PATH", defaults.cache_path),
            history_path=_path("FOLIO_HISTORY_PATH", defaults.history_path),
            log_file=_path("FOLIO_LOG_FILE", defaults.log_file),
            quote_timeout_seconds=_as_float(os.getenv("FOLIO_QUOTE_TIMEOUT"), defaults.quote_timeout_seconds),
            max_in_flight=max(1, _as_int(os.getenv("FOLIO_MAX_IN_FLIGHT"), defaults.max_in_flight)),
            refresh_per_second=_as_float(os.getenv("FOLIO_REFRESH_PER_SECOND"), defaults.refresh_per_second),
        )
