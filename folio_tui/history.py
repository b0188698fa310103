"""
Daily total-balance history, persisted as CSV (date,total).

Backs the persisted performance baseline and the period metrics on the
Performance tab. One value per calendar day; the last write of a day wins.
"""

from __future__ import annotations

import logging
import os
from datetime import date, datetime
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)


def _empty_series() -> pd.Series:
    return pd.Series(dtype=float, index=pd.DatetimeIndex([], name="date"), name="total")


def _day(when: date | datetime | pd.Timestamp) -> pd.Timestamp:
    return pd.Timestamp(when).normalize()


class BalanceHistory:
    """Total balance per day. Missing or corrupt files load as an empty history."""

    def __init__(self, series: pd.Series | None = None, *, path: str | Path | None = None) -> None:
        self._series = _empty_series() if series is None else series.sort_index()
        self._path = Path(path).expanduser() if path is not None else None

    @classmethod
    def load(cls, path: str | Path) -> BalanceHistory:
        """
        Read history from CSV.

        Parameters
        ----------
        path : str or Path
            CSV file with columns date, total. Need not exist yet.
        """
        path = Path(path).expanduser()
        if not path.exists():
            return cls(path=path)
        try:
            df = pd.read_csv(path)
            df.columns = [str(c).lower().strip() for c in df.columns]
            df["date"] = pd.to_datetime(df["date"]).dt.normalize()
            series = df.set_index("date")["total"].astype(float)
        except (OSError, KeyError, ValueError, pd.errors.ParserError) as e:
            logger.warning("Balance history %s unreadable, starting empty: %s", path, e)
            return cls(path=path)
        series = series[~series.index.duplicated(keep="last")].rename("total")
        series.index.name = "date"
        return cls(series, path=path)

    @property
    def series(self) -> pd.Series:
        return self._series.copy()

    def __len__(self) -> int:
        return len(self._series)

    def record(self, total: float, when: date | datetime | None = None) -> None:
        """Store today's (or `when`'s) total, replacing any earlier value for that day."""
        day = _day(when or datetime.now())
        series = self._series.copy()
        series.loc[day] = float(total)
        self._series = series.sort_index()

    def baseline_before(self, when: date | datetime) -> tuple[datetime, float] | None:
        """Most recent (day, total) strictly before the day of `when`."""
        earlier = self._series[self._series.index < _day(when)]
        if earlier.empty:
            return None
        return earlier.index[-1].to_pydatetime(), float(earlier.iloc[-1])

    def save(self) -> bool:
        """Write atomically. Failures are logged; returns False if nothing was written."""
        if self._path is None:
            return False
        frame = self._series.rename("total").rename_axis("date").reset_index()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            frame.to_csv(tmp_path, index=False, date_format="%Y-%m-%d")
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.warning("Could not save balance history %s: %s", self._path, e)
            return False
        logger.debug("Balance history saved: %d days", len(frame))
        return True
