"""
Period performance from the daily balance history: YTD, monthly, since last
record, and max drawdown.

Each figure is None when the history is too short to support it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

import numpy as np
import pandas as pd

MONTH_DAYS = 30


@dataclass
class PeriodMetrics:
    """Percent changes of the current total versus earlier recorded totals."""

    current_total: float | None = None
    ytd_pct: float | None = None
    monthly_pct: float | None = None
    recent_pct: float | None = None
    max_drawdown_pct: float | None = None
    observations: int = 0


def _pct_change(current: float, reference: float | None) -> float | None:
    if reference is None or reference == 0:
        return None
    return (current - reference) / reference * 100.0


def _last_on_or_before(series: pd.Series, when: pd.Timestamp) -> float | None:
    sub = series[series.index <= when]
    return float(sub.iloc[-1]) if not sub.empty else None


def compute_period_metrics(
    history: pd.Series,
    today: date | datetime | None = None,
    *,
    current_total: float | None = None,
) -> PeriodMetrics:
    """
    Compute period metrics from a daily total series.

    Parameters
    ----------
    history : pd.Series
        Totals indexed by day (DatetimeIndex), as kept by BalanceHistory.
    today : date or datetime, optional
        Reference day (default: now).
    current_total : float, optional
        Live total; defaults to the latest recorded value.

    Returns
    -------
    PeriodMetrics
        ytd_pct against the last total of the previous year (or the first of
        this year), monthly_pct against the last total at least 30 days old,
        recent_pct against the last total before today, and max drawdown over
        the whole series including the current total.
    """
    day = pd.Timestamp(today or datetime.now()).normalize()
    series = history.sort_index()
    if current_total is None:
        if series.empty:
            return PeriodMetrics()
        current_total = float(series.iloc[-1])

    before_today = series[series.index < day]
    year_start = pd.Timestamp(year=day.year, month=1, day=1)
    ytd_ref = _last_on_or_before(before_today, year_start - timedelta(days=1))
    if ytd_ref is None:
        this_year = before_today[before_today.index >= year_start]
        ytd_ref = float(this_year.iloc[0]) if not this_year.empty else None
    monthly_ref = _last_on_or_before(before_today, day - timedelta(days=MONTH_DAYS))
    recent_ref = float(before_today.iloc[-1]) if not before_today.empty else None

    values = np.append(before_today.to_numpy(dtype=float), current_total)
    max_dd_pct: float | None = None
    if len(values) >= 2:
        peak = np.maximum.accumulate(values)
        with np.errstate(divide="ignore", invalid="ignore"):
            drawdowns = np.where(peak > 0, (peak - values) / peak, 0.0)
        max_dd_pct = float(np.max(drawdowns) * 100.0)

    return PeriodMetrics(
        current_total=current_total,
        ytd_pct=_pct_change(current_total, ytd_ref),
        monthly_pct=_pct_change(current_total, monthly_ref),
        recent_pct=_pct_change(current_total, recent_ref),
        max_drawdown_pct=max_dd_pct,
        observations=len(values),
    )
