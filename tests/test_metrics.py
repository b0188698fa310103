"""
Tests for folio_tui.metrics: YTD, monthly, recent change and max drawdown.
"""

from datetime import datetime

import pandas as pd
import pytest

from folio_tui.metrics import compute_period_metrics


def _series(points):
    index = pd.DatetimeIndex([pd.Timestamp(d) for d, _ in points], name="date")
    return pd.Series([v for _, v in points], index=index, dtype=float, name="total")


HISTORY = _series([
    ("2023-12-29", 1000.0),
    ("2024-05-01", 1100.0),
    ("2024-06-14", 1050.0),
])


def test_period_metrics():
    m = compute_period_metrics(HISTORY, datetime(2024, 6, 15), current_total=1155.0)
    assert m.current_total == 1155.0
    assert m.ytd_pct == pytest.approx(15.5)
    assert m.monthly_pct == pytest.approx(5.0)
    assert m.recent_pct == pytest.approx(10.0)
    assert m.max_drawdown_pct == pytest.approx(50.0 / 1100.0 * 100.0)
    assert m.observations == 4


def test_today_record_is_not_a_reference():
    history = _series([("2024-06-14", 100.0), ("2024-06-15", 200.0)])
    m = compute_period_metrics(history, datetime(2024, 6, 15), current_total=110.0)
    assert m.recent_pct == pytest.approx(10.0)


def test_ytd_falls_back_to_first_record_of_year():
    history = _series([("2024-01-10", 1000.0)])
    m = compute_period_metrics(history, datetime(2024, 6, 15), current_total=1100.0)
    assert m.ytd_pct == pytest.approx(10.0)
    assert m.monthly_pct == pytest.approx(10.0)


def test_short_history_gives_none():
    history = _series([("2024-06-10", 1000.0)])
    m = compute_period_metrics(history, datetime(2024, 6, 15), current_total=1000.0)
    assert m.monthly_pct is None
    assert m.recent_pct == 0.0
    assert m.max_drawdown_pct == 0.0


def test_empty_history():
    empty = _series([])
    assert compute_period_metrics(empty, datetime(2024, 6, 15)).observations == 0
    m = compute_period_metrics(empty, datetime(2024, 6, 15), current_total=500.0)
    assert m.observations == 1
    assert m.ytd_pct is None
    assert m.max_drawdown_pct is None


def test_current_total_defaults_to_last_record():
    m = compute_period_metrics(HISTORY, datetime(2024, 6, 20))
    assert m.current_total == 1050.0
