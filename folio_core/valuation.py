"""
Valuation engine: positions + quotes -> balances, total, allocation, performance.

Pure. No I/O and no shared state; the same inputs always give the same snapshot.
Percentages are expressed in percent (0-100), matching how they are displayed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

import pandas as pd

from folio_core.position import Position
from folio_core.quotes.types import Quote


@dataclass(frozen=True)
class PositionBalance:
    """One valued position. balance is None when its quote could not be resolved."""

    name: str
    asset_class: str
    amount: float
    quote_symbol: str | None
    price: float | None
    balance: float | None
    stale: bool = False

    @property
    def unresolved(self) -> bool:
        return self.balance is None


@dataclass(frozen=True)
class ClassAllocation:
    asset_class: str
    balance: float
    percentage: float


@dataclass(frozen=True)
class Performance:
    """Change in total balance versus a baseline snapshot."""

    baseline_total: float
    delta: float
    percent_change: float
    baseline_as_of: datetime | None = None


@dataclass(frozen=True)
class ValuationSnapshot:
    """
    Derived portfolio state. Recomputed on every change; never persisted.
    allocation iterates in order of first appearance of each asset class.
    """

    positions: tuple[PositionBalance, ...] = ()
    total_balance: float = 0.0
    allocation: Mapping[str, ClassAllocation] = field(default_factory=lambda: MappingProxyType({}))
    performance: Performance | None = None
    as_of: datetime | None = None

    @property
    def unresolved(self) -> tuple[str, ...]:
        """Names of positions whose balance is unknown."""
        return tuple(p.name for p in self.positions if p.unresolved)

    def allocation_by_weight(self) -> list[ClassAllocation]:
        """Allocation sorted by percentage, largest first; ties keep first-appearance order."""
        return sorted(self.allocation.values(), key=lambda a: -a.percentage)

    @classmethod
    def baseline(cls, total_balance: float, as_of: datetime | None = None) -> ValuationSnapshot:
        """A bare snapshot carrying only a total, e.g. restored from balance history."""
        return cls(total_balance=total_balance, as_of=as_of)


def _value_position(position: Position, quotes: Mapping[str, Quote]) -> PositionBalance:
    if position.quote_symbol is None:
        return PositionBalance(
            name=position.name,
            asset_class=position.asset_class,
            amount=position.amount,
            quote_symbol=None,
            price=1.0,
            balance=position.amount,
        )
    quote = quotes.get(position.quote_symbol)
    if quote is None:
        return PositionBalance(
            name=position.name,
            asset_class=position.asset_class,
            amount=position.amount,
            quote_symbol=position.quote_symbol,
            price=None,
            balance=None,
        )
    return PositionBalance(
        name=position.name,
        asset_class=position.asset_class,
        amount=position.amount,
        quote_symbol=position.quote_symbol,
        price=quote.price,
        balance=position.amount * quote.price,
        stale=quote.stale,
    )


def _performance(total: float, prior: ValuationSnapshot | None) -> Performance:
    if prior is None:
        return Performance(baseline_total=total, delta=0.0, percent_change=0.0)
    delta = total - prior.total_balance
    percent = delta / prior.total_balance * 100.0 if prior.total_balance else 0.0
    return Performance(
        baseline_total=prior.total_balance,
        delta=delta,
        percent_change=percent,
        baseline_as_of=prior.as_of,
    )


def compute(
    positions: Iterable[Position],
    quotes: Mapping[str, Quote],
    prior_snapshot: ValuationSnapshot | None = None,
    *,
    as_of: datetime | None = None,
) -> ValuationSnapshot:
    """
    Value every position and aggregate.

    - No quote_symbol: balance = amount.
    - Symbol missing from quotes: listed as unresolved, excluded from total and allocation.
    - Allocation: per-class sum / total, 0% for every class when total is 0.
    - Performance: delta and percent change versus prior_snapshot (itself when None).
    """
    valued = tuple(_value_position(p, quotes) for p in positions)

    frame = pd.DataFrame(
        {
            "asset_class": pd.Series([v.asset_class for v in valued], dtype=object),
            "balance": pd.Series([v.balance for v in valued], dtype=float),
        }
    )
    resolved = frame.dropna(subset=["balance"])
    total = float(resolved["balance"].sum()) if not resolved.empty else 0.0

    by_class = resolved.groupby("asset_class", sort=False)["balance"].sum()
    allocation: dict[str, ClassAllocation] = {}
    for asset_class, class_total in by_class.items():
        class_total = float(class_total)
        percentage = class_total / total * 100.0 if total > 0 else 0.0
        allocation[str(asset_class)] = ClassAllocation(
            asset_class=str(asset_class),
            balance=class_total,
            percentage=percentage,
        )

    return ValuationSnapshot(
        positions=valued,
        total_balance=total,
        allocation=MappingProxyType(allocation),
        performance=_performance(total, prior_snapshot),
        as_of=as_of,
    )
