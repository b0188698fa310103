"""
Render adapter: SessionState + ValuationSnapshot -> rich renderable tree.

Stateless projection; reads its inputs and never mutates them. Hidden
components are left out of the tree entirely so the remaining sections take
up the freed space.
"""

from __future__ import annotations

from rich import box
from rich.align import Align
from rich.bar import Bar
from rich.console import Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from folio_core.config import Tab
from folio_core.position import KNOWN_ASSET_CLASSES
from folio_core.session import Mode, SessionState
from folio_core.valuation import ValuationSnapshot
from folio_tui.metrics import PeriodMetrics

UNKNOWN = "—"

CLASS_COLORS = dict(zip(KNOWN_ASSET_CLASSES, ("cyan", "blue", "magenta", "yellow", "bright_magenta", "green")))
OTHER_COLOR = "white"

HELP_VIEWING = "Tab/←→ switch tabs | 1-3 jump | ↑↓ select | e/Enter edit (Balances) | r refresh | q/Esc quit"
HELP_EDITING = "Type amount | Enter save | Esc cancel | Backspace delete"


def format_money(value: float) -> str:
    return f"{value:,.2f}"


def format_amount(amount: float) -> str:
    text = f"{amount:,.8f}".rstrip("0")
    whole, _, frac = text.partition(".")
    return f"{whole}.{frac.ljust(2, '0')}"


def _signed_style(value: float) -> str:
    return "green" if value >= 0 else "red"


def _class_color(asset_class: str) -> str:
    return CLASS_COLORS.get(asset_class, OTHER_COLOR)


def _tabs(state: SessionState) -> Panel:
    text = Text()
    for i, tab in enumerate(Tab.all()):
        if i:
            text.append(" │ ", style="dim")
        style = "bold yellow" if tab == state.active_tab else "white"
        text.append(f"{i + 1} {tab.title}", style=style)
    return Panel(text, title="Portfolio", box=box.ROUNDED)


def _total(snapshot: ValuationSnapshot) -> Panel:
    value = Text(format_money(snapshot.total_balance), style="bold green")
    if snapshot.unresolved:
        value.append(f"\n(excludes {len(snapshot.unresolved)} unresolved)", style="yellow")
    return Panel(Align.center(value, vertical="middle"), title="Total Portfolio Value", title_align="center")


def _allocation_chart(snapshot: ValuationSnapshot) -> Panel:
    table = Table.grid(padding=(0, 1), expand=True)
    table.add_column("class", no_wrap=True, width=14)
    table.add_column("bar", ratio=1)
    table.add_column("pct", justify="right", width=8)
    for alloc in snapshot.allocation_by_weight():
        color = _class_color(alloc.asset_class)
        table.add_row(
            Text(alloc.asset_class, style=color),
            Bar(size=100.0, begin=0.0, end=alloc.percentage, color=color),
            f"{alloc.percentage:.2f}%",
        )
    return Panel(table, title="Asset Allocation")


def _allocation_list(state: SessionState, snapshot: ValuationSnapshot) -> Panel:
    table = Table(box=box.SIMPLE_HEAD, expand=True)
    table.add_column("Asset Class")
    table.add_column("Balance", justify="right")
    table.add_column("Share", justify="right")
    for i, alloc in enumerate(snapshot.allocation_by_weight()):
        selected = state.active_tab == Tab.OVERVIEW and i == state.selected_index
        table.add_row(
            Text(alloc.asset_class, style=_class_color(alloc.asset_class)),
            format_money(alloc.balance),
            f"{alloc.percentage:.2f}%",
            style="reverse" if selected else None,
        )
    return Panel(table, title="Detailed Allocation")


def _amount_cell(amount: float, state: SessionState, name: str) -> Text:
    buffer = state.edit_buffer
    if state.mode != Mode.EDITING or buffer is None or buffer.name != name:
        return Text(format_amount(amount))
    style = "bold white on blue" if buffer.valid else "bold white on red"
    return Text(buffer.text + "▏", style=style)


def _balances(state: SessionState, snapshot: ValuationSnapshot) -> Panel:
    table = Table(box=box.SIMPLE_HEAD, expand=True)
    table.add_column("Name")
    table.add_column("Asset Class")
    table.add_column("Amount", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Balance", justify="right")
    for i, p in enumerate(snapshot.positions):
        if p.unresolved:
            price, balance = Text(UNKNOWN, style="yellow"), Text(UNKNOWN, style="yellow")
        else:
            price = Text(UNKNOWN if p.quote_symbol is None else format_money(p.price))
            balance = Text(format_money(p.balance))
            if p.stale:
                balance.append(" *", style="yellow")
        selected = state.active_tab == Tab.BALANCES and i == state.selected_index
        table.add_row(
            p.name,
            Text(p.asset_class, style=_class_color(p.asset_class)),
            _amount_cell(p.amount, state, p.name),
            price,
            balance,
            style="reverse" if selected and state.mode != Mode.EDITING else None,
        )
    table.add_section()
    table.add_row(Text("TOTAL", style="bold green"), "", "", "", Text(format_money(snapshot.total_balance), style="bold green"))

    renderables = [table]
    buffer = state.edit_buffer
    if buffer is not None and buffer.error:
        renderables.append(Text(buffer.error, style="red"))
    if any(p.stale for p in snapshot.positions):
        renderables.append(Text("* cached price, live quote unavailable", style="dim yellow"))
    return Panel(Group(*renderables), title="Portfolio Balances")


def _performance(snapshot: ValuationSnapshot) -> Panel:
    perf = snapshot.performance
    if perf is None:
        return Panel(Text("No baseline available."), title="Performance")
    table = Table.grid(padding=(0, 2))
    table.add_column(style="white")
    table.add_column(justify="right")
    since = f" ({perf.baseline_as_of:%Y-%m-%d %H:%M})" if perf.baseline_as_of else ""
    table.add_row(f"Baseline{since}", format_money(perf.baseline_total))
    table.add_row("Current", format_money(snapshot.total_balance))
    style = _signed_style(perf.delta)
    table.add_row("Change", Text(f"{perf.delta:+,.2f}", style=f"bold {style}"))
    table.add_row("Change %", Text(f"{perf.percent_change:+.2f}%", style=f"bold {style}"))
    return Panel(table, title="Performance")


def _history(metrics: PeriodMetrics | None) -> Panel:
    if metrics is None or metrics.observations == 0:
        return Panel(Text("No balance history recorded yet.", style="dim"), title="History")
    table = Table.grid(padding=(0, 2))
    table.add_column(style="white")
    table.add_column(justify="right")
    for label, value in (
        ("YTD", metrics.ytd_pct),
        ("Monthly", metrics.monthly_pct),
        ("Since last record", metrics.recent_pct),
    ):
        if value is None:
            table.add_row(label, Text("n/a", style="dim"))
        else:
            table.add_row(label, Text(f"{value:+.2f}%", style=f"bold {_signed_style(value)}"))
    if metrics.max_drawdown_pct is None:
        table.add_row("Max drawdown", Text("n/a", style="dim"))
    else:
        table.add_row("Max drawdown", Text(f"{metrics.max_drawdown_pct:.2f}%", style="red"))
    return Panel(table, title=f"History ({metrics.observations} days)")


def _warnings(state: SessionState) -> Panel | None:
    lines: list[Text] = []
    if state.status_message:
        lines.append(Text(state.status_message, style="bold"))
    lines.extend(Text(w, style="yellow") for w in state.warnings)
    if not lines:
        return None
    return Panel(Group(*lines), title="Messages", border_style="yellow")


def _body(
    state: SessionState,
    snapshot: ValuationSnapshot,
    visible: frozenset[str],
    metrics: PeriodMetrics | None,
) -> Layout | None:
    sections: list[Layout] = []
    if state.active_tab == Tab.OVERVIEW:
        if "total" in visible:
            sections.append(Layout(_total(snapshot), name="total", size=5 if not snapshot.unresolved else 6))
        row = []
        if "allocation-chart" in visible:
            row.append(Layout(_allocation_chart(snapshot), name="allocation-chart", ratio=3))
        if "allocation-list" in visible:
            row.append(Layout(_allocation_list(state, snapshot), name="allocation-list", ratio=2))
        if row:
            allocation = Layout(name="allocation")
            allocation.split_row(*row)
            sections.append(allocation)
    elif state.active_tab == Tab.BALANCES:
        if "balances" in visible:
            sections.append(Layout(_balances(state, snapshot), name="balances"))
    else:
        if "performance" in visible:
            sections.append(Layout(_performance(snapshot), name="performance"))
        if "history" in visible:
            sections.append(Layout(_history(metrics), name="history"))
    if not sections:
        return None
    body = Layout(name="body", ratio=1)
    body.split_column(*sections)
    return body


def render(
    state: SessionState,
    snapshot: ValuationSnapshot,
    visible_components: frozenset[str] | None = None,
    *,
    metrics: PeriodMetrics | None = None,
) -> Layout:
    """
    Build the widget tree for one frame.

    visible_components defaults to state.visible_components; any tag not in it
    is omitted from the tree.
    """
    visible = state.visible_components if visible_components is None else frozenset(visible_components)
    sections: list[Layout] = []
    if "tabs" in visible:
        sections.append(Layout(_tabs(state), name="tabs", size=3))
    body = _body(state, snapshot, visible, metrics)
    if body is not None:
        sections.append(body)
    if "warnings" in visible:
        messages = _warnings(state)
        if messages is not None:
            height = 2 + (1 if state.status_message else 0) + len(state.warnings)
            sections.append(Layout(messages, name="warnings", size=height))
    if "help" in visible:
        help_text = HELP_EDITING if state.mode == Mode.EDITING else HELP_VIEWING
        sections.append(Layout(Panel(Text(help_text, style="dim"), title="Help"), name="help", size=3))

    root = Layout(name="root")
    if sections:
        root.split_column(*sections)
    return root
