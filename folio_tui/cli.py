"""
Command-line entry point: `folio`.

Turns arguments into a LaunchConfig and hands off to the interactive runner
or to a printed report. A position file that fails to parse ends the process
with status 1; nothing else does.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console

from folio_core.config import COMPONENTS, BaselineMode, LaunchConfig, Settings, Tab
from folio_core.errors import ParseError
from folio_core.store import PositionStore
from folio_core.valuation import ValuationSnapshot, compute
from folio_tui.app import TerminalApp, build_resolver, load_store
from folio_tui.history import BalanceHistory
from folio_tui.metrics import compute_period_metrics
from folio_tui.report import print_allocation, print_balances, print_performance

logger = logging.getLogger(__name__)

console = Console()

position_file = click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
no_cache_option = click.option("--no-cache", is_flag=True, help="Do not read or write the local quote cache.")
baseline_option = click.option(
    "--baseline",
    type=click.Choice([m.value for m in BaselineMode]),
    default=BaselineMode.SESSION.value,
    show_default=True,
    help="Measure performance against session start or the last recorded day.",
)


def _configure_logging(verbose: bool, log_file: Path | None = None) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(filename=str(log_file), level=min(level, logging.INFO), format=fmt, force=True)
    else:
        logging.basicConfig(level=level, format=fmt, force=True)


def _load(path: Path) -> PositionStore:
    try:
        return load_store(path)
    except ParseError as e:
        raise click.ClickException(f"{path}: {e}") from e
    except OSError as e:
        raise click.ClickException(f"Could not read {path}: {e}") from e


@click.group()
@click.version_option(package_name="folio-tui", prog_name="folio")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Track a portfolio from a JSON position file."""
    _configure_logging(verbose)
    ctx.obj = {"verbose": verbose, "settings": Settings.from_env()}


@cli.command()
@position_file
@click.option(
    "--tab",
    type=click.Choice([t.value for t in Tab.all()]),
    default=Tab.OVERVIEW.value,
    show_default=True,
    help="Tab shown at startup.",
)
@click.option(
    "--hide",
    multiple=True,
    type=click.Choice(COMPONENTS),
    help="Hide a UI component. Repeatable.",
)
@baseline_option
@no_cache_option
@click.option("--no-autosave", is_flag=True, help="Only write changes back on exit.")
@click.pass_context
def tui(
    ctx: click.Context,
    path: Path,
    tab: str,
    hide: tuple[str, ...],
    baseline: str,
    no_cache: bool,
    no_autosave: bool,
) -> None:
    """Interactive terminal UI with in-place editing."""
    settings: Settings = ctx.obj["settings"]
    _configure_logging(ctx.obj["verbose"], settings.log_file)
    config = LaunchConfig(
        path=path,
        start_tab=Tab(tab),
        hidden_components=frozenset(hide),
        baseline=BaselineMode(baseline),
        autosave=not no_autosave,
    )
    _load(path)
    logger.info("Starting interactive session for %s", path)
    app = TerminalApp(
        config,
        settings,
        resolver=build_resolver(settings, use_cache=not no_cache),
        history=BalanceHistory.load(settings.history_path),
        console=console,
    )
    ctx.exit(app.run())


def _snapshot(ctx: click.Context, path: Path, no_cache: bool, baseline: ValuationSnapshot | None = None):
    settings: Settings = ctx.obj["settings"]
    store = _load(path)
    logger.debug("Resolving %d symbols for %s", len(store.symbols()), path)
    resolver = build_resolver(settings, use_cache=not no_cache)
    with console.status("Fetching quotes..."):
        quotes = resolver.resolve_blocking(store.symbols())
    return compute(store.positions, quotes.quotes, baseline, as_of=datetime.now()), quotes


@cli.command()
@position_file
@no_cache_option
@click.pass_context
def balances(ctx: click.Context, path: Path, no_cache: bool) -> None:
    """Print the balance of every position."""
    snapshot, quotes = _snapshot(ctx, path, no_cache)
    print_balances(console, snapshot, quotes)


@cli.command()
@position_file
@no_cache_option
@click.pass_context
def allocation(ctx: click.Context, path: Path, no_cache: bool) -> None:
    """Print the allocation per asset class."""
    snapshot, quotes = _snapshot(ctx, path, no_cache)
    print_allocation(console, snapshot, quotes)


@cli.command()
@position_file
@baseline_option
@no_cache_option
@click.pass_context
def performance(ctx: click.Context, path: Path, baseline: str, no_cache: bool) -> None:
    """Print performance against the baseline and from the balance history."""
    settings: Settings = ctx.obj["settings"]
    history = BalanceHistory.load(settings.history_path)
    prior = None
    if BaselineMode(baseline) == BaselineMode.PERSISTED:
        found = history.baseline_before(datetime.now())
        if found is not None:
            as_of, total = found
            prior = ValuationSnapshot.baseline(total, as_of=as_of)
    snapshot, quotes = _snapshot(ctx, path, no_cache, prior)
    metrics = compute_period_metrics(history.series, current_total=snapshot.total_balance)
    print_performance(console, snapshot, quotes, metrics)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
