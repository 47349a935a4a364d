"""
Command-Line Interface for StepSave.

Purpose
-------
Drives the savings-plan engine from a terminal: accounts, plans, entry
completion, the month view, analytics and backups. State lives in a single
JSON store document (see ``StoreRepository``).

Commands
--------
- register / login / logout / whoami: account and session handling
- plan create / list / use: manage the signed-in user's plans
- status: metrics for the active plan
- toggle / pay: mark entries completed
- calendar: month view with status filter
- analytics: chart series as CSV or a PNG figure
- report: summary table across all plans
- export / import: interchange bundles
- info: version and dependency information

Example Usage
-------------
    $ stepsave register alice
    $ stepsave plan create --name "Rent fund" --start 2024-01-01 --mode half
    $ stepsave pay
    $ stepsave calendar --month 2024-02 --filter overdue
    $ stepsave --data /tmp/store.json report --output report.csv
"""

from __future__ import annotations

import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .constants import MODES
from .exceptions import StepSaveError


# Lazy imports for performance
def _import_rich():
    """Lazy import Rich for better startup time."""
    try:
        from rich.console import Console
        from rich.table import Table
        from rich.panel import Panel
        return Console(), Table, Panel
    except ImportError:
        return None, None, None


def _get_console():
    """Get Rich console or fallback to basic printing."""
    console, *_ = _import_rich()
    return console


# Version
__version__ = "0.1.0"


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _today() -> date:
    return date.today()


def _parse_day(value: Optional[str]) -> date:
    from .utils import parse_date

    if not value:
        return _today()
    try:
        return parse_date(value)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


def _parse_month(value: Optional[str]) -> Tuple[int, int]:
    if not value:
        today = _today()
        return today.year, today.month
    try:
        year_text, month_text = value.split("-", 1)
        year, month = int(year_text), int(month_text)
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM, got {value!r}")
    if not 1 <= month <= 12:
        raise click.BadParameter(f"month out of range in {value!r}")
    return year, month


def _signed_in(ctx: click.Context):
    """Load the store and return (store, username) for the live session."""
    from .auth import current_session

    repo = ctx.obj["repo"]
    loaded = repo.load()
    store, session = current_session(loaded)
    if store is not loaded:
        repo.save(store)
    if session is None:
        _fail("Sign in first (stepsave login USERNAME).")
    return store, session.username


def _active_plan(ctx: click.Context):
    store, username = _signed_in(ctx)
    state = store.user_state(username)
    if state.active_plan is None:
        _fail("Create a plan first.")
    return store, username, state.active_plan


def _announce(ctx: click.Context, events) -> None:
    if ctx.obj.get("quiet"):
        return
    for event in events:
        click.echo(event.message)


def _echo_table(ctx: click.Context, title: str, headers: List[str], rows: List[List[str]]) -> None:
    console = ctx.obj.get("console")
    if console and not ctx.obj.get("quiet"):
        from rich.table import Table

        table = Table(title=title, show_header=True)
        for i, header in enumerate(headers):
            table.add_column(header, style="cyan" if i == 0 else None, justify="left" if i == 0 else "right")
        for row in rows:
            table.add_row(*row)
        console.print(table)
    else:
        click.echo("\t".join(headers))
        for row in rows:
            click.echo("\t".join(row))


@click.group()
@click.version_option(version=__version__, prog_name="stepsave")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level")
@click.option(
    "--data", "-d",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Store document path (default: STEPSAVE_DATA_PATH or ~/.local/share/stepsave/store.json)"
)
@click.pass_context
def main(ctx: click.Context, quiet: bool, verbose: bool, data: Optional[Path]) -> None:
    """
    StepSave - incremental savings-plan tracker.

    Build a deposit schedule that grows by a fixed step, tick off entries
    as you pay them, and follow your progress against the target.

    Use 'stepsave COMMAND --help' for command-specific help.
    """
    from .config import AppSettings
    from .storage import StoreRepository

    try:
        settings = AppSettings()
    except ValueError as e:
        _fail(f"Invalid settings: {e}")
    logging.basicConfig(
        level=logging.DEBUG if verbose or settings.debug else getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["console"] = _get_console()
    ctx.obj["currency"] = settings.currency
    try:
        ctx.obj["repo"] = StoreRepository(data or settings.data_path)
    except StepSaveError as e:
        _fail(str(e))


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

@main.command()
@click.argument("username")
@click.password_option("--password", "-p", help="Account password (prompted if omitted)")
@click.pass_context
def register(ctx: click.Context, username: str, password: str) -> None:
    """
    Create an account and sign in.

    Example:
        stepsave register alice
    """
    from .auth import register as register_user

    repo = ctx.obj["repo"]
    try:
        store, user, _ = register_user(repo.load(), username, password)
    except StepSaveError as e:
        _fail(str(e))
    repo.save(store)
    if not ctx.obj.get("quiet"):
        click.echo(f"Signed in as {user.username}")


@main.command()
@click.argument("username")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password")
@click.pass_context
def login(ctx: click.Context, username: str, password: str) -> None:
    """Sign in to an existing account."""
    from .auth import login as login_user

    repo = ctx.obj["repo"]
    try:
        store, session = login_user(repo.load(), username, password)
    except StepSaveError as e:
        _fail(str(e))
    repo.save(store)
    if not ctx.obj.get("quiet"):
        click.echo(f"Signed in as {session.username}")


@main.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """End the current session."""
    ctx.obj["repo"].clear_session()
    if not ctx.obj.get("quiet"):
        click.echo("Signed out")


@main.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show the signed-in user."""
    _, username = _signed_in(ctx)
    click.echo(username)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

@main.group()
def plan() -> None:
    """
    Plan management commands.

    Create plans, list them, and choose the active one.
    """
    pass


@plan.command("create")
@click.option("--name", "-n", required=True, help="Plan name")
@click.option("--start", "-s", default=None, help="Start date YYYY-MM-DD (default: today)")
@click.option("--mode", "-m", type=click.Choice(list(MODES)), default="full", help="Plan mode (default: full)")
@click.option("--amount", "-a", type=float, default=None, help="Fixed daily amount (simple mode)")
@click.option("--color", default=None, help="Color theme, e.g. '#7c5cff'")
@click.pass_context
def plan_create(
    ctx: click.Context,
    name: str,
    start: Optional[str],
    mode: str,
    amount: Optional[float],
    color: Optional[str],
) -> None:
    """
    Create a plan and make it active.

    Example:
        stepsave plan create -n "School fees" -s 2024-01-01 -m simple -a 5
    """
    from .ledger import create_plan

    store, username = _signed_in(ctx)
    payload = {
        "name": name,
        "start_date": _parse_day(start),
        "mode": mode,
        "fixed_daily_amount": amount,
        "color_theme": color,
    }
    try:
        new_plan = create_plan(payload)
        store = store.with_plan(username, new_plan).with_active_plan(username, new_plan.id)
    except StepSaveError as e:
        _fail(str(e))
    ctx.obj["repo"].save(store)

    if not ctx.obj.get("quiet"):
        from .utils import format_currency

        click.echo(
            f"Created {new_plan.name} [{new_plan.id}]: {new_plan.label}, "
            f"target {format_currency(new_plan.target_amount, ctx.obj['currency'])}"
        )


@plan.command("list")
@click.pass_context
def plan_list(ctx: click.Context) -> None:
    """List the signed-in user's plans."""
    from .utils import format_currency

    store, username = _signed_in(ctx)
    state = store.user_state(username)
    if not state.plans:
        click.echo("No plans yet.")
        return
    currency = ctx.obj["currency"]
    rows = [
        [
            ("* " if p.id == state.active_plan_id else "  ") + p.name,
            p.id,
            p.label,
            p.start_date.isoformat(),
            f"{len(p.completed_days)}/{p.total_days}",
            format_currency(p.target_amount, currency),
        ]
        for p in state.plans
    ]
    _echo_table(ctx, "Plans", ["Name", "Id", "Mode", "Start", "Done", "Target"], rows)


@plan.command("use")
@click.argument("plan_id")
@click.pass_context
def plan_use(ctx: click.Context, plan_id: str) -> None:
    """Make PLAN_ID the active plan."""
    store, username = _signed_in(ctx)
    if not any(p.id == plan_id for p in store.user_state(username).plans):
        _fail(f"No plan with id {plan_id!r}.")
    ctx.obj["repo"].save(store.with_active_plan(username, plan_id))
    if not ctx.obj.get("quiet"):
        click.echo(f"Active plan: {plan_id}")


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show metrics for the active plan."""
    from .metrics import compute_metrics
    from .report import variance_text
    from .utils import format_currency

    _, _, active = _active_plan(ctx)
    metrics = compute_metrics(active, _today())
    currency = ctx.obj["currency"]

    rows = [
        ["Plan", active.name],
        ["Mode", active.label],
        ["Today", str(metrics.current_index) if metrics.in_range else "outside plan range"],
        ["Saved", format_currency(metrics.completed_amount, currency)],
        ["Target", format_currency(active.target_amount, currency)],
        ["Progress", f"{metrics.progress_percent:.1f}%"],
        ["Projected by now", format_currency(metrics.projected_by_now, currency)],
        ["Variance", variance_text(metrics.variance_by_now, currency)],
        ["Overdue", str(metrics.overdue)],
        ["Upcoming", str(metrics.upcoming)],
        ["Streak", str(metrics.streak)],
        ["Next due", str(metrics.next_due_index) if metrics.next_due_index else "-"],
    ]
    _echo_table(ctx, "Status", ["Metric", "Value"], rows)


@main.command()
@click.argument("index", type=int)
@click.pass_context
def toggle(ctx: click.Context, index: int) -> None:
    """Flip entry INDEX of the active plan between pending and done."""
    from .ledger import toggle_completion

    store, username, active = _active_plan(ctx)
    if not 1 <= index <= active.total_days:
        _fail(f"Entry {index} is outside 1..{active.total_days}.")
    updated, events = toggle_completion(active, index)
    ctx.obj["repo"].save(store.with_plan(username, updated))
    if not ctx.obj.get("quiet"):
        state = "done" if updated.is_completed(index) else "pending"
        click.echo(f"Entry {index} is now {state}")
    _announce(ctx, events)


@main.command()
@click.pass_context
def pay(ctx: click.Context) -> None:
    """Mark today's entry of the active plan as paid."""
    from .ledger import mark_current_paid
    from .schedule import amount_for_index, current_index
    from .utils import format_currency

    store, username, active = _active_plan(ctx)
    today = _today()
    try:
        updated, events = mark_current_paid(active, today)
    except StepSaveError as e:
        _fail(str(e))
    ctx.obj["repo"].save(store.with_plan(username, updated))
    if not ctx.obj.get("quiet"):
        index = current_index(updated, today)
        click.echo(
            f"Paid entry {index}: "
            f"{format_currency(amount_for_index(updated, index), ctx.obj['currency'])}"
        )
    _announce(ctx, events)


@main.command()
@click.option("--month", "-m", default=None, help="Month as YYYY-MM (default: current month)")
@click.option(
    "--filter", "-f", "status_filter",
    type=click.Choice(["all", "done", "overdue", "upcoming"]),
    default="all",
    help="Show only entries with this status"
)
@click.pass_context
def calendar(ctx: click.Context, month: Optional[str], status_filter: str) -> None:
    """
    Show the month view of the active plan.

    Daily plans are drawn as a Monday-first grid; weekly plans list the
    entries due that month.
    """
    from .month_view import month_view
    from .utils import format_currency

    year, month_number = _parse_month(month)
    _, _, active = _active_plan(ctx)
    view = month_view(active, year, month_number, _today(), status_filter)

    click.echo(f"{active.name}: {date(year, month_number, 1):%B %Y}")
    if view.is_empty:
        click.echo("No entries due this month." if view.monthly_items == 0 else "No entries match this filter.")
        return

    if view.mode == "daily":
        click.echo(" ".join(f"{name:>4}" for name in ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")))
        for week in view.weeks:
            cells = []
            for cell in week:
                if not cell.in_month:
                    cells.append("    ")
                elif cell.visible:
                    mark = "x" if cell.entry.done else ("!" if cell.entry.overdue else ("*" if cell.entry.today else " "))
                    cells.append(f"{cell.day.day:>3}{mark}")
                elif cell.entry is None:
                    cells.append(f"{cell.day.day:>3} ")
                else:
                    cells.append("   .")
            click.echo(" ".join(cells))
        click.echo("x done  ! overdue  * today")
    else:
        currency = ctx.obj["currency"]
        for entry in view.entries:
            if not entry.matches(status_filter):
                continue
            state = "done" if entry.done else ("overdue" if entry.overdue else ("today" if entry.today else "upcoming"))
            click.echo(f"Week {entry.index:>2}  {entry.day.isoformat()}  {format_currency(entry.amount, currency)}  {state}")


# ---------------------------------------------------------------------------
# Analytics & Reports
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--output", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for one CSV file per series"
)
@click.option(
    "--plot", "-p", "plot_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Save the analytics figure to this PNG file"
)
@click.pass_context
def analytics(ctx: click.Context, output: Optional[Path], plot_path: Optional[Path]) -> None:
    """
    Chart series for the active plan.

    Example:
        stepsave analytics -o charts/ -p progress.png
    """
    from .analytics import build_analytics
    from .metrics import compute_metrics

    _, _, active = _active_plan(ctx)
    metrics = compute_metrics(active, _today())
    bundle = build_analytics(active, metrics)
    quiet = ctx.obj.get("quiet", False)

    projection = bundle.projection
    if not quiet:
        if projection.finish_index is not None:
            click.echo(f"Projected finish: entry {projection.finish_index} ({projection.finish_date.isoformat()})")
        else:
            click.echo("Projected finish: not enough history yet")

    if output:
        output.mkdir(parents=True, exist_ok=True)
        for name, frame in bundle.to_frames().items():
            frame.to_csv(output / f"{name}.csv")
        if not quiet:
            click.echo(f"Series saved to {output}")

    if plot_path:
        from .plotting import plot_analytics

        plot_analytics(bundle, title=active.name, color=active.color_theme, save_path=str(plot_path))
        if not quiet:
            click.echo(f"Figure saved to {plot_path}")


@main.command()
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the report as CSV to this file"
)
@click.pass_context
def report(ctx: click.Context, output: Optional[Path]) -> None:
    """
    Summary of every plan of the signed-in user.

    Example:
        stepsave report --output report.csv
    """
    from .report import build_report, report_totals
    from .utils import format_currency

    store, username = _signed_in(ctx)
    frame = build_report(store.user_state(username).plans, _today())
    currency = ctx.obj["currency"]

    if output:
        frame.to_csv(output)
        if not ctx.obj.get("quiet"):
            click.echo(f"CSV report saved to {output}")
        return

    if frame.empty:
        click.echo("No plans yet.")
        return

    rows = [
        [
            str(row.name),
            str(row.mode),
            format_currency(row.saved, currency),
            format_currency(row.target, currency),
            f"{row.progress_pct:.1f}%",
            str(row.overdue),
            format_currency(row.variance, currency),
        ]
        for row in frame.itertuples()
    ]
    totals = report_totals(frame)
    rows.append([
        f"Total ({totals['plans']})", "",
        format_currency(totals["saved"], currency),
        format_currency(totals["target"], currency),
        "", str(totals["overdue"]), "",
    ])
    _echo_table(ctx, "Plan Report", ["Plan", "Mode", "Saved", "Target", "Progress", "Overdue", "Variance"], rows)


# ---------------------------------------------------------------------------
# Interchange
# ---------------------------------------------------------------------------

@main.command("export")
@click.argument("output_file", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def export_cmd(ctx: click.Context, output_file: Path) -> None:
    """Write every account and plan to a JSON bundle (no session)."""
    from .serialization import save_bundle

    bundle = ctx.obj["repo"].export_bundle(datetime.now().astimezone())
    save_bundle(bundle, output_file)
    if not ctx.obj.get("quiet"):
        click.echo(f"Exported {len(bundle['users'])} users to {output_file}")


@main.command("import")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Replace the current store without asking")
@click.pass_context
def import_cmd(ctx: click.Context, input_file: Path, yes: bool) -> None:
    """
    Replace the whole store with a JSON bundle.

    The current session is dropped; sign in again afterwards.
    """
    from .serialization import load_bundle

    if not yes:
        click.confirm("This replaces all accounts and plans. Continue?", abort=True)
    try:
        store = ctx.obj["repo"].import_bundle(load_bundle(input_file))
    except StepSaveError as e:
        _fail(str(e))
    if not ctx.obj.get("quiet"):
        click.echo(f"Imported {len(store.users)} users from {input_file}")


@main.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """
    Display system and package information.

    Shows version numbers, installed dependencies, and the store location.
    """
    console = ctx.obj.get("console")

    info_lines = [
        f"StepSave Version: {__version__}",
        f"Python: {sys.version.split()[0]}",
        f"Store: {ctx.obj['repo'].path}",
    ]

    dependencies = {
        "numpy": "numpy",
        "pandas": "pandas",
        "pydantic": "pydantic",
        "matplotlib": "matplotlib",
        "rich": "rich",
        "click": "click",
    }

    for name, module in dependencies.items():
        try:
            mod = __import__(module)
            version = getattr(mod, "__version__", "installed")
            info_lines.append(f"{name}: {version}")
        except ImportError:
            info_lines.append(f"{name}: not installed")

    if console:
        from rich.panel import Panel
        console.print(Panel("\n".join(info_lines), title="System Information"))
    else:
        for line in info_lines:
            click.echo(line)


if __name__ == "__main__":
    main()
