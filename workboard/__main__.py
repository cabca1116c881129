"""CLI entry point: database setup, demo data and workboard inspection.

Usage:
    python -m workboard init-db                          # create the database
    python -m workboard seed-demo --customer demo        # load demo data
    python -m workboard list-workboards --customer demo  # list workboards
    python -m workboard show WORKBOARD_ID --customer demo --sort value --desc
    python -m workboard set-sla proposal 14 --customer demo
    python -m workboard serve                            # launch the API
"""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import config
from .database import get_connection, init_db
from .errors import WorkboardError

console = Console()


# ---------------------------------------------------------------------------
# Subcommand: init-db
# ---------------------------------------------------------------------------

def cmd_init_db(args: argparse.Namespace) -> None:
    init_db()
    console.print(f"[green]Database ready at {config.DB_PATH}[/green]")


# ---------------------------------------------------------------------------
# Subcommand: seed-demo
# ---------------------------------------------------------------------------

def cmd_seed_demo(args: argparse.Namespace) -> None:
    """Load the demo tenant (companies, contacts, deals, activities)."""
    from .seed import seed_demo

    init_db()
    with get_connection() as conn:
        counts = seed_demo(conn, args.customer)

    if not any(counts.values()):
        console.print(f"\n[yellow]Customer {args.customer} already has demo data.[/yellow]")
        return
    console.print(f"\n[bold green]Seeded customer {args.customer}:[/bold green]")
    for table, count in counts.items():
        console.print(f"  {table}: {count}")


# ---------------------------------------------------------------------------
# Subcommand: list-workboards
# ---------------------------------------------------------------------------

def cmd_list_workboards(args: argparse.Namespace) -> None:
    from .workboards.crud import list_workboards

    init_db()
    with get_connection() as conn:
        boards = list_workboards(conn, args.customer, args.user or "", args.entity_type)

    table = Table(title="Workboards")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Entity")
    table.add_column("Columns", justify="right")
    table.add_column("Filters", justify="right")
    table.add_column("Default")
    table.add_column("Shared")

    for wb in boards:
        table.add_row(
            wb.id,
            wb.name,
            wb.entity_type.value,
            str(len(wb.columns)),
            str(len(wb.filters)),
            "yes" if wb.is_default else "",
            "yes" if wb.is_shared else "",
        )

    console.print()
    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# Subcommand: show
# ---------------------------------------------------------------------------

def cmd_show(args: argparse.Namespace) -> None:
    """Run a workboard and print one page."""
    from .settings import get_sla_thresholds
    from .store import SqliteEntityStore
    from .workboards.crud import get_workboard
    from .workboards.engine import execute_workboard
    from .workboards.filters import describe_filter
    from .workboards.formatting import render_cell

    init_db()
    with get_connection() as conn:
        wb = get_workboard(conn, args.workboard_id, args.customer)

    sort_field = args.sort or None
    sort_direction = ("desc" if args.desc else "asc") if sort_field else None

    result = execute_workboard(
        SqliteEntityStore(), wb,
        page=args.page,
        sort_field=sort_field,
        sort_direction=sort_direction,
        sla_thresholds=get_sla_thresholds(args.customer),
    )

    table = Table(title=wb.name)
    for col in wb.columns:
        justify = "right" if col.format and col.format.value in ("number", "currency") else "left"
        table.add_column(col.label, justify=justify)
    for row in result.rows:
        table.add_row(*[render_cell(col, row.get(col.field)) for col in wb.columns])

    console.print()
    for filt in wb.filters:
        console.print(f"  [dim]filter:[/dim] {describe_filter(filt, wb.entity_type)}")
    console.print(table)
    console.print(
        f"  Page {result.page} · {len(result.rows)} of {result.total} rows"
        + (" · more available" if result.has_more else "")
    )
    console.print()


# ---------------------------------------------------------------------------
# Subcommand: set-sla
# ---------------------------------------------------------------------------

def cmd_set_sla(args: argparse.Namespace) -> None:
    from .settings import get_sla_thresholds, set_sla_days

    init_db()
    days = None if args.days.lower() == "none" else int(args.days)
    set_sla_days(args.customer, args.stage, days)
    thresholds = get_sla_thresholds(args.customer)
    console.print(f"\n[bold green]SLA thresholds for {args.customer}:[/bold green]")
    for stage, limit in sorted(thresholds.items()):
        console.print(f"  {stage}: {limit} days")


# ---------------------------------------------------------------------------
# Subcommand: serve
# ---------------------------------------------------------------------------

def cmd_serve(args: argparse.Namespace) -> None:
    """Launch the JSON API."""
    import uvicorn

    from .web.app import create_app

    app = create_app()
    console.print(f"\n[bold]Starting workboard API at http://{args.host}:{args.port}[/bold]")
    uvicorn.run(app, host=args.host, port=args.port)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workboard",
        description="CRM workboard engine",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init-db", help="Create the database and tables")

    sd = sub.add_parser("seed-demo", help="Load demo companies, contacts and deals")
    sd.add_argument("--customer", default="demo", help="Customer ID to seed")

    lw = sub.add_parser("list-workboards", help="List workboards for a customer")
    lw.add_argument("--customer", required=True, help="Customer ID")
    lw.add_argument("--user", help="User ID (includes their private workboards)")
    lw.add_argument("--entity-type", choices=["deals", "contacts", "companies"])

    sh = sub.add_parser("show", help="Run a workboard and print a page of rows")
    sh.add_argument("workboard_id", help="Workboard ID")
    sh.add_argument("--customer", required=True, help="Customer ID")
    sh.add_argument("--page", type=int, default=1)
    sh.add_argument("--sort", help="Sort field (overrides the saved sort)")
    sh.add_argument("--desc", action="store_true", help="Sort descending")

    ss = sub.add_parser("set-sla", help="Set days allowed in a deal stage")
    ss.add_argument("stage", help="Deal stage, e.g. proposal")
    ss.add_argument("days", help="Days, or 'none' to remove the threshold")
    ss.add_argument("--customer", required=True, help="Customer ID")

    sv = sub.add_parser("serve", help="Launch the JSON API")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", type=int, default=8000)

    return parser


def main() -> None:
    # Set up logging
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )

    parser = build_parser()
    args = parser.parse_args()

    commands = {
        "init-db": cmd_init_db,
        "seed-demo": cmd_seed_demo,
        "list-workboards": cmd_list_workboards,
        "show": cmd_show,
        "set-sla": cmd_set_sla,
        "serve": cmd_serve,
    }

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        commands[args.command](args)
    except (WorkboardError, ValueError) as exc:
        console.print(f"\n[red]Error:[/red] {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
