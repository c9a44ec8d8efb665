import asyncio

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from db import backup, database, reports
from db import products as product_repo
from db import sales as sales_repo
from db import settings as settings_repo
from db.errors import StorageError
from db.models import utc_day, utc_now
from utils.pure import format_money

console = Console()


def run(coro):
    try:
        return asyncio.run(coro)
    except StorageError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option(
    "--db",
    "db_path",
    envvar="POS_DB_PATH",
    default=database.DB_PATH,
    show_default=True,
    help="SQLite file holding the store.",
)
def cli(db_path: str) -> None:
    """Point-of-sale data management."""
    database.DB_PATH = db_path


@cli.command()
def init() -> None:
    """Create default accounts and sample products on an empty store."""
    if run(backup.seed_defaults()):
        console.print("[green]Seeded default users and sample products.[/]")
    else:
        console.print("Store already has data; nothing seeded.")


@cli.command("export")
@click.argument("path", required=False, type=click.Path(dir_okay=False))
def export_cmd(path) -> None:
    """Write a JSON backup of all data."""
    out = run(backup.dump_snapshot(path))
    console.print(f"Backup written to [bold]{out}[/]")


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_cmd(path) -> None:
    """Restore a JSON backup; sections missing from it are kept."""
    if not run(backup.load_snapshot(path)):
        raise click.ClickException(f"{path} is not a valid backup; nothing imported")
    console.print(f"[green]Imported {path}[/]")


@cli.command()
@click.option(
    "--period",
    type=click.Choice(["today", "week", "month"]),
    default="today",
    show_default=True,
)
@click.option("--start", help="First day (YYYY-MM-DD); overrides --period.")
@click.option("--end", help="Last day (YYYY-MM-DD); defaults to --start.")
@click.option(
    "--out",
    "out_path",
    type=click.Path(dir_okay=False),
    help="Also write the report as JSON to this file.",
)
def report(period: str, start, end, out_path) -> None:
    """Sales report for a date range."""
    if start:
        end = end or start
    elif end:
        raise click.UsageError("--end needs --start")
    else:
        start, end = reports.period_range(period, utc_now().date())

    async def build():
        return await reports.build_report(start, end), await settings_repo.get()

    data, settings = run(build())
    console.print(Markdown(reports.to_markdown(data, settings.currency)))
    if out_path:
        out = reports.dump_report(data, out_path)
        console.print(f"Report written to [bold]{out}[/]")


@cli.command()
@click.argument("day", required=False)
def summary(day) -> None:
    """Totals for one day (default: today, UTC)."""
    day = day or utc_day(utc_now())

    async def build():
        return await sales_repo.get_daily_summary(day), await settings_repo.get()

    totals, settings = run(build())
    table = Table(title=f"Daily summary {day}")
    table.add_column("Total Sales", justify="right")
    table.add_column("Transactions", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Average", justify="right")
    table.add_row(
        format_money(totals.total_sales, settings.currency),
        str(totals.total_transactions),
        str(totals.total_items),
        format_money(totals.average_transaction, settings.currency),
    )
    console.print(table)


@cli.command()
def alerts() -> None:
    """List active products at or below their minimum stock."""
    found = run(product_repo.get_low_stock_alerts())
    if not found:
        console.print("[green]All products are above their minimum stock.[/]")
        return
    table = Table(title="Low stock")
    table.add_column("Product")
    table.add_column("Stock", justify="right")
    table.add_column("Minimum", justify="right")
    table.add_column("Severity")
    for alert in found:
        style = "bold red" if alert.severity == "critical" else "yellow"
        table.add_row(
            alert.product_name,
            str(alert.current_stock),
            str(alert.min_stock),
            f"[{style}]{alert.severity}[/]",
        )
    console.print(table)


@cli.command()
def info() -> None:
    """Show where the store lives and how much it holds."""
    usage = run(database.size_info())
    console.print(
        f"Store: [bold]{database.DB_PATH}[/]  "
        f"keys: {usage['keys']}  size: {usage['bytes'] / 1024:.1f} KiB"
    )


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def clear(yes: bool) -> None:
    """Delete all users, products, sales and settings."""
    if not yes:
        click.confirm("This permanently deletes all data. Continue?", abort=True)
    run(backup.clear_all_data())
    console.print("[red]All data cleared.[/]")


if __name__ == "__main__":
    cli()
