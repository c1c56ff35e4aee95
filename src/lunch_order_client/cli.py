import asyncio
import typer
import logging
import sys
from pathlib import Path
from typing import Optional
if sys.platform == "win32":
    # SelectorEventLoop вместо ProactorEventLoop по умолчанию (нужно asyncpg)
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
from rich.table import Table
from sqlalchemy.ext.asyncio import create_async_engine

from lunch_order_client import create_group_store, create_sql_gateway
from lunch_order_client.config import get_settings, DatabaseConfig, OrderClientConfig
from lunch_order_client.core import format_countdown, countdown
from lunch_order_client.db.base import Base
from lunch_order_client.exceptions import OrderClientError
from lunch_order_client.logging import configure
from lunch_order_client.models import Identity
from lunch_order_client.utils.cli_utils import get_rich_console, format_money, load_restaurants


app = typer.Typer(help="CLI for lunch-order-client management.")
logger = logging.getLogger(__name__)
console = get_rich_console()

DsnOption = typer.Option(None, "--dsn", help="SQLAlchemy DSN; defaults to DATABASE__DSN from the environment.")


def _config(dsn: Optional[str]) -> OrderClientConfig:
    config = get_settings().to_client_config()
    if dsn:
        config = config.model_copy(update={"database": DatabaseConfig(dsn=dsn)})
    return config


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, "--log-level", help="Enable JSON logs at this level.")):
    if log_level:
        configure(log_level)


@app.command()
def init(dsn: Optional[str] = DsnOption):
    """Creates the database tables."""
    console.rule("[bold cyan]Database Initialization[/bold cyan]")
    database = _config(dsn).database

    async def _create_tables():
        engine = create_async_engine(database.dsn, **database.engine_kwargs())
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()

    with console.status("Creating tables...", spinner="dots"):
        try:
            asyncio.run(_create_tables())
        except Exception as e:
            console.print(f"[bold red]✖[/bold red] Database initialization FAILED: {e}")
            raise typer.Exit(code=1)
    console.print("[bold green]✔[/bold green] Database tables created successfully.")


@app.command()
def check(dsn: Optional[str] = DsnOption):
    """Checks connectivity to the database."""
    console.rule("[bold cyan]Connection Check[/bold cyan]")

    async def _check():
        gateway = create_sql_gateway(_config(dsn).database)
        try:
            await gateway.check_connection()
        finally:
            await gateway.aclose()

    try:
        asyncio.run(_check())
    except OrderClientError as e:
        console.print(f"[bold red]✖[/bold red] Database connection: FAILED ({e})")
        raise typer.Exit(code=1)
    console.print("[bold green]✔[/bold green] Database connection: OK")


@app.command()
def seed(
    file: Optional[Path] = typer.Option(None, "--file", exists=True, dir_okay=False, help="Restaurants JSON file."),
    dsn: Optional[str] = DsnOption,
):
    """Loads restaurants and their menus (bundled sample by default)."""
    restaurants = load_restaurants(file)

    async def _seed():
        gateway = create_sql_gateway(_config(dsn).database)
        try:
            return await gateway.restaurant_repo.upsert_many(restaurants)
        finally:
            await gateway.aclose()

    try:
        count = asyncio.run(_seed())
    except OrderClientError as e:
        console.print(f"[bold red]✖[/bold red] Seeding FAILED: {e}")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✔[/bold green] Seeded {count} restaurants.")


@app.command()
def groups(dsn: Optional[str] = DsnOption):
    """Lists all groups, newest first."""

    async def _load():
        async with create_group_store(_config(dsn)) as store:
            if not await store.bootstrap():
                raise OrderClientError(store.error)
            return store.groups, store.reference, store.now()

    try:
        items, reference, now = asyncio.run(_load())
    except OrderClientError as e:
        console.print(f"[bold red]✖[/bold red] Could not load groups: {e}")
        raise typer.Exit(code=1)

    if not items:
        console.print("No groups yet.")
        return
    table = Table(title="Groups")
    # id выводится целиком, без переноса
    table.add_column("ID", no_wrap=True, overflow="ignore", min_width=32)
    for column in ("Name", "Restaurant", "Members", "Status"):
        table.add_column(column, overflow="fold")
    for g in items:
        restaurant = reference.restaurant(g.restaurant_id)
        status = "submitted" if g.is_submitted else format_countdown(countdown(g.deadline_at, now))
        table.add_row(g.id, g.name, restaurant.name if restaurant else g.restaurant_id, str(len(g.members)), status)
    console.print(table)


@app.command()
def summary(group_id: str, viewer: str = typer.Option("", "--viewer", help="Viewer user id."),
            dsn: Optional[str] = DsnOption):
    """Shows per-dish totals of a group."""

    async def _view():
        async with create_group_store(_config(dsn)) as store:
            if not await store.bootstrap():
                raise OrderClientError(store.error)
            return store.view(group_id, Identity(id=viewer or "-"))

    try:
        view = asyncio.run(_view())
    except OrderClientError as e:
        console.print(f"[bold red]✖[/bold red] {e}")
        raise typer.Exit(code=1)

    console.rule(f"[bold cyan]{view.group.name}[/bold cyan]")
    console.print(f"Members: {', '.join(m.name for m in view.members)}")
    console.print("Submitted" if view.group.is_submitted else format_countdown(view.countdown))
    if not view.picks_by_dish:
        console.print("No selections yet.")
        return
    table = Table()
    for column in ("Dish", "Price", "Total", "Who"):
        table.add_column(column)
    for row in view.picks_by_dish:
        who = ", ".join(f"{b.name} × {b.qty}" for b in row.by)
        table.add_row(row.name, format_money(row.price), str(row.total), who)
    console.print(table)


@app.command("repair-members")
def repair_members(dry_run: bool = typer.Option(False, "--dry-run", help="Only report groups that need repair."),
                   dsn: Optional[str] = DsnOption):
    """Backfills missing member display names and stores them."""

    async def _repair():
        async with create_group_store(_config(dsn)) as store:
            if not await store.bootstrap():
                raise OrderClientError(store.error)
            return await store.repair_member_details(persist=not dry_run)

    try:
        repaired = asyncio.run(_repair())
    except OrderClientError as e:
        console.print(f"[bold red]✖[/bold red] Repair FAILED: {e}")
        raise typer.Exit(code=1)
    verb = "need repair" if dry_run else "repaired"
    console.print(f"[bold green]✔[/bold green] {len(repaired)} groups {verb}.")
