"""CLI entry point for maintenance tasks: inkfolio.

Subcommands:
    inkfolio init-db                 # Create missing tables
    inkfolio reconcile               # Repair portfolios/favorites, print the report
    inkfolio reconcile --dry-run     # Report only; exit 1 when issues are found
"""

from __future__ import annotations

import asyncio
import json

import click
from dotenv import load_dotenv

from inkfolio.api import deps
from inkfolio.core.logging import setup_logging


async def _init_db(database_url: str | None) -> None:
    deps.init_session_factory(database_url)
    try:
        await deps.create_tables()
    finally:
        await deps.dispose_engine()


async def _reconcile(database_url: str | None, dry_run: bool) -> dict:
    factory = deps.init_session_factory(database_url)
    service = deps.get_reconcile_service()
    try:
        async with factory() as session:
            async with session.begin():
                report = await service.sweep(session, repair=not dry_run)
    finally:
        await deps.dispose_engine()
    return report.to_dict()


@click.group()
@click.option("--log-level", default=None, help="Override INKFOLIO_LOG_LEVEL")
def main(log_level: str | None) -> None:
    """Inkfolio maintenance commands."""
    load_dotenv()
    setup_logging(level=log_level)


@main.command("init-db")
@click.option("--database-url", default=None, help="Override INKFOLIO_DATABASE_URL")
def init_db(database_url: str | None) -> None:
    """Create any missing tables."""
    asyncio.run(_init_db(database_url))
    click.echo("Tables created.")


@main.command("reconcile")
@click.option("--dry-run", is_flag=True, help="Report without writing")
@click.option("--database-url", default=None, help="Override INKFOLIO_DATABASE_URL")
def reconcile(dry_run: bool, database_url: str | None) -> None:
    """Run one reconciliation sweep between the user and tattoo stores."""
    report = asyncio.run(_reconcile(database_url, dry_run))
    click.echo(json.dumps(report, indent=2))
    if dry_run and report["issues"]:
        raise SystemExit(1)
