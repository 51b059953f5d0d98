#!/usr/bin/env python3
"""
stXTZ Staking Dashboard

Usage:
    python main.py report
    python main.py export --out ./data/dashboard.json
    python main.py cache --clear
"""
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from stakeboard.config import AppConfig, load_config
from stakeboard.dashboard import DashboardData, load_dashboard
from stakeboard.db.cache_repo import WithdrawalCacheRepo
from stakeboard.db.connection import get_connection
from stakeboard.errors import CacheIOError, TransportError
from stakeboard.report import export_json, report as print_report

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr),
    ],
)

logger = logging.getLogger(__name__)

env_file_option = click.option(
    "--env-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to .env file (default: ./.env)",
)
verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging (DEBUG level)",
)


def _load(config: AppConfig, verbose: bool) -> DashboardData:
    """Run one load cycle, exiting with a single message on feed failure."""
    try:
        return asyncio.run(load_dashboard(config))
    except TransportError as e:
        click.echo(f"\n❌ Failed to load data: {e}", err=True)
        click.echo("Run the command again to retry.", err=True)
        if verbose:
            logger.exception("Load failed")
        sys.exit(1)


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """stXTZ staking dashboard.

    Reconciles bakery staking and stXTZ proxy flows from the TzKT API.
    """
    pass


@cli.command()
@click.option("--top", type=int, default=10, help="Leaderboard rows to show")
@click.option("--days", type=int, default=14, help="Daily rows to show")
@env_file_option
@verbose_option
def report(top: int, days: int, env_file: Optional[Path], verbose: bool):
    """Fetch everything and print the dashboard summary."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(env_file)
    data = _load(config, verbose)
    print_report(data, top_n=top, days=days)


@cli.command()
@click.option(
    "--out",
    type=click.Path(path_type=Path),
    default=None,
    help="Output JSON file (default: EXPORT_PATH or data/dashboard.json)",
)
@env_file_option
@verbose_option
def export(out: Optional[Path], env_file: Optional[Path], verbose: bool):
    """Fetch everything and write the chart/stats/leaderboard JSON."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(env_file)
    data = _load(config, verbose)
    out = out or config.export_path
    export_json(data, out)
    click.echo(f"💾 Dashboard data saved to: {out}")


@cli.command()
@click.option("--clear", is_flag=True, help="Delete all cached withdrawal amounts")
@env_file_option
def cache(clear: bool, env_file: Optional[Path]):
    """Show or clear the withdrawal amount cache."""
    config = load_config(env_file)
    conn = get_connection(config.cache_db_path)
    repo = WithdrawalCacheRepo(conn)
    try:
        if clear:
            repo.clear()
            click.echo("Withdrawal cache cleared")
        else:
            entries = repo.load()
            click.echo(f"{len(entries)} cached withdrawal amounts in {config.cache_db_path}")
    except CacheIOError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    cli()
