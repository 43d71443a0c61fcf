"""
gitsyncer — CLI Entry Point

Usage:
    gitsyncer [--config FILE] [--work-dir DIR] sync-repo NAME [--backup] [--no-report]
    gitsyncer sync-all [--backup] [--continue-on-error]
    gitsyncer clone NAME | --all
    gitsyncer check-config [--json]
    gitsyncer list-repos
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from typing import Optional

import click

from .cli.config import check_config, list_repos
from .cli.sync import clone, sync_all, sync_repo
from .logging_config import setup_logging


@click.group()
@click.option("--config", "config_path", default=None, help="Path to the config file")
@click.option("--work-dir", default=None, help="Directory holding the working copies")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: LOG_LEVEL or INFO)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    work_dir: Optional[str],
    log_level: Optional[str],
) -> None:
    """gitsyncer — Mirror git repositories across organizations."""
    setup_logging(level=log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["work_dir"] = work_dir


cli.add_command(sync_repo)
cli.add_command(sync_all)
cli.add_command(clone)
cli.add_command(check_config)
cli.add_command(list_repos)


if __name__ == "__main__":
    cli()
