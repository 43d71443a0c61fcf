"""
CLI sync commands — sync one or all repositories, or clone without syncing.

Usage:
    gitsyncer sync-repo NAME [--backup] [--no-report]
    gitsyncer sync-all [--backup] [--continue-on-error] [--no-script]
    gitsyncer clone NAME | --all
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import click

from ..sync.analyzer import format_abandoned_branch_report
from ..sync.errors import SyncError
from ..sync.reports import RULE, ReportCollector
from ..sync.syncer import Syncer
from .helpers import get_config


def _make_syncer(ctx: click.Context, backup: bool) -> Syncer:
    config = get_config(ctx)
    syncer = Syncer(config, config.work_dir)
    syncer.set_backup_enabled(backup)
    return syncer


def _print_script_usage(script_path: Path) -> None:
    click.echo()
    click.echo(RULE)
    click.echo("📋 ABANDONED BRANCH MANAGEMENT SCRIPT")
    click.echo(RULE)
    click.echo(f"Generated script: {script_path}")
    click.echo()
    click.echo("Usage:")
    click.echo(f"  bash {script_path} --review       # Review diffs before deletion")
    click.echo(f"  bash {script_path} --review-full  # Review full diffs")
    click.echo(f"  bash {script_path} --dry-run      # Preview what will be deleted")
    click.echo(f"  bash {script_path}                # Delete branches (with confirmation)")
    click.echo()
    click.echo("💡 Recommended workflow:")
    click.echo(f"  1. Review branches:  bash {script_path} --review")
    click.echo(f"  2. Dry-run delete:   bash {script_path} --dry-run")
    click.echo(f"  3. Delete branches:  bash {script_path}")
    click.echo()
    click.secho("⚠️  WARNING: Review carefully before deleting branches!", fg="yellow")
    click.echo(RULE)


@click.command("sync-repo")
@click.argument("name")
@click.option("--backup", is_flag=True, help="Also push to backup locations")
@click.option("--no-report", is_flag=True, help="Don't print the abandoned branch report")
@click.pass_context
def sync_repo(ctx: click.Context, name: str, backup: bool, no_report: bool) -> None:
    """Synchronize a single repository across all organizations."""
    syncer = _make_syncer(ctx, backup)
    reports = ReportCollector()

    try:
        report = syncer.sync_repository(name, reports)
    except SyncError as e:
        click.secho(f"ERROR: Sync failed: {e}", fg="red", err=True)
        raise SystemExit(1)

    click.secho(f"\n✅ Repository {name} synchronized successfully!", fg="green")
    if report is not None and not no_report:
        text = format_abandoned_branch_report(report, name)
        if text:
            click.echo(text)


@click.command("sync-all")
@click.option("--backup", is_flag=True, help="Also push to backup locations")
@click.option("--continue-on-error", is_flag=True, help="Keep going after a repository fails")
@click.option("--no-script", is_flag=True, help="Don't generate the abandoned branch script")
@click.pass_context
def sync_all(ctx: click.Context, backup: bool, continue_on_error: bool, no_script: bool) -> None:
    """Synchronize every repository listed in the configuration."""
    syncer = _make_syncer(ctx, backup)
    repositories = syncer.config.repositories

    if not repositories:
        click.echo("No repositories configured. Add repositories to the config file.")
        raise SystemExit(1)

    reports = ReportCollector()
    failed: List[str] = []

    for i, repo in enumerate(repositories, start=1):
        click.echo(f"\n[{i}/{len(repositories)}] Syncing {repo}...")
        try:
            syncer.sync_repository(repo, reports)
        except SyncError as e:
            click.secho(f"ERROR: Failed to sync {repo}: {e}", fg="red", err=True)
            failed.append(repo)
            if not continue_on_error:
                click.echo("Stopping sync due to error.")
                raise SystemExit(1)

    synced = len(repositories) - len(failed)
    if failed:
        click.secho(
            f"\n⚠️  Synced {synced}/{len(repositories)} repositories; failed: {', '.join(failed)}",
            fg="yellow",
        )
    else:
        click.secho(f"\n✅ Successfully synced all {synced} repositories!", fg="green")

    summary = syncer.generate_abandoned_branch_summary(reports)
    if summary:
        click.echo(summary)

    if not no_script:
        try:
            script_path = syncer.generate_delete_script(reports)
        except OSError as e:
            click.secho(f"\n⚠️  Failed to generate script: {e}", fg="yellow")
        else:
            if script_path is not None:
                _print_script_usage(script_path)

    if failed:
        raise SystemExit(1)


@click.command("clone")
@click.argument("name", required=False)
@click.option("--all", "clone_all", is_flag=True, help="Clone every configured repository")
@click.pass_context
def clone(ctx: click.Context, name: str, clone_all: bool) -> None:
    """Clone repositories locally without syncing them."""
    syncer = _make_syncer(ctx, backup=False)

    if clone_all:
        names = list(syncer.config.repositories)
    elif name:
        names = [name]
    else:
        click.secho("Specify a repository NAME or --all", fg="yellow")
        raise SystemExit(1)

    for repo in names:
        try:
            if syncer.ensure_repository_cloned(repo):
                click.secho(f"  ✅ Cloned {repo}", fg="green")
            else:
                click.echo(f"  Repository {repo} already exists locally")
        except SyncError as e:
            click.secho(f"ERROR: {e}", fg="red", err=True)
            raise SystemExit(1)
