"""
CLI config commands — validate the configuration and list what it contains.

Usage:
    gitsyncer check-config [--json]
    gitsyncer list-repos
"""

from __future__ import annotations

import click

from ..sync.remotes import remote_name
from .helpers import get_config


@click.command("check-config")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def check_config(ctx: click.Context, as_json: bool) -> None:
    """Validate the configuration and show each organization's remote."""
    import json as json_lib

    config = get_config(ctx)

    organizations = [
        {
            "host": org.host,
            "name": org.name,
            "remote": remote_name(org),
            "url_template": org.repo_url("<repo>"),
            "backup_location": org.backup_location,
            "has_github_token": bool(org.github_token),
            "has_codeberg_token": bool(org.codeberg_token),
        }
        for org in config.organizations
    ]

    if as_json:
        click.echo(json_lib.dumps({
            "valid": True,
            "work_dir": config.work_dir,
            "organizations": organizations,
            "repositories": config.repositories,
            "exclude_branches": config.exclude_branches,
        }, indent=2))
        return

    click.echo("\n📋 gitsyncer configuration\n")
    click.echo(f"  Work dir:     {config.work_dir}")
    click.echo(f"  Repositories: {len(config.repositories)}")
    click.echo()

    for entry in organizations:
        role = "backup" if entry["backup_location"] else "mirror"
        icon = "💾" if entry["backup_location"] else "🔀"
        click.echo(f"  {icon} {entry['remote']:20} {role:7} {entry['url_template']}")

    if config.exclude_branches:
        click.echo("\n  Excluded branch patterns:")
        for pattern in config.exclude_branches:
            click.echo(f"    - {pattern}")

    click.echo()
    click.secho("✓ Configuration is valid", fg="green")


@click.command("list-repos")
@click.pass_context
def list_repos(ctx: click.Context) -> None:
    """List the repositories configured for sync-all."""
    config = get_config(ctx)
    if not config.repositories:
        click.echo("No repositories configured.")
        return
    for repo in config.repositories:
        click.echo(repo)
