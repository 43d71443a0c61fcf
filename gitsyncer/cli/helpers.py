"""
Shared helpers for CLI commands.
"""

from __future__ import annotations

import click

from ..config.loader import ConfigError, load_config
from ..config.models import Config


def get_config(ctx: click.Context) -> Config:
    """Load the config once per invocation; exit 1 with a readable error if invalid."""
    obj = ctx.ensure_object(dict)
    if obj.get("config") is None:
        try:
            obj["config"] = load_config(obj.get("config_path"), work_dir=obj.get("work_dir"))
        except ConfigError as e:
            click.secho(f"ERROR: {e}", fg="red", err=True)
            raise SystemExit(1)
    return obj["config"]
