"""
Config Loader — Locate, parse and validate the gitsyncer config file.

Lookup order for the file:
1. Explicit path (`--config`)
2. GITSYNCER_CONFIG environment variable
3. ~/.config/gitsyncer/config.json
4. ./gitsyncer.json

JSON is the native format; files ending in .yaml/.yml are read with
PyYAML. Example:

    {
      "organizations": [
        {"host": "git@codeberg.org", "name": "snonux"},
        {"host": "git@github.com", "name": "snonux"},
        {"host": "paul@backup.lan:git", "backupLocation": true}
      ],
      "repositories": ["gitsyncer", "dtail"],
      "exclude_branches": ["^wip-", "^dependabot/"],
      "work_dir": "~/git/gitsyncer-workdir"
    }

API tokens missing from the file are taken from GITHUB_TOKEN and
CODEBERG_TOKEN.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from ..sync.remotes import duplicate_remote_names
from .models import Config

logger = logging.getLogger(__name__)

ENV_CONFIG = "GITSYNCER_CONFIG"
ENV_WORK_DIR = "GITSYNCER_WORK_DIR"
DEFAULT_WORK_DIR = "~/git/gitsyncer-workdir"


class ConfigError(Exception):
    """The configuration file is missing, unreadable or invalid."""


def candidate_paths(explicit: Optional[str] = None) -> List[Path]:
    if explicit:
        return [Path(explicit).expanduser()]
    paths: List[Path] = []
    if os.environ.get(ENV_CONFIG):
        paths.append(Path(os.environ[ENV_CONFIG]).expanduser())
    paths.append(Path("~/.config/gitsyncer/config.json").expanduser())
    paths.append(Path("gitsyncer.json"))
    return paths


def find_config_file(explicit: Optional[str] = None) -> Path:
    paths = candidate_paths(explicit)
    for path in paths:
        if path.is_file():
            return path
    raise ConfigError(
        "no configuration file found (looked in: "
        + ", ".join(str(p) for p in paths)
        + ")"
    )


def parse_config_data(path: Path) -> Dict[str, Any]:
    """Read a JSON or YAML config file into a dict."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to parse config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain an object at the top level")
    return data


def build_config(data: Dict[str, Any], work_dir: Optional[str] = None) -> Config:
    """Validate raw config data and apply defaults and env fallbacks."""
    try:
        config = Config(**data)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e

    problems = config.problems()
    duplicates = duplicate_remote_names(config.organizations)
    if duplicates:
        problems.append(
            "organizations map to the same remote name: " + ", ".join(sorted(duplicates))
        )
    if problems:
        raise ConfigError("invalid configuration: " + "; ".join(problems))

    chosen = work_dir or os.environ.get(ENV_WORK_DIR) or config.work_dir or DEFAULT_WORK_DIR
    config.work_dir = str(Path(chosen).expanduser())

    github_token = os.environ.get("GITHUB_TOKEN")
    codeberg_token = os.environ.get("CODEBERG_TOKEN")
    for org in config.organizations:
        if org.is_github and not org.github_token and github_token:
            org.github_token = github_token
        if org.is_codeberg and not org.codeberg_token and codeberg_token:
            org.codeberg_token = codeberg_token

    return config


def load_config(path: Optional[str] = None, work_dir: Optional[str] = None) -> Config:
    """
    Load and validate the configuration.

    Args:
        path: Explicit config file path (optional)
        work_dir: Work directory override (optional)

    Raises:
        ConfigError: If no file is found or the file is invalid
    """
    config_path = find_config_file(path)
    logger.debug(f"Loading config from {config_path}")
    config = build_config(parse_config_data(config_path), work_dir=work_dir)
    logger.info(
        f"Loaded {len(config.organizations)} organization(s), "
        f"{len(config.repositories)} repositor(ies) from {config_path}"
    )
    return config
