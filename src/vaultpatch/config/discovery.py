"""Locating ``vaultpatch.toml`` and the vault it configures.

An explicit ``--config`` path wins, then ``VAULTPATCH_CONFIG``. With
``--vault`` only the vault directory itself is searched, so a config file
in an enclosing directory never leaks into a nested vault. Without it the
search walks up from the working directory, and the directory holding the
file found becomes the vault root.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

import click

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "vaultpatch.toml"
CONFIG_ENV_VAR = "VAULTPATCH_CONFIG"


class ConfigSource(StrEnum):
    """Which rule selected the config file."""

    FLAG = "flag"
    ENV = "env"
    VAULT = "vault"
    WALK_UP = "walk-up"
    NONE = "none"


@dataclass(frozen=True)
class ConfigLocation:
    """The config file in effect and the vault root it applies to."""

    path: Path | None
    vault_root: Path
    source: ConfigSource


def find_config(start: Path) -> Path | None:
    """Nearest ``vaultpatch.toml`` in *start* or one of its parents."""
    current = start.resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def locate_config(
    *,
    config_path: str | None = None,
    vault_root: Path | None = None,
    cwd: Path | None = None,
) -> ConfigLocation:
    """Resolve the config file and vault root for one invocation.

    Raises:
        click.ClickException: If ``--config`` or ``VAULTPATCH_CONFIG``
            names a file that does not exist.
    """
    explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        source = ConfigSource.FLAG if config_path else ConfigSource.ENV
        path = Path(explicit)
        if not path.is_file():
            origin = "--config" if source is ConfigSource.FLAG else CONFIG_ENV_VAR
            msg = f"Config file not found ({origin}): {path}"
            raise click.ClickException(msg)
        location = ConfigLocation(path, vault_root or path.parent, source)
    elif vault_root is not None:
        candidate = vault_root / CONFIG_FILENAME
        if candidate.is_file():
            location = ConfigLocation(candidate, vault_root, ConfigSource.VAULT)
        else:
            location = ConfigLocation(None, vault_root, ConfigSource.NONE)
    else:
        start = cwd or Path.cwd()
        found = find_config(start)
        if found:
            location = ConfigLocation(found, found.parent, ConfigSource.WALK_UP)
        else:
            location = ConfigLocation(None, start, ConfigSource.NONE)

    logger.debug(
        "Config %s (%s), vault root %s", location.path, location.source, location.vault_root
    )
    return location


def read_config(path: Path) -> dict[str, Any]:
    """Parse the TOML file at *path* into its raw section tables.

    Raises:
        click.ClickException: If the file is not valid TOML.
    """
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc
