"""Command: create a directory."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from vaultpatch.commands._base import VaultPatchCommand
from vaultpatch.domain.instruction import RawRequest

if TYPE_CHECKING:
    from vaultpatch.commands._context import AppContext


@click.command(
    cls=VaultPatchCommand,
    examples="""\
  vaultpatch mkdir projects/2026
  vaultpatch --json mkdir archive""",
)
@click.argument("path")
@click.pass_obj
def mkdir(app: AppContext, path: str) -> None:
    """Create the directory at PATH, including missing parents."""
    raw = RawRequest(method="POST", path=path, headers={"Target-Type": "directory"})
    app.dispatch(raw)
