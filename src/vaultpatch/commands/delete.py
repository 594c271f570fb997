"""Command: delete a file or directory (trash by default)."""

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
  vaultpatch delete notes/old.md
  vaultpatch delete --permanent notes/old.md
  vaultpatch delete --directory projects/2019""",
)
@click.argument("path")
@click.option("-d", "--directory", is_flag=True, help="PATH is a directory.")
@click.option(
    "--permanent/--trash",
    default=None,
    help="Remove permanently or move to the vault trash (default from config).",
)
@click.pass_obj
def delete(app: AppContext, path: str, directory: bool, permanent: bool | None) -> None:
    """Delete the file or directory at PATH."""
    headers = {"Target-Type": "directory" if directory else "file"}
    if permanent is not None:
        headers["Permanent"] = "true" if permanent else "false"
    app.dispatch(RawRequest(method="DELETE", path=path, headers=headers))
