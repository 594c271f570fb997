"""Command group: tag inventory, per-file tag edits, vault-wide rename."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import click

from vaultpatch.commands._base import VaultPatchGroup
from vaultpatch.domain.instruction import JSON_CONTENT_TYPE, RawRequest

if TYPE_CHECKING:
    from vaultpatch.commands._context import AppContext


@click.group(
    cls=VaultPatchGroup,
    examples="""\
  vaultpatch tags list
  vaultpatch tags show project
  vaultpatch tags add notes/day.md work urgent
  vaultpatch tags rename project projects""",
)
def tags() -> None:
    """Inspect and edit tags."""


@tags.command(
    "list",
    examples="""\
  vaultpatch tags list
  vaultpatch -q tags list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """List every tag with the number of files using it."""
    from vaultpatch.services.tags import TagService

    app.emit(TagService(app.vault).list_tags())


@tags.command(examples="  vaultpatch tags show project")
@click.argument("tag")
@click.pass_obj
def show(app: AppContext, tag: str) -> None:
    """Show the files using TAG or any of its nested tags."""
    from vaultpatch.services.tags import TagService

    app.emit(TagService(app.vault).get_tag(tag))


@tags.command(
    examples="""\
  vaultpatch tags rename project projects
  vaultpatch tags rename "#area/home" area/house""",
)
@click.argument("old")
@click.argument("new")
@click.pass_obj
def rename(app: AppContext, old: str, new: str) -> None:
    """Rename tag OLD to NEW in every file of the vault."""
    raw = RawRequest(
        method="PATCH",
        path=old,
        headers={"Operation": "rename"},
        body=new.encode("utf-8"),
        tag_namespace=True,
    )
    app.dispatch(raw)


def _tag_batch(app: AppContext, path: str, names: tuple[str, ...], operation: str) -> None:
    raw = RawRequest(
        method="PATCH",
        path=path,
        headers={
            "Target-Type": "tag",
            "Operation": operation,
            "Content-Type": JSON_CONTENT_TYPE,
        },
        body=json.dumps({"tags": list(names)}).encode("utf-8"),
    )
    app.dispatch(raw)


@tags.command(examples="  vaultpatch tags add notes/day.md work urgent")
@click.argument("path")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def add(app: AppContext, path: str, names: tuple[str, ...]) -> None:
    """Add one or more tags to the file at PATH."""
    _tag_batch(app, path, names, "add")


@tags.command(examples="  vaultpatch tags remove notes/day.md urgent")
@click.argument("path")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def remove(app: AppContext, path: str, names: tuple[str, ...]) -> None:
    """Remove one or more tags from the file at PATH."""
    _tag_batch(app, path, names, "remove")
