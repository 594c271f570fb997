"""Command: apply a PATCH mutation (content, identity, directory, tag)."""

from __future__ import annotations

from typing import IO, TYPE_CHECKING

import click

from vaultpatch.commands._base import VaultPatchCommand
from vaultpatch.domain.instruction import JSON_CONTENT_TYPE, RawRequest
from vaultpatch.domain.types import Operation, TargetKind

if TYPE_CHECKING:
    from vaultpatch.commands._context import AppContext

_TARGET_TYPES = [kind.value for kind in TargetKind]
_OPERATIONS = [
    op.value for op in Operation if op not in (Operation.CREATE, Operation.DELETE)
]


def read_body(content: str | None, content_file: IO[bytes] | None) -> bytes:
    """Request body from ``--content`` or ``--content-file`` (``-`` is stdin)."""
    if content is not None and content_file is not None:
        msg = "Use either --content or --content-file, not both"
        raise click.UsageError(msg)
    if content_file is not None:
        return content_file.read()
    return (content or "").encode("utf-8")


@click.command(
    cls=VaultPatchCommand,
    examples="""\
  vaultpatch patch notes/day.md -t heading -o append --target "Log::Today" --content "- done"
  vaultpatch patch notes/old.md -t file -o rename --target name --content new.md
  vaultpatch patch projects -t directory -o move --target path --content archive/projects
  echo '{"tags": ["x", "y"]}' | vaultpatch patch notes/day.md -t tag -o add --json-body -f -""",
)
@click.argument("path")
@click.option(
    "-t",
    "--type",
    "target_type",
    required=True,
    type=click.Choice(_TARGET_TYPES, case_sensitive=False),
    help="Target-Type of the request.",
)
@click.option(
    "-o",
    "--op",
    "operation",
    required=True,
    type=click.Choice(_OPERATIONS, case_sensitive=False),
    help="Operation to apply.",
)
@click.option("--target", default=None, help="Target selector (heading path, name, path, tag).")
@click.option("--delimiter", default=None, help="Heading path delimiter (default '::').")
@click.option("--create-if-missing", is_flag=True, help="Create the target when absent.")
@click.option("--apply-if-exists", is_flag=True, help="Apply even if the content is present.")
@click.option("--trim", is_flag=True, help="Trim whitespace around the target.")
@click.option("--content", default=None, help="Request body as text.")
@click.option(
    "-f",
    "--content-file",
    type=click.File("rb"),
    default=None,
    help="Read the request body from a file ('-' for stdin).",
)
@click.option("--json-body", is_flag=True, help="Declare the body as application/json.")
@click.pass_obj
def patch(
    app: AppContext,
    path: str,
    target_type: str,
    operation: str,
    target: str | None,
    delimiter: str | None,
    create_if_missing: bool,
    apply_if_exists: bool,
    trim: bool,
    content: str | None,
    content_file: IO[bytes] | None,
    json_body: bool,
) -> None:
    """Apply OPERATION to the TYPE entry at PATH."""
    headers: dict[str, str] = {"Target-Type": target_type, "Operation": operation}
    if target is not None:
        headers["Target"] = target
    if delimiter is not None:
        headers["Target-Delimiter"] = delimiter
    if create_if_missing:
        headers["Create-Target-If-Missing"] = "true"
    if apply_if_exists:
        headers["Apply-If-Content-Preexists"] = "true"
    if trim:
        headers["Trim-Target-Whitespace"] = "true"
    if json_body:
        headers["Content-Type"] = JSON_CONTENT_TYPE

    raw = RawRequest(
        method="PATCH",
        path=path,
        headers=headers,
        body=read_body(content, content_file),
    )
    app.dispatch(raw)
