"""Click base classes carrying per-command vaultpatch invocation examples.

``--examples`` prints the command's sample invocations and exits without
touching the vault. Under ``--json`` the examples come out as a JSON
document so scripts can scrape them the same way they read results.
"""

from __future__ import annotations

import json
import textwrap
from typing import Any

import click

from vaultpatch.commands._context import AppContext

_PROGRAM = "vaultpatch"


def parse_examples(text: str) -> list[str]:
    """Split an examples block into one invocation per line.

    Raises:
        ValueError: If a line does not invoke ``vaultpatch`` (directly or
            at the end of a shell pipeline).
    """
    invocations = [line.strip() for line in textwrap.dedent(text).splitlines() if line.strip()]
    for line in invocations:
        command = line.rsplit("|", 1)[-1].strip()
        if not command.startswith(f"{_PROGRAM} "):
            msg = f"Example does not invoke {_PROGRAM}: {line!r}"
            raise ValueError(msg)
    return invocations


def _add_examples_option(cmd: click.Command, invocations: list[str]) -> None:
    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        app = ctx.find_object(AppContext)
        if app is not None and app.settings.json_output:
            payload = {"command": ctx.command_path, "examples": invocations}
            click.echo(json.dumps(payload, indent=2))
            ctx.exit(0)
        header = f"Examples for '{ctx.command_path}'"
        if app is not None:
            header += f" (vault: {app.settings.vault_root})"
        click.echo(f"{header}:\n")
        for line in invocations:
            click.echo(f"  {line}")
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class VaultPatchCommand(click.Command):
    """A command that can show its ``examples`` via ``--examples``."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = parse_examples(examples) if examples else []
        if self.examples:
            _add_examples_option(self, self.examples)


class VaultPatchGroup(click.Group):
    """Group counterpart of :class:`VaultPatchCommand`.

    Subcommands default to :class:`VaultPatchCommand`.
    """

    command_class = VaultPatchCommand

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = parse_examples(examples) if examples else []
        if self.examples:
            _add_examples_option(self, self.examples)
