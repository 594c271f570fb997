"""Subcommand modules for vaultpatch.

Provides register_commands() which uses deferred imports to keep
``vaultpatch --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the tags group and the standalone mutation commands."""
    # --- Groups ---
    from vaultpatch.commands.tags import tags

    cli.add_command(tags)

    # --- Standalone commands ---
    from vaultpatch.commands.delete import delete
    from vaultpatch.commands.mkdir import mkdir
    from vaultpatch.commands.patch import patch

    cli.add_command(patch)
    cli.add_command(delete)
    cli.add_command(mkdir)
