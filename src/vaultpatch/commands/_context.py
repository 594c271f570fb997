"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Vault initialization, the mutation
router, and centralized result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from vaultpatch.config.logging import configure_logging
from vaultpatch.output.formatters import OutputSettings, format_result
from vaultpatch.services.telemetry import enable_telemetry

if TYPE_CHECKING:
    from vaultpatch.config.settings import VaultPatchSettings
    from vaultpatch.domain.instruction import RawRequest
    from vaultpatch.infrastructure.vault import Vault
    from vaultpatch.services.result import ServiceResult

# Statuses below this are success (200, 201, 207).
_FAILURE_STATUS = 300


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``. The vault is lazily
    initialized on first use so ``--help`` and ``--version`` never touch
    the filesystem.
    """

    def __init__(self, settings: VaultPatchSettings) -> None:
        self.settings = settings
        self._vault: Vault | None = None

        configure_logging(
            verbose=settings.verbose, quiet=settings.quiet, log_json=settings.log_json
        )

        # Enable telemetry context var when verbose
        if settings.verbose:
            enable_telemetry()

    @property
    def vault(self) -> Vault:
        """The vault instance (created lazily on first access)."""
        if self._vault is None:
            from vaultpatch.infrastructure.vault import Vault

            root = self.settings.vault_root
            if not root.is_dir():
                msg = f"Vault root is not a directory: {root}"
                raise click.ClickException(msg)
            self._vault = Vault(self.settings)
        return self._vault

    def dispatch(self, raw: RawRequest) -> None:
        """Route *raw* through the mutation router and emit the result."""
        from vaultpatch.services.router import MutationRouter

        self.emit(MutationRouter(self.vault).dispatch(raw))

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Status < 300 (200/201/207): writes to stdout, returns normally.
          Warnings (a 207's failed items) go to stderr so they don't
          pollute piped output.
        * Otherwise: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok and result.status < _FAILURE_STATUS:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
