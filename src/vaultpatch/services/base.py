"""BaseService — abstract foundation for all vaultpatch services.

Every service receives a :class:`Vault` at construction time. The Vault
provides the store, metadata index, link-preserving renamer and patcher.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from vaultpatch.domain.errors import ErrorCode, InstructionError
from vaultpatch.services._helpers import failure

if TYPE_CHECKING:
    from vaultpatch.domain.instruction import MutationInstruction
    from vaultpatch.infrastructure.vault import Vault
    from vaultpatch.services.result import ServiceResult


class BaseService:
    """Abstract base for all service-layer classes.

    Subclasses implement one handler family each (identity, directory,
    tags, content) and expose an ``apply(instruction)`` entry point for the
    router alongside keyword-argument methods for direct callers.

    Usage::

        class IdentityService(BaseService):
            def rename_file(self, path: str, new_name: str) -> ServiceResult:
                if not self._vault.store.is_file(path):
                    return failure(op, ErrorCode.NOT_FOUND, ...)
                ...
    """

    def __init__(self, vault: Vault) -> None:
        self._vault = vault

    def _body_text(self, op: str, instruction: MutationInstruction) -> str | ServiceResult:
        """Decoded request body, or a 400 result if it is not UTF-8."""
        try:
            return instruction.text()
        except InstructionError as exc:
            return failure(op, exc.code, exc.message)

    def _resolve_permanent(self, requested: bool | None) -> bool:
        """Explicit ``Permanent`` header, else the ``[delete]`` default."""
        if requested is None:
            return self._vault.settings.delete.permanent_default
        return requested

    def _not_found(self, op: str, path: str, noun: str = "File") -> ServiceResult:
        return failure(op, ErrorCode.NOT_FOUND, f"{noun} not found: {path}")
