"""IdentityService — file rename, move, and delete.

A rename or move is a single link-preserving path change; there is nothing
to roll back at this level. Existence and conflict checks happen here, after
the router has already chosen this handler.
"""

from __future__ import annotations

import logging

from vaultpatch.domain.errors import ErrorCode, VaultPathError
from vaultpatch.domain.instruction import MutationInstruction
from vaultpatch.domain.paths import ancestors, join, normalize_vault_path, parent_of
from vaultpatch.domain.types import Operation
from vaultpatch.services._helpers import failure
from vaultpatch.services.base import BaseService
from vaultpatch.services.contracts import DeleteResultData, RelocateResultData, dump_validated
from vaultpatch.services.result import ServiceResult
from vaultpatch.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class IdentityService(BaseService):
    """Changes the path of a single file, or deletes it."""

    @traced
    def apply(self, instruction: MutationInstruction) -> ServiceResult:
        """Router entry point for the identity family."""
        path = instruction.source_path
        if instruction.operation is Operation.DELETE:
            return self.delete_file(path, permanent=instruction.permanent)

        op = "move_file" if instruction.operation is Operation.MOVE else "rename_file"
        text = self._body_text(op, instruction)
        if isinstance(text, ServiceResult):
            return text
        if instruction.operation is Operation.MOVE:
            return self.move_file(path, text)
        return self.rename_file(path, text)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def rename_file(self, path: str, new_name: str) -> ServiceResult:
        """Rename *path* within its directory; *new_name* is a bare filename."""
        op = "rename_file"
        name = new_name.strip()
        if not name:
            return failure(op, ErrorCode.MISSING_VALUE, "New filename is required in request body")
        if "/" in name or "\\" in name:
            return failure(
                op,
                ErrorCode.INVALID_PATH,
                "New filename must not contain a path separator; use Operation: move",
            )
        if name in (".", ".."):
            return failure(op, ErrorCode.INVALID_PATH, f"Invalid filename: {name}")

        destination = join(parent_of(path), name)
        return self._relocate(op, path, destination, "File successfully renamed")

    @traced
    def move_file(self, path: str, new_path: str) -> ServiceResult:
        """Move *path* to the full vault path *new_path*."""
        op = "move_file"
        raw = new_path.strip()
        if not raw:
            return failure(
                op, ErrorCode.MISSING_VALUE, "Destination path is required in request body"
            )
        if raw.endswith("/"):
            return failure(
                op, ErrorCode.INVALID_PATH, "Destination must be a file path, not a directory"
            )
        try:
            destination = normalize_vault_path(raw)
        except VaultPathError as exc:
            return failure(op, exc.code, exc.message)
        return self._relocate(op, path, destination, "File successfully moved")

    @traced
    def delete_file(self, path: str, *, permanent: bool | None = None) -> ServiceResult:
        """Move *path* to the trash, or remove it when *permanent*."""
        op = "delete_file"
        store = self._vault.store
        if not path:
            return failure(op, ErrorCode.VAULT_ROOT_PROTECTED, "Cannot delete the vault root")
        entry = store.entry(path)
        if entry is None:
            return self._not_found(op, path)
        if entry.is_dir:
            return failure(
                op,
                ErrorCode.INVALID_PATH,
                f"Path is a directory: {path}; use Target-Type: directory",
            )

        remove_permanently = self._resolve_permanent(permanent)
        trash_path: str | None = None
        try:
            if remove_permanently:
                store.remove(path)
            else:
                trash_path = store.trash(path)
        except OSError as exc:
            return failure(op, ErrorCode.DELETE_FAILED, f"Failed to delete file: {exc}")

        logger.info("Deleted %s (permanent=%s)", path, remove_permanently)
        message = "File permanently deleted" if remove_permanently else "File moved to trash"
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                DeleteResultData,
                {
                    "message": message,
                    "path": path,
                    "permanent": remove_permanently,
                    "trash_path": trash_path,
                },
            ),
        )

    # ------------------------------------------------------------------
    # Shared path change
    # ------------------------------------------------------------------

    def _relocate(self, op: str, source: str, destination: str, message: str) -> ServiceResult:
        store = self._vault.store
        if not source or not store.is_file(source):
            return self._not_found(op, source)
        if store.exists(destination):
            return failure(
                op,
                ErrorCode.DESTINATION_EXISTS,
                f"Destination file already exists: {destination}",
            )

        destination_dir = parent_of(destination)
        created_root = next(
            (d for d in ancestors(destination) if not store.exists(d)),
            None,
        )
        with trace_span("link_preserving_rename") as span:
            try:
                if destination_dir:
                    store.mkdir(destination_dir)
                self._vault.renamer.rename(source, destination)
            except OSError as exc:
                if created_root:
                    self._discard_created(created_root)
                return failure(op, ErrorCode.RENAME_FAILED, f"Failed to rename file: {exc}")
            if span:
                span.annotate("destination", destination)

        logger.info("%s: %s -> %s", op, source, destination)
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                RelocateResultData,
                {"message": message, "old_path": source, "new_path": destination},
            ),
        )

    def _discard_created(self, created_root: str) -> None:
        try:
            self._vault.store.prune_empty_dirs(created_root)
        except OSError:
            logger.warning("Failed to remove %s after a failed rename", created_root)
