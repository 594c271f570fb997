"""DirectoryService — directory move, copy, delete, and create.

Move and copy run through :class:`AtomicBatch`: the file list is
enumerated up front, each file is transferred in sorted order, and the first
failure undoes every completed transfer in reverse. Delete is best-effort
through :class:`AggregatingBatch`. Create is a single idempotent step.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from vaultpatch.domain.errors import ErrorCode, VaultPathError
from vaultpatch.domain.instruction import MutationInstruction
from vaultpatch.domain.paths import ancestors, is_within, join, normalize_vault_path, relative_to
from vaultpatch.domain.types import BatchOutcome, ItemStatus, Operation
from vaultpatch.services._helpers import failure, plural
from vaultpatch.services.base import BaseService
from vaultpatch.services.batch import (
    AggregatingBatch,
    AtomicBatch,
    AtomicState,
    AtomicStep,
    BatchOperationResult,
    outcome_status,
)
from vaultpatch.services.contracts import (
    DirectoryCreateResultData,
    DirectoryDeleteResultData,
    DirectoryTransferResultData,
    dump_validated,
)
from vaultpatch.services.result import ServiceResult
from vaultpatch.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

CREATED = 201

_Transfer = Callable[[str, str], None]


class DirectoryService(BaseService):
    """Multi-file directory mutations with explicit atomicity contracts."""

    @traced
    def apply(self, instruction: MutationInstruction) -> ServiceResult:
        """Router entry point for the directory family."""
        path = instruction.source_path
        operation = instruction.operation
        if operation is Operation.DELETE:
            return self.delete_directory(path, permanent=instruction.permanent)
        if operation is Operation.CREATE:
            return self.create_directory(path)

        op = "copy_directory" if operation is Operation.COPY else "move_directory"
        text = self._body_text(op, instruction)
        if isinstance(text, ServiceResult):
            return text
        if operation is Operation.COPY:
            return self.copy_directory(path, text)
        return self.move_directory(path, text)

    # ------------------------------------------------------------------
    # Move / copy
    # ------------------------------------------------------------------

    @traced
    def move_directory(self, path: str, new_path: str) -> ServiceResult:
        """Move every file under *path* to *new_path*, link-preserving."""
        renamer = self._vault.renamer
        return self._transfer(
            "move_directory",
            path,
            new_path,
            transfer=renamer.rename,
            undo=lambda src, dst: renamer.rename(dst, src),
        )

    @traced
    def copy_directory(self, path: str, new_path: str) -> ServiceResult:
        """Duplicate every file under *path* at *new_path*; *path* is untouched."""
        store = self._vault.store
        return self._transfer(
            "copy_directory",
            path,
            new_path,
            transfer=store.copy,
            undo=lambda _src, dst: store.remove(dst),
        )

    def _check_transfer(self, op: str, source: str, raw_destination: str) -> str | ServiceResult:
        """Validate a move/copy; returns the destination path or a failure."""
        store = self._vault.store
        raw = raw_destination.strip()
        if not raw:
            return failure(
                op, ErrorCode.MISSING_VALUE, "Destination path is required in request body"
            )
        try:
            destination = normalize_vault_path(raw)
        except VaultPathError as exc:
            return failure(op, exc.code, exc.message)

        if not source:
            return failure(op, ErrorCode.VAULT_ROOT_PROTECTED, "Cannot move or copy the vault root")
        entry = store.entry(source)
        if entry is None:
            return self._not_found(op, source, "Directory")
        if not entry.is_dir:
            return failure(
                op, ErrorCode.INVALID_PATH, f"Path is a file: {source}; use Target-Type: file"
            )
        if store.exists(destination):
            return failure(
                op, ErrorCode.DESTINATION_EXISTS, f"Destination already exists: {destination}"
            )
        if is_within(destination, source):
            return failure(
                op,
                ErrorCode.INVALID_PATH,
                "Destination cannot be inside the source directory",
            )
        return destination

    def _transfer(
        self,
        op: str,
        source: str,
        raw_destination: str,
        *,
        transfer: _Transfer,
        undo: _Transfer,
    ) -> ServiceResult:
        checked = self._check_transfer(op, source, raw_destination)
        if isinstance(checked, ServiceResult):
            return checked
        destination = checked
        store = self._vault.store
        verb = "copied" if op == "copy_directory" else "moved"

        # Shallowest directory this operation creates; pruned on rollback.
        created_root = next(
            (d for d in [*ancestors(destination), destination] if not store.exists(d)),
            destination,
        )
        files = store.list_files(source)
        subdirs = store.list_dirs(source)

        batch = AtomicBatch()
        batch.enumerate(
            AtomicStep(
                identifier=src,
                apply=lambda src=src, dst=dst: transfer(src, dst),
                compensate=lambda src=src, dst=dst: undo(src, dst),
            )
            for src, dst in ((f, join(destination, relative_to(f, source))) for f in files)
        )

        with trace_span("atomic_transfer") as span:
            try:
                store.mkdir(destination)
            except OSError as exc:
                return failure(
                    op,
                    ErrorCode.DIRECTORY_OPERATION_FAILED,
                    f"Failed to create destination directory: {exc}",
                )
            result = batch.execute()
            if span:
                span.annotate("files", len(files))

        if batch.state is AtomicState.ROLLED_BACK:
            return self._rolled_back(op, batch, result, created_root, verb)

        warnings: list[str] = []
        for subdir in subdirs:
            try:
                store.mkdir(join(destination, relative_to(subdir, source)))
            except OSError as exc:
                warnings.append(f"Could not recreate empty directory: {exc}")
        if op == "move_directory":
            try:
                store.prune_empty_dirs(source)
            except OSError as exc:
                warnings.append(f"Could not remove emptied source directory: {exc}")

        logger.info("%s: %s -> %s (%d files)", op, source, destination, len(files))
        count_key = "files_copied_count" if op == "copy_directory" else "files_moved_count"
        return ServiceResult(
            ok=True,
            op=op,
            warnings=warnings,
            data=dump_validated(
                DirectoryTransferResultData,
                {
                    "message": f"Directory successfully {verb}",
                    "old_path": source,
                    "new_path": destination,
                    count_key: len(files),
                    **result.to_payload("file"),
                },
            ),
        )

    def _rolled_back(
        self,
        op: str,
        batch: AtomicBatch,
        result: BatchOperationResult,
        created_root: str,
        verb: str,
    ) -> ServiceResult:
        store = self._vault.store
        step_failure = batch.failure
        if step_failure is None:
            msg = "Rolled-back directory batch has no recorded failure"
            raise RuntimeError(msg)
        unrestored = batch.unrestored
        if not unrestored:
            try:
                store.prune_empty_dirs(created_root)
            except OSError:
                logger.warning("Failed to prune %s after rollback", created_root)

        detail = {
            "failed_file": step_failure.identifier,
            "unrestored": unrestored,
            **result.to_payload("file"),
        }
        base = (
            f"Directory not {verb}: failed on {step_failure.identifier}: {step_failure.message}"
        )
        if unrestored:
            return failure(
                op,
                ErrorCode.ROLLBACK_INCOMPLETE,
                f"{base}; rollback incomplete, unrestored files: {', '.join(unrestored)}",
                detail=detail,
            )
        return failure(
            op,
            ErrorCode.DIRECTORY_OPERATION_FAILED,
            f"{base}; all changes rolled back",
            detail=detail,
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    @traced
    def delete_directory(self, path: str, *, permanent: bool | None = None) -> ServiceResult:
        """Trash (or permanently remove) every file under *path*, then the tree."""
        op = "delete_directory"
        store = self._vault.store
        if not path:
            return failure(op, ErrorCode.VAULT_ROOT_PROTECTED, "Cannot delete the vault root")
        entry = store.entry(path)
        if entry is None:
            return self._not_found(op, path, "Directory")
        if not entry.is_dir:
            return failure(
                op, ErrorCode.INVALID_PATH, f"Path is a file: {path}; use Target-Type: file"
            )

        remove_permanently = self._resolve_permanent(permanent)
        batch = AggregatingBatch()
        for file_path in store.list_files(path):
            try:
                if remove_permanently:
                    store.remove(file_path)
                    batch.success(file_path, "Deleted")
                else:
                    batch.success(file_path, f"Moved to {store.trash(file_path)}")
            except OSError as exc:
                batch.failed(file_path, str(exc))

        warnings: list[str] = []
        try:
            store.prune_empty_dirs(path)
        except OSError as exc:
            warnings.append(f"Could not remove emptied directory: {exc}")

        result = batch.result()
        outcome = result.outcome
        status = outcome_status(outcome, ErrorCode.DELETE_FAILED.status)
        payload = result.to_payload("file")
        if outcome is BatchOutcome.TOTAL_FAILURE:
            return failure(
                op,
                ErrorCode.DELETE_FAILED,
                f"Failed to delete directory {path}: no files could be deleted",
                detail=payload,
            )

        summary = result.summary
        if outcome is BatchOutcome.PARTIAL_SUCCESS:
            message = (
                f"Directory partially deleted: {summary.failed} of "
                f"{plural(summary.requested, 'file')} failed"
            )
            warnings.extend(
                f"{item.identifier}: {item.message}"
                for item in result.results
                if item.status is ItemStatus.FAILED
            )
        elif remove_permanently:
            message = "Directory permanently deleted"
        else:
            message = "Directory moved to trash"

        logger.info("Deleted directory %s (%s)", path, outcome.value)
        return ServiceResult(
            ok=True,
            op=op,
            status=status,
            warnings=warnings,
            data=dump_validated(
                DirectoryDeleteResultData,
                {"message": message, "path": path, "permanent": remove_permanently, **payload},
            ),
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @traced
    def create_directory(self, path: str) -> ServiceResult:
        """Create *path* and missing parents; idempotent for directories."""
        op = "create_directory"
        store = self._vault.store
        for candidate in [*ancestors(path), path] if path else []:
            if store.is_file(candidate):
                return failure(
                    op,
                    ErrorCode.PATH_OCCUPIED_BY_FILE,
                    f"A file already exists at {candidate}",
                )

        if store.is_dir(path):
            return ServiceResult(
                ok=True,
                op=op,
                data=dump_validated(
                    DirectoryCreateResultData,
                    {"message": "Directory already exists", "path": path, "created": False},
                ),
            )

        try:
            store.mkdir(path)
        except OSError as exc:
            return failure(
                op, ErrorCode.DIRECTORY_OPERATION_FAILED, f"Failed to create directory: {exc}"
            )
        logger.info("Created directory %s", path)
        return ServiceResult(
            ok=True,
            op=op,
            status=CREATED,
            data=dump_validated(
                DirectoryCreateResultData,
                {"message": "Directory successfully created", "path": path, "created": True},
            ),
        )

