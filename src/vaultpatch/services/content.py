"""ContentService — heading, block, and frontmatter patches.

A thin adapter around the injected structural patcher: read the file, hand
the content and instruction to the patcher, write the result back.
"""

from __future__ import annotations

import logging

from vaultpatch.domain.errors import ErrorCode, InstructionError
from vaultpatch.domain.instruction import MutationInstruction
from vaultpatch.domain.patching import PatchFailed
from vaultpatch.services._helpers import failure
from vaultpatch.services.base import BaseService
from vaultpatch.services.contracts import ContentPatchResultData, dump_validated
from vaultpatch.services.result import ServiceResult
from vaultpatch.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)


class ContentService(BaseService):
    """Applies structural patches to a single file."""

    @traced
    def apply(self, instruction: MutationInstruction) -> ServiceResult:
        op = "patch_content"
        path = instruction.source_path
        store = self._vault.store
        if not path or not store.is_file(path):
            return self._not_found(op, path)

        try:
            content = store.read(path)
        except OSError as exc:
            return failure(op, ErrorCode.CONTENT_PATCH_FAILED, f"Failed to read file: {exc}")

        with trace_span("structural_patch"):
            try:
                patched = self._vault.patcher(content, instruction)
            except PatchFailed as exc:
                return failure(
                    op,
                    ErrorCode.PATCH_FAILED,
                    f"Patch failed: {exc.reason}",
                    detail={"reason": exc.reason},
                )
            except InstructionError as exc:
                return failure(op, exc.code, exc.message)
            except Exception as exc:
                logger.exception("Patcher raised unexpectedly for %s", path)
                return failure(
                    op,
                    ErrorCode.CONTENT_PATCH_FAILED,
                    f"Patch failed unexpectedly: {exc.__class__.__name__}",
                )

        try:
            if patched != content:
                store.write(path, patched)
        except OSError as exc:
            return failure(op, ErrorCode.CONTENT_PATCH_FAILED, f"Failed to write file: {exc}")

        logger.info(
            "Patched %s %s %r in %s",
            instruction.operation.value,
            instruction.target_kind.value,
            instruction.target,
            path,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                ContentPatchResultData,
                {
                    "message": "Content successfully patched",
                    "path": path,
                    "operation": instruction.operation.value,
                    "target_type": instruction.target_kind.value,
                    "target": instruction.target,
                },
            ),
        )
