"""TagService — per-file tag batches, vault-wide rename, tag inventory.

Per-file add/remove reads the file once, computes every change in memory
and writes once. Vault-wide rename is best-effort: each file is rewritten
independently and failures are reported per file.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any

from vaultpatch.domain.content import parse_document, render_document
from vaultpatch.domain.errors import ErrorCode, InstructionError
from vaultpatch.domain.instruction import MutationInstruction
from vaultpatch.domain.tags import (
    TagError,
    add_frontmatter_tags,
    append_inline_tags,
    dedupe_tags,
    is_tag_or_child,
    normalize_tag,
    remove_frontmatter_tags,
    remove_inline_tag,
    rename_frontmatter_tag,
    rename_inline_tag,
)
from vaultpatch.domain.types import BatchOutcome, ItemStatus, Operation
from vaultpatch.infrastructure.index import build_metadata
from vaultpatch.services._helpers import failure, plural
from vaultpatch.services.base import BaseService
from vaultpatch.services.batch import AggregatingBatch, outcome_status
from vaultpatch.services.contracts import (
    TagBatchResultData,
    TagDetailResultData,
    TagListResultData,
    TagRenameResultData,
    dump_validated,
)
from vaultpatch.services.result import ServiceResult
from vaultpatch.services.telemetry import trace_span, traced

logger = logging.getLogger(__name__)

_LEGACY_MESSAGES = {
    Operation.ADD: "Tag added successfully",
    Operation.REMOVE: "Tag removed successfully",
}
_NO_CHANGES = "No changes made"


def _body_tags(instruction: MutationInstruction) -> list[str]:
    """Tags from a ``{"tags": [...]}`` JSON body (structured channel).

    Raises:
        InstructionError: INVALID_CONTENT when the body is not that shape.
    """
    if not instruction.is_json or not instruction.body.strip():
        return []
    try:
        payload = json.loads(instruction.text())
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON body: {exc.msg}"
        raise InstructionError(ErrorCode.INVALID_CONTENT, msg) from exc
    tags = payload.get("tags") if isinstance(payload, dict) else None
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        msg = 'Request body must be a JSON object with a "tags" array of strings'
        raise InstructionError(ErrorCode.INVALID_CONTENT, msg)
    return tags


class TagService(BaseService):
    """Tag mutations and read-only tag queries."""

    @property
    def _max_length(self) -> int:
        return self._vault.settings.tags.max_length

    @traced
    def apply(self, instruction: MutationInstruction) -> ServiceResult:
        """Router entry point for the tag-batch and tag-rename families."""
        if instruction.operation is Operation.RENAME:
            text = self._body_text("tag_rename", instruction)
            if isinstance(text, ServiceResult):
                return text
            return self.rename_tag(instruction.source_path, text)

        op = "tag_batch"
        try:
            body_tags = _body_tags(instruction)
        except InstructionError as exc:
            return failure(op, exc.code, exc.message)
        raw_tags = ([instruction.target] if instruction.target else []) + body_tags
        return self.apply_tags(
            instruction.source_path,
            raw_tags,
            operation=instruction.operation,
            legacy=bool(instruction.target) and not body_tags,
        )

    # ------------------------------------------------------------------
    # Per-file batch
    # ------------------------------------------------------------------

    @traced
    def apply_tags(
        self,
        path: str,
        raw_tags: list[str],
        *,
        operation: Operation,
        legacy: bool = False,
    ) -> ServiceResult:
        """Add or remove *raw_tags* on one file with a single write.

        Tags are deduplicated (first occurrence wins) and validated one by
        one; malformed tokens fail individually without blocking the rest.
        """
        op = "tag_batch"
        if operation not in (Operation.ADD, Operation.REMOVE):
            return failure(
                op,
                ErrorCode.TAG_OPERATION_UNSUPPORTED,
                f"Unsupported tag operation: {operation.value}",
            )
        tags = dedupe_tags(raw_tags)
        if not tags:
            return failure(
                op,
                ErrorCode.MISSING_VALUE,
                'No tags provided; use the Target header or a {"tags": [...]} body',
            )

        store = self._vault.store
        if not path or not store.is_file(path):
            return self._not_found(op, path)
        try:
            content = store.read(path)
        except OSError as exc:
            return failure(op, ErrorCode.TAG_UPDATE_FAILED, f"Failed to read file: {exc}")

        present = build_metadata(path, content).tags
        batch = AggregatingBatch()
        changes: list[str] = []
        for raw in tags:
            try:
                tag = normalize_tag(raw, max_length=self._max_length)
            except TagError as exc:
                batch.failed(raw, str(exc))
                continue
            if operation is Operation.ADD and tag in present:
                batch.skipped(tag, "Tag already present")
            elif operation is Operation.REMOVE and tag not in present:
                batch.skipped(tag, "Tag not present")
            else:
                batch.pending(tag)
                changes.append(tag)

        warnings: list[str] = []
        if changes:
            updated = self._edit_tags(content, changes, operation)
            try:
                if updated != content:
                    store.write(path, updated)
            except OSError as exc:
                batch.settle_pending(ItemStatus.FAILED, "Write failed")
                return failure(
                    op,
                    ErrorCode.TAG_UPDATE_FAILED,
                    f"Failed to update tags: {exc}",
                    detail=batch.result().to_payload("tag"),
                )
            verb = "Added" if operation is Operation.ADD else "Removed"
            batch.settle_pending(ItemStatus.SUCCESS, verb)

        result = batch.result()
        summary = result.summary
        outcome = result.outcome
        if outcome is BatchOutcome.TOTAL_FAILURE:
            first = result.results[0]
            return failure(
                op,
                ErrorCode.INVALID_TAG_NAME,
                first.message if summary.requested == 1 else "No valid tags provided",
                detail=result.to_payload("tag"),
            )
        if outcome is BatchOutcome.PARTIAL_SUCCESS:
            warnings.extend(
                f"{item.identifier}: {item.message}"
                for item in result.results
                if item.status is ItemStatus.FAILED
            )

        if legacy:
            message = _LEGACY_MESSAGES[operation] if summary.succeeded else _NO_CHANGES
        elif summary.succeeded:
            verb = "Added" if operation is Operation.ADD else "Removed"
            message = f"{verb} {plural(summary.succeeded, 'tag')}"
        else:
            message = _NO_CHANGES

        logger.info("tag %s on %s: %s", operation.value, path, summary.model_dump())
        return ServiceResult(
            ok=True,
            op=op,
            status=outcome_status(outcome, ErrorCode.INVALID_TAG_NAME.status),
            warnings=warnings,
            data=dump_validated(
                TagBatchResultData,
                {
                    "message": message,
                    "path": path,
                    "operation": operation.value,
                    **result.to_payload("tag"),
                },
            ),
        )

    @staticmethod
    def _edit_tags(content: str, tags: list[str], operation: Operation) -> str:
        """Apply every tag change to *content* in memory."""
        doc = parse_document(content)
        if operation is Operation.ADD:
            if doc.has_frontmatter:
                add_frontmatter_tags(doc.frontmatter, tags)
                return render_document(doc)
            return append_inline_tags(doc.body, tags)

        if doc.has_frontmatter:
            remove_frontmatter_tags(doc.frontmatter, tags)
        for tag in tags:
            doc.body, _ = remove_inline_tag(doc.body, tag)
        return render_document(doc)

    # ------------------------------------------------------------------
    # Vault-wide rename
    # ------------------------------------------------------------------

    @traced
    def rename_tag(self, old_tag: str, new_tag: str) -> ServiceResult:
        """Rename exact *old_tag* occurrences to *new_tag* in every file."""
        op = "tag_rename"
        try:
            old = normalize_tag(old_tag, max_length=self._max_length)
            new = normalize_tag(new_tag, max_length=self._max_length)
        except TagError as exc:
            return failure(op, ErrorCode.INVALID_TAG_NAME, str(exc))
        if old == new:
            return failure(
                op, ErrorCode.SAME_TAG_NAME, "New tag name must differ from the old tag name"
            )

        with trace_span("find_tagged_files"):
            scanned = list(self._vault.index.all_metadata())
        paths = [meta.path for meta in scanned if meta.has_tag(old)]
        unreadable = [meta for meta in scanned if meta.unreadable is not None]
        if not paths:
            return failure(op, ErrorCode.TAG_NOT_FOUND, f"Tag not found in any file: {old}")

        store = self._vault.store
        batch = AggregatingBatch()
        modified: list[str] = []
        errors: list[dict[str, str]] = []
        with trace_span("rewrite_files") as span:
            # Files the scan could not read may hold the tag; report them.
            for meta in unreadable:
                batch.failed(meta.path, meta.unreadable or "Unreadable")
                errors.append({"file": meta.path, "error": meta.unreadable or "Unreadable"})
            for path in paths:
                try:
                    content = store.read(path)
                    updated = self._rename_in(content, old, new)
                    if updated == content:
                        batch.skipped(path, "No exact occurrences to rewrite")
                        continue
                    store.write(path, updated)
                except OSError as exc:
                    logger.warning("Tag rename failed for %s: %s", path, exc)
                    batch.failed(path, str(exc))
                    errors.append({"file": path, "error": str(exc)})
                    continue
                batch.success(path, "Renamed")
                modified.append(path)
            if span:
                span.annotate("files", len(paths))

        result = batch.result()
        outcome = result.outcome
        if outcome is BatchOutcome.TOTAL_FAILURE:
            return failure(
                op,
                ErrorCode.TAG_RENAME_FAILED,
                f"Failed to rename tag {old} in every file",
                detail={"errors": errors, **result.to_payload("file")},
            )

        message = f"Tag '{old}' renamed to '{new}' in {plural(len(modified), 'file')}"
        data: dict[str, Any] = {
            "message": message,
            "old_tag": old,
            "new_tag": new,
            "modified_files": modified,
            "modified_count": len(modified),
            **result.to_payload("file"),
        }
        warnings: list[str] = []
        if errors:
            data["errors"] = errors
            warnings = [f"{e['file']}: {e['error']}" for e in errors]

        logger.info("Renamed tag %s -> %s in %d file(s)", old, new, len(modified))
        return ServiceResult(
            ok=True,
            op=op,
            status=outcome_status(outcome, ErrorCode.TAG_RENAME_FAILED.status),
            warnings=warnings,
            data=dump_validated(TagRenameResultData, data),
        )

    @staticmethod
    def _rename_in(content: str, old: str, new: str) -> str:
        doc = parse_document(content)
        if doc.has_frontmatter:
            rename_frontmatter_tag(doc.frontmatter, old, new)
        doc.body, _ = rename_inline_tag(doc.body, old, new)
        return render_document(doc)

    # ------------------------------------------------------------------
    # Inventory (read-only)
    # ------------------------------------------------------------------

    @traced
    def list_tags(self) -> ServiceResult:
        """Every tag with the number of files using it."""
        counts: Counter[str] = Counter()
        for meta in self._vault.index.all_metadata():
            counts.update(meta.tags)
        items = [
            {"tag": tag, "files": count}
            for tag, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ]
        return ServiceResult(
            ok=True,
            op="list_tags",
            data=dump_validated(TagListResultData, {"count": len(items), "items": items}),
        )

    @traced
    def get_tag(self, name: str) -> ServiceResult:
        """Files using *name* or any of its nested children."""
        op = "get_tag"
        try:
            tag = normalize_tag(name, max_length=self._max_length)
        except TagError as exc:
            return failure(op, ErrorCode.INVALID_TAG_NAME, str(exc))

        files: list[dict[str, Any]] = []
        for meta in self._vault.index.all_metadata():
            occurrences = sum(
                1
                for t in (*meta.frontmatter_tags, *meta.inline_tags)
                if is_tag_or_child(t, tag)
            )
            if occurrences:
                files.append({"path": meta.path, "occurrences": occurrences})
        if not files:
            return failure(op, ErrorCode.TAG_NOT_FOUND, f"Tag not found in any file: {tag}")
        return ServiceResult(
            ok=True,
            op=op,
            data=dump_validated(
                TagDetailResultData, {"tag": tag, "count": len(files), "files": files}
            ),
        )
