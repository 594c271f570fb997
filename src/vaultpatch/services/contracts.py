"""Typed payload contracts for service and adapter boundaries.

These models validate operation payload shapes before they leave the
service layer so key regressions (for example ``results`` vs ``items``,
or a missing ``summary``) fail fast in tests and during development.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


def dump_validated[T: BaseModel](model_cls: type[T], data: dict[str, Any]) -> dict[str, Any]:
    """Validate *data* against *model_cls* and return a normalized payload dict."""
    model = model_cls.model_validate(data)
    return model.model_dump(mode="python", exclude_none=True)


class SummaryData(BaseModel):
    requested: int
    succeeded: int
    skipped: int
    failed: int


class BatchItemData(BaseModel):
    """One per-item row; the identifier key (``tag``/``file``) is extra."""

    model_config = ConfigDict(extra="allow")

    status: str
    message: str


class RelocateResultData(BaseModel):
    """Payload contract for file rename and move."""

    message: str
    old_path: str
    new_path: str


class DeleteResultData(BaseModel):
    """Payload contract for file delete."""

    message: str
    path: str
    permanent: bool
    trash_path: str | None = None


class DirectoryTransferResultData(BaseModel):
    """Payload contract for directory move and copy."""

    message: str
    old_path: str
    new_path: str
    files_moved_count: int | None = None
    files_copied_count: int | None = None
    summary: SummaryData
    results: list[BatchItemData]


class DirectoryDeleteResultData(BaseModel):
    """Payload contract for directory delete."""

    message: str
    path: str
    permanent: bool
    summary: SummaryData
    results: list[BatchItemData]


class DirectoryCreateResultData(BaseModel):
    """Payload contract for directory create."""

    message: str
    path: str
    created: bool


class TagBatchResultData(BaseModel):
    """Payload contract for per-file tag add/remove."""

    message: str
    path: str
    operation: str
    summary: SummaryData
    results: list[BatchItemData]


class TagRenameError(BaseModel):
    file: str
    error: str


class TagRenameResultData(BaseModel):
    """Payload contract for vault-wide tag rename."""

    message: str
    old_tag: str
    new_tag: str
    modified_files: list[str]
    modified_count: int
    summary: SummaryData
    results: list[BatchItemData]
    errors: list[TagRenameError] | None = None


class ContentPatchResultData(BaseModel):
    """Payload contract for heading/block/frontmatter patches."""

    message: str
    path: str
    operation: str
    target_type: str
    target: str


class TagCount(BaseModel):
    tag: str
    files: int


class TagListResultData(BaseModel):
    """Payload contract for ``TagService.list_tags``."""

    count: int
    items: list[TagCount]


class TagFileUsage(BaseModel):
    path: str
    occurrences: int


class TagDetailResultData(BaseModel):
    """Payload contract for ``TagService.get_tag``."""

    tag: str
    count: int
    files: list[TagFileUsage]
