"""Mutation verbs, target kinds, and batch classification enums.

The target kinds form a closed set: the router maps every
``(TargetKind, Operation)`` pair to exactly one handler family or to a
validation error.
"""

from __future__ import annotations

from enum import StrEnum


class Operation(StrEnum):
    """Mutation verbs accepted by the router."""

    APPEND = "append"
    PREPEND = "prepend"
    REPLACE = "replace"
    RENAME = "rename"
    MOVE = "move"
    COPY = "copy"
    ADD = "add"
    REMOVE = "remove"
    CREATE = "create"
    DELETE = "delete"


class TargetKind(StrEnum):
    """Entity kinds a request can address."""

    HEADING = "heading"
    BLOCK = "block"
    FRONTMATTER = "frontmatter"
    FILE = "file"
    DIRECTORY = "directory"
    TAG = "tag"


class EntryKind(StrEnum):
    """Kind of a vault entry on disk."""

    FILE = "file"
    DIRECTORY = "directory"


# Kinds whose mutations are delegated to the structural patcher.
CONTENT_KINDS: frozenset[TargetKind] = frozenset(
    {TargetKind.HEADING, TargetKind.BLOCK, TargetKind.FRONTMATTER}
)


class HandlerFamily(StrEnum):
    """Handler families selected by the router."""

    CONTENT_PATCH = "content_patch"
    IDENTITY = "identity"
    DIRECTORY = "directory"
    TAG_BATCH = "tag_batch"
    TAG_RENAME = "tag_rename"


class ItemStatus(StrEnum):
    """Per-item outcome inside a batch."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class BatchOutcome(StrEnum):
    """Overall classification of a batch."""

    FULL_SUCCESS = "full_success"
    PARTIAL_SUCCESS = "partial_success"
    TOTAL_FAILURE = "total_failure"
