"""Metadata index — parsed tags and frontmatter per markdown file.

The index is a read-only view derived from the store on demand. It holds no
cache: every lookup reflects the files as they are at call time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from vaultpatch.domain.content import parse_document
from vaultpatch.domain.tags import extract_frontmatter_tags, extract_inline_tags

if TYPE_CHECKING:
    from vaultpatch.infrastructure.store import VaultStore

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


@dataclass(frozen=True)
class FileMetadata:
    """Parsed metadata for one file."""

    path: str
    frontmatter: dict[str, Any] = field(default_factory=dict)
    frontmatter_tags: tuple[str, ...] = ()
    inline_tags: tuple[str, ...] = ()
    unreadable: str | None = None

    @property
    def tags(self) -> frozenset[str]:
        """All distinct tags, frontmatter and inline."""
        return frozenset(self.frontmatter_tags) | frozenset(self.inline_tags)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


class MetadataIndex(Protocol):
    """Collaborator contract for per-file tag and frontmatter lookups."""

    def get(self, path: str) -> FileMetadata | None: ...

    def all_metadata(self) -> Iterator[FileMetadata]: ...


def build_metadata(path: str, content: str) -> FileMetadata:
    """Parse *content* into :class:`FileMetadata`."""
    doc = parse_document(content)
    return FileMetadata(
        path=path,
        frontmatter=dict(doc.frontmatter),
        frontmatter_tags=tuple(extract_frontmatter_tags(doc.frontmatter)),
        inline_tags=tuple(extract_inline_tags(doc.body)),
    )


class FileMetadataIndex:
    """:class:`MetadataIndex` that parses files from the store on demand."""

    def __init__(self, store: VaultStore) -> None:
        self._store = store

    def get(self, path: str) -> FileMetadata | None:
        """Metadata for *path*, or None if it is not a file."""
        if not self._store.is_file(path):
            return None
        return build_metadata(path, self._store.read(path))

    def markdown_files(self) -> list[str]:
        return [p for p in self._store.list_files() if p.endswith(MARKDOWN_SUFFIX)]

    def all_metadata(self) -> Iterator[FileMetadata]:
        """Metadata for every markdown file.

        A file that cannot be read yields a record with no tags and the
        read error in :attr:`FileMetadata.unreadable`.
        """
        for path in self.markdown_files():
            try:
                yield build_metadata(path, self._store.read(path))
            except OSError as exc:
                logger.warning("Unreadable file in metadata scan: %s", path)
                yield FileMetadata(path=path, unreadable=str(exc))
