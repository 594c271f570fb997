"""Vault-relative path rules.

INVARIANT: A normalized vault path uses forward slashes, has no leading or
trailing slash, contains no ``.``/``..`` segments, and therefore never
escapes the vault root. The empty string denotes the root itself.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from vaultpatch.domain.errors import ErrorCode, VaultPathError
from vaultpatch.domain.types import EntryKind


@dataclass(frozen=True)
class VaultEntry:
    """A file or directory addressed by its vault-relative path."""

    path: str
    kind: EntryKind

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


def normalize_vault_path(raw: str, *, allow_root: bool = False) -> str:
    """Normalize *raw* into a vault-relative path.

    Backslashes become forward slashes, duplicate and surrounding slashes are
    collapsed, and ``.`` segments are dropped.

    Raises:
        VaultPathError: If the path contains ``..`` or a NUL byte, or if it
            resolves to the vault root and *allow_root* is False.

    Examples:
        >>> normalize_vault_path("/notes//daily/")
        'notes/daily'
        >>> normalize_vault_path("notes\\\\a.md")
        'notes/a.md'
    """
    if "\x00" in raw:
        msg = "Path contains a NUL byte"
        raise VaultPathError(msg, ErrorCode.INVALID_PATH)

    segments: list[str] = []
    for segment in raw.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            msg = f"Path escapes vault root: {raw}"
            raise VaultPathError(msg)
        segments.append(segment)

    path = "/".join(segments)
    if not path and not allow_root:
        msg = "Path refers to the vault root"
        raise VaultPathError(msg, ErrorCode.VAULT_ROOT_PROTECTED)
    return path


def parent_of(path: str) -> str:
    """Parent directory of *path* (``""`` for top-level entries)."""
    return posixpath.dirname(path)


def name_of(path: str) -> str:
    """Final segment of *path*."""
    return posixpath.basename(path)


def join(*parts: str) -> str:
    """Join vault path fragments, ignoring empty ones."""
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def is_within(path: str, root: str) -> bool:
    """True if *path* equals *root* or lies beneath it."""
    if not root:
        return True
    return path == root or path.startswith(root + "/")


def relative_to(path: str, root: str) -> str:
    """Strip *root* from *path*.

    Raises:
        ValueError: If *path* is not under *root*.
    """
    if not root:
        return path
    if not path.startswith(root + "/"):
        msg = f"{path!r} is not under {root!r}"
        raise ValueError(msg)
    return path[len(root) + 1 :]


def ancestors(path: str) -> list[str]:
    """All proper ancestor directories of *path*, shallowest first.

    Examples:
        >>> ancestors("a/b/c.md")
        ['a', 'a/b']
    """
    parts = path.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]
