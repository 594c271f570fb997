"""File store — the vault's file and directory primitives.

INVARIANT: Files are truth. The store reads and writes the vault directory
directly and keeps no cache; the metadata index is derived from it.

All paths crossing this interface are vault-relative (see
:mod:`vaultpatch.domain.paths`). Failures surface as :class:`StoreError`,
an :class:`OSError` whose message names vault-relative paths only.
"""

from __future__ import annotations

import os
import posixpath
import shutil
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from vaultpatch.domain.paths import VaultEntry, is_within
from vaultpatch.domain.types import EntryKind

DEFAULT_SKIP_DIRS = frozenset({".obsidian", ".git", ".trash"})


class StoreError(OSError):
    """A store primitive failed."""


class VaultStore(Protocol):
    """Collaborator contract for file and directory primitives."""

    def entry(self, path: str) -> VaultEntry | None: ...

    def exists(self, path: str) -> bool: ...

    def is_file(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def read(self, path: str) -> str: ...

    def write(self, path: str, content: str) -> None: ...

    def list_files(self, prefix: str = "") -> list[str]: ...

    def list_dirs(self, prefix: str = "") -> list[str]: ...

    def mkdir(self, path: str) -> None: ...

    def move(self, src: str, dst: str) -> None: ...

    def copy(self, src: str, dst: str) -> None: ...

    def remove(self, path: str) -> None: ...

    def trash(self, path: str) -> str: ...

    def prune_empty_dirs(self, path: str) -> list[str]: ...


@contextmanager
def _io(action: str, path: str) -> Iterator[None]:
    """Re-raise OSError as StoreError naming only the vault-relative path."""
    try:
        yield
    except StoreError:
        raise
    except OSError as exc:
        reason = exc.strerror or exc.__class__.__name__
        msg = f"{action} failed for {path}: {reason}"
        raise StoreError(msg) from exc


class FilesystemStore:
    """:class:`VaultStore` backed by a directory on the local filesystem."""

    def __init__(
        self,
        root: Path,
        *,
        skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
        trash_dir: str = ".trash",
    ) -> None:
        self._root = root
        self._skip_dirs = frozenset(skip_dirs) | {trash_dir}
        self._trash_dir = trash_dir

    @property
    def root(self) -> Path:
        """The vault root directory."""
        return self._root

    def resolve(self, path: str) -> Path:
        """Absolute filesystem path for vault-relative *path*.

        Raises:
            StoreError: If the path resolves outside the vault root
                (``..`` segments or symlinks pointing elsewhere).
        """
        target = self._root / path if path else self._root
        if not target.resolve().is_relative_to(self._root.resolve()):
            msg = f"Path escapes vault root: {path}"
            raise StoreError(msg)
        return target

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entry(self, path: str) -> VaultEntry | None:
        """The file or directory at *path*, or None when nothing is there."""
        target = self.resolve(path)
        if target.is_dir():
            return VaultEntry(path, EntryKind.DIRECTORY)
        if target.is_file():
            return VaultEntry(path, EntryKind.FILE)
        return None

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_file(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def is_dir(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    def read(self, path: str) -> str:
        with _io("Read", path):
            raw = self.resolve(path).read_bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"Read failed for {path}: not UTF-8 text"
            raise StoreError(msg) from exc

    def _walk(self, prefix: str, *, want_dirs: bool) -> list[str]:
        base = self.resolve(prefix)
        if not base.is_dir():
            return []
        results: list[str] = []
        for entry in base.rglob("*"):
            rel = entry.relative_to(self._root).as_posix()
            if prefix:
                # Below an addressed directory only the vault trash is hidden.
                if is_within(rel, self._trash_dir):
                    continue
            elif any(part in self._skip_dirs for part in Path(rel).parts):
                continue
            if want_dirs and entry.is_dir():
                results.append(rel)
            elif not want_dirs and entry.is_file():
                results.append(rel)
        return sorted(results)

    def list_files(self, prefix: str = "") -> list[str]:
        """Every file under *prefix*, recursively, sorted.

        A vault-wide listing (empty *prefix*) hides the configured skip
        directories. Under an explicit prefix only the vault trash is hidden,
        so a directory move or delete sees every file it would touch.
        """
        return self._walk(prefix, want_dirs=False)

    def list_dirs(self, prefix: str = "") -> list[str]:
        """Every directory under *prefix* (excluding *prefix*), sorted."""
        return self._walk(prefix, want_dirs=True)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def write(self, path: str, content: str) -> None:
        """Write *content* to *path*, creating parent directories."""
        target = self.resolve(path)
        with _io("Write", path):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

    def mkdir(self, path: str) -> None:
        """Create *path* and any missing parents (no-op if present)."""
        with _io("Create directory", path):
            self.resolve(path).mkdir(parents=True, exist_ok=True)

    def move(self, src: str, dst: str) -> None:
        """Move a file or directory; *dst* must not exist."""
        target = self.resolve(dst)
        if target.exists():
            msg = f"Move failed for {src}: destination {dst} already exists"
            raise StoreError(msg)
        with _io("Move", src):
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(self.resolve(src), target)

    def copy(self, src: str, dst: str) -> None:
        """Copy file *src* to *dst*; *dst* must not exist."""
        target = self.resolve(dst)
        if target.exists():
            msg = f"Copy failed for {src}: destination {dst} already exists"
            raise StoreError(msg)
        with _io("Copy", src):
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.resolve(src), target)

    def remove(self, path: str) -> None:
        """Permanently delete file *path*."""
        with _io("Delete", path):
            self.resolve(path).unlink()

    def trash(self, path: str) -> str:
        """Relocate *path* into the trash directory, keeping its layout.

        Returns the vault-relative trash location. Name collisions get a
        numeric suffix (``note 1.md``, ``note 2.md``, ...).
        """
        base = posixpath.join(self._trash_dir, path)
        stem, ext = posixpath.splitext(base)
        if self.resolve(path).is_dir():
            stem, ext = base, ""
        candidate = base
        counter = 1
        while self.resolve(candidate).exists():
            candidate = f"{stem} {counter}{ext}"
            counter += 1
        self.move(path, candidate)
        return candidate

    def prune_empty_dirs(self, path: str) -> list[str]:
        """Remove *path* and its subdirectories bottom-up while they are empty.

        Returns the vault-relative directories removed. Directories that
        still hold entries are left in place.
        """
        base = self.resolve(path)
        if not base.is_dir():
            return []
        removed: list[str] = []
        candidates = sorted(
            (p for p in base.rglob("*") if p.is_dir()),
            key=lambda p: len(p.parts),
            reverse=True,
        )
        for directory in [*candidates, base]:
            if any(directory.iterdir()):
                continue
            rel = directory.relative_to(self._root).as_posix()
            with _io("Remove directory", rel):
                directory.rmdir()
            removed.append(rel)
        return removed
