"""Link-preserving rename — move one file and update references to it.

The renamer plans every rewrite before touching the vault, then moves the
file and writes the rewritten referrers. If any write fails, already-written
referrers are restored and the file is moved back before the error
propagates, so a failed rename leaves the vault as it was.
"""

from __future__ import annotations

import logging
import posixpath
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from vaultpatch.domain.links import Resolver, rewrite_markdown_links, rewrite_wikilinks
from vaultpatch.domain.paths import name_of, parent_of
from vaultpatch.infrastructure.index import MARKDOWN_SUFFIX

if TYPE_CHECKING:
    from vaultpatch.infrastructure.store import VaultStore

logger = logging.getLogger(__name__)


class LinkRenamer(Protocol):
    """Collaborator contract: change a file's path, keeping links valid.

    Raises :class:`OSError` when the path change cannot be completed.
    """

    def rename(self, old_path: str, new_path: str) -> None: ...


def _strip_md(path: str) -> str:
    return path[: -len(MARKDOWN_SUFFIX)] if path.endswith(MARKDOWN_SUFFIX) else path


# ---------------------------------------------------------------------------
# Rewrite planning
# ---------------------------------------------------------------------------


@dataclass
class _Rewrite:
    """A planned referrer update, tracked for compensation."""

    path: str  # where the referrer lives after the move
    original: str
    updated: str
    written: bool = False

    def rollback(self, store: VaultStore) -> None:
        """Restore the original content (best-effort)."""
        if not self.written:
            return
        try:
            store.write(self.path, self.original)
        except OSError:
            logger.warning("Failed to restore link rewrite in %s", self.path)


class _RewritePlanner:
    """Decides how each link in the vault should read after one move."""

    def __init__(self, store: VaultStore, old_path: str, new_path: str) -> None:
        self._store = store
        self._old = old_path
        self._new = new_path
        names = Counter(name_of(p) for p in store.list_files())
        self._old_unique = names[name_of(old_path)] == 1
        same_name = name_of(new_path) == name_of(old_path)
        self._new_unique = names[name_of(new_path)] == (1 if same_name else 0)

    def wikilink_target(self, raw: str) -> str | None:
        """Replacement for a wikilink target, or None if unrelated."""
        old, new = self._old, self._new
        if raw == old:
            return new
        if raw == _strip_md(old) and old.endswith(MARKDOWN_SUFFIX):
            return _strip_md(new)
        if "/" in raw or not self._old_unique:
            return None
        if raw == name_of(old):
            return name_of(new) if self._new_unique else new
        if raw == _strip_md(name_of(old)) and old.endswith(MARKDOWN_SUFFIX):
            return _strip_md(name_of(new) if self._new_unique else new)
        return None

    def markdown_resolver(self, referrer: str) -> Resolver:
        """Resolver for markdown links inside *referrer*."""
        current_dir = parent_of(referrer)
        final_dir = parent_of(self._new) if referrer == self._old else current_dir

        def resolve(dest: str) -> str | None:
            absolute = dest.startswith("/")
            if absolute:
                target = dest.lstrip("/")
            else:
                target = posixpath.normpath(posixpath.join(current_dir, dest))
                if target.startswith(".."):
                    return None
            if target != self._old:
                # Links out of the moved file only change if its directory does.
                moved_out = referrer == self._old and final_dir != current_dir
                if not moved_out or not self._store.is_file(target):
                    return None
            final = self._new if target == self._old else target
            if absolute:
                return "/" + final
            return posixpath.relpath(final, final_dir or ".")

        return resolve

    def plan(self) -> list[_Rewrite]:
        rewrites: list[_Rewrite] = []
        for referrer in self._store.list_files():
            if not referrer.endswith(MARKDOWN_SUFFIX):
                continue
            try:
                original = self._store.read(referrer)
            except OSError as exc:
                logger.warning("Skipping unreadable referrer %s: %s", referrer, exc)
                continue
            updated, wiki_count = rewrite_wikilinks(original, self.wikilink_target)
            updated, md_count = rewrite_markdown_links(updated, self.markdown_resolver(referrer))
            if wiki_count or md_count:
                location = self._new if referrer == self._old else referrer
                rewrites.append(_Rewrite(path=location, original=original, updated=updated))
        return rewrites


# ---------------------------------------------------------------------------
# FilesystemLinkRenamer
# ---------------------------------------------------------------------------


class FilesystemLinkRenamer:
    """:class:`LinkRenamer` over a :class:`VaultStore`.

    With *rewrite_links* off it degrades to a plain store move.
    """

    def __init__(self, store: VaultStore, *, rewrite_links: bool = True) -> None:
        self._store = store
        self._rewrite_links = rewrite_links

    def rename(self, old_path: str, new_path: str) -> None:
        if not self._rewrite_links:
            self._store.move(old_path, new_path)
            return

        rewrites = _RewritePlanner(self._store, old_path, new_path).plan()
        self._store.move(old_path, new_path)
        try:
            for rewrite in rewrites:
                self._store.write(rewrite.path, rewrite.updated)
                rewrite.written = True
        except OSError:
            for rewrite in reversed(rewrites):
                rewrite.rollback(self._store)
            try:
                self._store.move(new_path, old_path)
            except OSError:
                logger.warning("Failed to move %s back to %s", new_path, old_path)
            raise
        if rewrites:
            logger.debug(
                "Updated links in %d file(s) for %s -> %s", len(rewrites), old_path, new_path
            )
