"""Vault — the collaborator container injected into every service.

The Vault owns the store, the metadata index, the link-preserving renamer
and the structural patcher. Each defaults to the filesystem-backed
implementation configured from :class:`VaultPatchSettings`; tests and
embedders pass their own through the keyword arguments.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from vaultpatch.domain.patching import StructuralPatcher, apply_patch
from vaultpatch.infrastructure.index import FileMetadataIndex, MetadataIndex
from vaultpatch.infrastructure.links import FilesystemLinkRenamer, LinkRenamer
from vaultpatch.infrastructure.store import FilesystemStore, VaultStore

if TYPE_CHECKING:
    from vaultpatch.config.settings import VaultPatchSettings


class Vault:
    """Collaborators for one vault root.

    Constructed once at CLI startup from :class:`VaultPatchSettings` and
    stored in ``click.Context.obj``. Services receive the Vault via their
    :class:`BaseService` constructor.
    """

    def __init__(
        self,
        settings: VaultPatchSettings,
        *,
        store: VaultStore | None = None,
        index: MetadataIndex | None = None,
        renamer: LinkRenamer | None = None,
        patcher: StructuralPatcher | None = None,
    ) -> None:
        self._settings = settings
        self._store: VaultStore = store or FilesystemStore(
            settings.vault_root,
            skip_dirs=settings.vault.skip_dirs,
            trash_dir=settings.delete.trash_dir,
        )
        self._index: MetadataIndex = index or FileMetadataIndex(self._store)
        self._renamer: LinkRenamer = renamer or FilesystemLinkRenamer(
            self._store, rewrite_links=settings.links.rewrite
        )
        self._patcher: StructuralPatcher = patcher or apply_patch

    @property
    def root(self) -> Path:
        """The vault root directory."""
        return self._settings.vault_root

    @property
    def settings(self) -> VaultPatchSettings:
        """The resolved settings for this vault."""
        return self._settings

    @property
    def store(self) -> VaultStore:
        return self._store

    @property
    def index(self) -> MetadataIndex:
        return self._index

    @property
    def renamer(self) -> LinkRenamer:
        return self._renamer

    @property
    def patcher(self) -> StructuralPatcher:
        return self._patcher
