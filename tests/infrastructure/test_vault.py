"""Tests for the Vault collaborator container."""

from __future__ import annotations

from pathlib import Path

from vaultpatch.config.settings import VaultPatchSettings
from vaultpatch.domain.instruction import MutationInstruction
from vaultpatch.domain.patching import apply_patch
from vaultpatch.infrastructure.index import FileMetadataIndex
from vaultpatch.infrastructure.links import FilesystemLinkRenamer
from vaultpatch.infrastructure.store import FilesystemStore
from vaultpatch.infrastructure.vault import Vault


class TestVault:
    def test_defaults(self, settings: VaultPatchSettings, vault_root: Path) -> None:
        vault = Vault(settings)
        assert vault.root == vault_root
        assert vault.settings is settings
        assert isinstance(vault.store, FilesystemStore)
        assert vault.store.root == vault_root
        assert isinstance(vault.index, FileMetadataIndex)
        assert isinstance(vault.renamer, FilesystemLinkRenamer)
        assert vault.patcher is apply_patch

    def test_injected_collaborators(self, settings: VaultPatchSettings, vault_root: Path) -> None:
        store = FilesystemStore(vault_root)

        def patcher(content: str, instruction: MutationInstruction) -> str:
            return content

        vault = Vault(settings, store=store, patcher=patcher)
        assert vault.store is store
        assert vault.patcher is patcher

    def test_trash_dir_from_settings(self, vault_root: Path) -> None:
        (vault_root / "vaultpatch.toml").write_text('[delete]\ntrash_dir = "bin"\n')
        (vault_root / "notes" / "a.md").write_text("x")
        settings = VaultPatchSettings.from_cli(vault_root=vault_root)
        vault = Vault(settings)
        assert vault.store.trash("notes/a.md") == "bin/notes/a.md"
