"""Tests for FilesystemStore primitives."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.conftest import read_file, write_file
from vaultpatch.domain.paths import VaultEntry
from vaultpatch.domain.types import EntryKind
from vaultpatch.infrastructure.store import FilesystemStore, StoreError


@pytest.fixture
def store(tmp_path: Path) -> FilesystemStore:
    return FilesystemStore(tmp_path)


class TestQueries:
    def test_exists_and_kinds(self, store: FilesystemStore, tmp_path: Path) -> None:
        write_file(tmp_path, "notes/a.md", "x")
        assert store.is_file("notes/a.md")
        assert store.is_dir("notes")
        assert store.exists("notes")
        assert not store.exists("missing.md")

    def test_entry(self, store: FilesystemStore, tmp_path: Path) -> None:
        write_file(tmp_path, "notes/a.md")
        assert store.entry("notes/a.md") == VaultEntry("notes/a.md", EntryKind.FILE)
        assert store.entry("notes").is_dir  # type: ignore[union-attr]
        assert store.entry("") == VaultEntry("", EntryKind.DIRECTORY)
        assert store.entry("notes/none.md") is None

    def test_list_files_skips_hidden_dirs(self, store: FilesystemStore, tmp_path: Path) -> None:
        write_file(tmp_path, "b.md")
        write_file(tmp_path, "notes/a.md")
        write_file(tmp_path, ".obsidian/app.json")
        write_file(tmp_path, ".trash/old.md")
        assert store.list_files() == ["b.md", "notes/a.md"]
        assert store.list_files("notes") == ["notes/a.md"]
        assert store.list_files("missing") == []

    def test_prefixed_listing_includes_hidden_dirs(
        self, store: FilesystemStore, tmp_path: Path
    ) -> None:
        write_file(tmp_path, "projects/a.md")
        write_file(tmp_path, "projects/.git/config")
        write_file(tmp_path, "projects/.obsidian/app.json")
        assert store.list_files("projects") == [
            "projects/.git/config",
            "projects/.obsidian/app.json",
            "projects/a.md",
        ]
        assert store.list_dirs("projects") == ["projects/.git", "projects/.obsidian"]

    def test_prefixed_listing_hides_vault_trash(
        self, store: FilesystemStore, tmp_path: Path
    ) -> None:
        write_file(tmp_path, ".trash/projects/a.md")
        assert store.list_files(".trash") == []

    def test_list_dirs(self, store: FilesystemStore, tmp_path: Path) -> None:
        (tmp_path / "p" / "x" / "y").mkdir(parents=True)
        assert store.list_dirs("p") == ["p/x", "p/x/y"]

    def test_resolve_rejects_escape(self, store: FilesystemStore) -> None:
        with pytest.raises(StoreError):
            store.resolve("../elsewhere")

    def test_read_missing_names_relative_path(self, store: FilesystemStore) -> None:
        with pytest.raises(StoreError) as exc_info:
            store.read("notes/missing.md")
        assert "notes/missing.md" in str(exc_info.value)
        assert str(store.root) not in str(exc_info.value)

    def test_read_non_utf8(self, store: FilesystemStore, tmp_path: Path) -> None:
        (tmp_path / "notes").mkdir()
        (tmp_path / "notes" / "latin.md").write_bytes("caf\xe9".encode("latin-1"))
        with pytest.raises(StoreError, match="Read failed for notes/latin.md: not UTF-8 text"):
            store.read("notes/latin.md")


class TestMutations:
    def test_write_creates_parents(self, store: FilesystemStore, tmp_path: Path) -> None:
        store.write("deep/er/a.md", "hello")
        assert read_file(tmp_path, "deep/er/a.md") == "hello"

    def test_move(self, store: FilesystemStore, tmp_path: Path) -> None:
        write_file(tmp_path, "a.md", "x")
        store.move("a.md", "archive/a.md")
        assert not (tmp_path / "a.md").exists()
        assert read_file(tmp_path, "archive/a.md") == "x"

    def test_move_refuses_existing_destination(
        self, store: FilesystemStore, tmp_path: Path
    ) -> None:
        write_file(tmp_path, "a.md", "a")
        write_file(tmp_path, "b.md", "b")
        with pytest.raises(StoreError, match="already exists"):
            store.move("a.md", "b.md")
        assert read_file(tmp_path, "b.md") == "b"

    def test_copy(self, store: FilesystemStore, tmp_path: Path) -> None:
        write_file(tmp_path, "a.md", "x")
        store.copy("a.md", "b/a.md")
        assert read_file(tmp_path, "a.md") == "x"
        assert read_file(tmp_path, "b/a.md") == "x"

    def test_remove(self, store: FilesystemStore, tmp_path: Path) -> None:
        write_file(tmp_path, "a.md")
        store.remove("a.md")
        assert not (tmp_path / "a.md").exists()

    def test_trash_keeps_layout_and_suffixes_collisions(
        self, store: FilesystemStore, tmp_path: Path
    ) -> None:
        write_file(tmp_path, "notes/a.md", "first")
        assert store.trash("notes/a.md") == ".trash/notes/a.md"
        write_file(tmp_path, "notes/a.md", "second")
        assert store.trash("notes/a.md") == ".trash/notes/a 1.md"
        assert read_file(tmp_path, ".trash/notes/a 1.md") == "second"

    def test_custom_trash_dir(self, tmp_path: Path) -> None:
        store = FilesystemStore(tmp_path, trash_dir="bin")
        write_file(tmp_path, "a.md")
        assert store.trash("a.md") == "bin/a.md"
        assert store.list_files() == []

    def test_prune_empty_dirs(self, store: FilesystemStore, tmp_path: Path) -> None:
        (tmp_path / "p" / "empty" / "deeper").mkdir(parents=True)
        write_file(tmp_path, "p/keep/a.md")
        removed = store.prune_empty_dirs("p")
        assert removed == ["p/empty/deeper", "p/empty"]
        assert (tmp_path / "p" / "keep" / "a.md").exists()
        assert (tmp_path / "p").is_dir()

    def test_prune_removes_fully_empty_tree(self, store: FilesystemStore, tmp_path: Path) -> None:
        (tmp_path / "p" / "x").mkdir(parents=True)
        store.prune_empty_dirs("p")
        assert not (tmp_path / "p").exists()
