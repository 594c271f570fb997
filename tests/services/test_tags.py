"""Tests for TagService — per-file batches, vault-wide rename, inventory."""

from __future__ import annotations

from pathlib import Path

from tests.conftest import FailingStore, read_file, write_file
from vaultpatch.config.settings import VaultPatchSettings
from vaultpatch.domain.types import Operation
from vaultpatch.infrastructure.vault import Vault
from vaultpatch.services.tags import TagService


class TestAddTags:
    def test_add_to_frontmatter(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "---\ntitle: A\ntags:\n- y\n---\nBody\n")
        result = TagService(vault).apply_tags(
            "notes/a.md", ["x", "x", "y"], operation=Operation.ADD
        )
        assert result.ok
        assert result.status == 200
        assert result.data["summary"] == {
            "requested": 2,
            "succeeded": 1,
            "skipped": 1,
            "failed": 0,
        }
        assert result.data["message"] == "Added 1 tag"
        assert read_file(vault_root, "notes/a.md") == (
            "---\ntitle: A\ntags:\n- y\n- x\n---\nBody\n"
        )

    def test_add_inline_when_no_frontmatter(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "Body")
        TagService(vault).apply_tags("notes/a.md", ["a", "#b"], operation=Operation.ADD)
        assert read_file(vault_root, "notes/a.md") == "Body\n\n#a #b\n"

    def test_inline_tag_counts_as_present(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "Body #x\n")
        result = TagService(vault).apply_tags("notes/a.md", ["x"], operation=Operation.ADD)
        assert result.data["summary"]["skipped"] == 1
        assert read_file(vault_root, "notes/a.md") == "Body #x\n"

    def test_idempotent(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "---\ntitle: A\n---\n")
        service = TagService(vault)
        service.apply_tags("notes/a.md", ["p", "q"], operation=Operation.ADD)
        content = read_file(vault_root, "notes/a.md")
        second = service.apply_tags("notes/a.md", ["p", "q"], operation=Operation.ADD)
        assert second.data["summary"]["succeeded"] == 0
        assert second.data["summary"]["skipped"] == 2
        assert second.data["message"] == "No changes made"
        assert read_file(vault_root, "notes/a.md") == content

    def test_partial_invalid(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "---\ntags: []\n---\n")
        result = TagService(vault).apply_tags(
            "notes/a.md", ["good", "bad tag"], operation=Operation.ADD
        )
        assert result.status == 207
        assert result.data["summary"]["failed"] == 1
        assert result.warnings and "bad tag" in result.warnings[0]

    def test_all_invalid(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "x")
        result = TagService(vault).apply_tags("notes/a.md", ["123"], operation=Operation.ADD)
        assert result.status == 400
        assert result.error is not None
        assert result.error.error_code == 40008
        assert "non-numeric" in result.error.message
        assert read_file(vault_root, "notes/a.md") == "x"

    def test_no_tags(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md")
        result = TagService(vault).apply_tags("notes/a.md", [], operation=Operation.ADD)
        assert result.error is not None
        assert result.error.error_code == 40001

    def test_missing_file(self, vault: Vault) -> None:
        result = TagService(vault).apply_tags("notes/nope.md", ["x"], operation=Operation.ADD)
        assert result.op == "tag_batch"
        assert result.status == 404

    def test_legacy_message(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "Body\n")
        result = TagService(vault).apply_tags(
            "notes/a.md", ["x"], operation=Operation.ADD, legacy=True
        )
        assert result.data["message"] == "Tag added successfully"

    def test_write_failure(self, settings: VaultPatchSettings, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "Body\n")
        store = FailingStore(vault_root, fail_on={"write": {"notes/a.md"}})
        result = TagService(Vault(settings, store=store)).apply_tags(
            "notes/a.md", ["x", "y"], operation=Operation.ADD
        )
        assert result.status == 500
        assert result.error is not None
        assert result.error.error_code == 50003
        assert result.error.detail["summary"]["failed"] == 2


    def test_binary_file(self, vault: Vault, vault_root: Path) -> None:
        (vault_root / "img.png").write_bytes(b"\x89PNG\r\n\x1a\n")
        result = TagService(vault).apply_tags("img.png", ["x"], operation=Operation.ADD)
        assert result.status == 500
        assert result.error is not None
        assert result.error.error_code == 50003
        assert "not UTF-8 text" in result.error.message


class TestRemoveTags:
    def test_remove_from_both_places(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "---\ntags: [x, keep]\n---\nBody #x here\n")
        result = TagService(vault).apply_tags("notes/a.md", ["x"], operation=Operation.REMOVE)
        assert result.data["summary"]["succeeded"] == 1
        content = read_file(vault_root, "notes/a.md")
        assert "#x" not in content
        assert "keep" in content
        assert "Body here\n" in content

    def test_remove_absent_is_skipped(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "Body\n")
        result = TagService(vault).apply_tags("notes/a.md", ["x"], operation=Operation.REMOVE)
        assert result.data["summary"]["skipped"] == 1
        assert result.data["results"][0] == {
            "tag": "x",
            "status": "skipped",
            "message": "Tag not present",
        }


class TestRenameTag:
    def test_rename_across_files(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "a.md", "---\ntags: [old]\n---\n#old text\n")
        write_file(vault_root, "b.md", "#old and #old/child\n")
        write_file(vault_root, "c.md", "#other\n")
        result = TagService(vault).rename_tag("old", "new")
        assert result.ok
        assert result.data["modified_count"] == 2
        assert result.data["modified_files"] == ["a.md", "b.md"]
        assert result.data["message"] == "Tag 'old' renamed to 'new' in 2 files"
        assert read_file(vault_root, "a.md") == "---\ntags: [new]\n---\n#new text\n"
        assert read_file(vault_root, "b.md") == "#new and #old/child\n"
        assert read_file(vault_root, "c.md") == "#other\n"

    def test_one_write_fails(self, settings: VaultPatchSettings, vault_root: Path) -> None:
        for i in range(5):
            write_file(vault_root, f"notes/n{i}.md", f"Note {i} #project\n")
        store = FailingStore(vault_root, fail_on={"write": {"notes/n2.md"}})
        result = TagService(Vault(settings, store=store)).rename_tag("project", "projects")
        assert result.ok
        assert result.status == 207
        assert result.data["modified_count"] == 4
        assert [e["file"] for e in result.data["errors"]] == ["notes/n2.md"]
        assert read_file(vault_root, "notes/n2.md") == "Note 2 #project\n"
        assert read_file(vault_root, "notes/n0.md") == "Note 0 #projects\n"

    def test_unreadable_file_reported(self, vault: Vault, vault_root: Path) -> None:
        for i in range(3):
            write_file(vault_root, f"notes/n{i}.md", f"#old-tag {i}\n")
        (vault_root / "notes" / "latin.md").write_bytes("#old-tag caf\xe9\n".encode("latin-1"))
        result = TagService(vault).rename_tag("old-tag", "new-tag")
        assert result.ok
        assert result.status == 207
        assert result.data["modified_count"] == 3
        errors = result.data["errors"]
        assert [e["file"] for e in errors] == ["notes/latin.md"]
        assert "not UTF-8 text" in errors[0]["error"]
        assert read_file(vault_root, "notes/n1.md") == "#new-tag 1\n"

    def test_all_writes_fail(self, settings: VaultPatchSettings, vault_root: Path) -> None:
        write_file(vault_root, "a.md", "#t\n")
        store = FailingStore(vault_root, fail_on={"write": {"a.md"}})
        result = TagService(Vault(settings, store=store)).rename_tag("t", "u")
        assert result.status == 500
        assert result.error is not None
        assert result.error.error_code == 50002

    def test_tag_not_found(self, vault: Vault) -> None:
        result = TagService(vault).rename_tag("ghost", "real")
        assert result.error is not None
        assert result.error.error_code == 40402

    def test_same_name(self, vault: Vault) -> None:
        result = TagService(vault).rename_tag("#a", "a")
        assert result.error is not None
        assert result.error.error_code == 40018

    def test_invalid_name(self, vault: Vault) -> None:
        result = TagService(vault).rename_tag("a", "bad tag")
        assert result.error is not None
        assert result.error.error_code == 40008


class TestInventory:
    def test_list_tags(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "a.md", "#x #y\n")
        write_file(vault_root, "b.md", "---\ntags: [x]\n---\n")
        result = TagService(vault).list_tags()
        assert result.data == {
            "count": 2,
            "items": [{"tag": "x", "files": 2}, {"tag": "y", "files": 1}],
        }

    def test_get_tag_includes_children(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "a.md", "#p #p/child\n")
        write_file(vault_root, "b.md", "#pp\n")
        result = TagService(vault).get_tag("p")
        assert result.data == {
            "tag": "p",
            "count": 1,
            "files": [{"path": "a.md", "occurrences": 2}],
        }

    def test_get_unknown_tag(self, vault: Vault) -> None:
        assert TagService(vault).get_tag("nothing").status == 404
