"""Tests for the on-demand metadata index."""

from __future__ import annotations

from pathlib import Path

from tests.conftest import write_file
from vaultpatch.infrastructure.index import FileMetadataIndex, build_metadata
from vaultpatch.infrastructure.store import FilesystemStore


class TestBuildMetadata:
    def test_collects_both_sources(self) -> None:
        meta = build_metadata("a.md", "---\ntags: [x, y]\n---\nBody #z and #x\n")
        assert meta.frontmatter_tags == ("x", "y")
        assert meta.inline_tags == ("z", "x")
        assert meta.tags == frozenset({"x", "y", "z"})
        assert meta.has_tag("z")
        assert not meta.has_tag("w")


class TestFileMetadataIndex:
    def test_get(self, tmp_path: Path) -> None:
        write_file(tmp_path, "a.md", "#one\n")
        index = FileMetadataIndex(FilesystemStore(tmp_path))
        meta = index.get("a.md")
        assert meta is not None
        assert meta.inline_tags == ("one",)
        assert index.get("missing.md") is None

    def test_tag_match_is_exact(self, tmp_path: Path) -> None:
        write_file(tmp_path, "a.md", "#project\n")
        write_file(tmp_path, "b.md", "---\ntags: project\n---\n")
        write_file(tmp_path, "c.md", "#project/child\n")
        write_file(tmp_path, "d.txt", "#project\n")
        index = FileMetadataIndex(FilesystemStore(tmp_path))
        tagged = [m.path for m in index.all_metadata() if m.has_tag("project")]
        assert tagged == ["a.md", "b.md"]

    def test_all_metadata_only_markdown(self, tmp_path: Path) -> None:
        write_file(tmp_path, "a.md", "")
        write_file(tmp_path, "img.png", "")
        index = FileMetadataIndex(FilesystemStore(tmp_path))
        assert [m.path for m in index.all_metadata()] == ["a.md"]

    def test_unreadable_file_yields_error_record(self, tmp_path: Path) -> None:
        write_file(tmp_path, "a.md", "#project\n")
        (tmp_path / "b.md").write_bytes("#project caf\xe9".encode("latin-1"))
        index = FileMetadataIndex(FilesystemStore(tmp_path))
        records = {m.path: m for m in index.all_metadata()}
        assert records["a.md"].unreadable is None
        assert records["b.md"].unreadable == "Read failed for b.md: not UTF-8 text"
        assert records["b.md"].tags == frozenset()
        assert [m.path for m in index.all_metadata() if m.has_tag("project")] == ["a.md"]
