"""Tests for the wire adapter."""

from __future__ import annotations

from vaultpatch.domain.errors import ErrorCode
from vaultpatch.output.wire import camel_case, camelize, to_wire
from vaultpatch.services._helpers import failure
from vaultpatch.services.result import ServiceResult


class TestCamelCase:
    def test_keys(self) -> None:
        assert camel_case("files_moved_count") == "filesMovedCount"
        assert camel_case("old_path") == "oldPath"
        assert camel_case("message") == "message"

    def test_nested_keys_only(self) -> None:
        value = {"summary": {"requested": 1}, "results": [{"tag": "x", "trash_path": "a_b"}]}
        assert camelize(value) == {
            "summary": {"requested": 1},
            "results": [{"tag": "x", "trashPath": "a_b"}],
        }


class TestToWire:
    def test_success_body(self) -> None:
        result = ServiceResult(
            ok=True,
            op="rename_file",
            data={"message": "File successfully renamed", "old_path": "a.md", "new_path": "b.md"},
        )
        assert to_wire(result) == (
            200,
            {"message": "File successfully renamed", "oldPath": "a.md", "newPath": "b.md"},
        )

    def test_partial_success_carries_warnings(self) -> None:
        result = ServiceResult(
            ok=True,
            op="tag_batch",
            status=207,
            data={"message": "Added 1 tag"},
            warnings=["bad tag: Invalid"],
        )
        status, body = to_wire(result)
        assert status == 207
        assert body["warnings"] == ["bad tag: Invalid"]

    def test_error_body(self) -> None:
        result = failure("rename_file", ErrorCode.DESTINATION_EXISTS, "Destination already exists")
        assert to_wire(result) == (
            409,
            {"errorCode": 40901, "message": "Destination already exists"},
        )

    def test_error_detail_merged_without_overriding(self) -> None:
        result = failure(
            "move_directory",
            ErrorCode.ROLLBACK_INCOMPLETE,
            "Rollback incomplete",
            detail={"unrestored": ["a.md"], "message": "ignored", "files_moved_count": 0},
        )
        status, body = to_wire(result)
        assert status == 500
        assert body["errorCode"] == 50004
        assert body["message"] == "Rollback incomplete"
        assert body["unrestored"] == ["a.md"]
        assert body["filesMovedCount"] == 0
