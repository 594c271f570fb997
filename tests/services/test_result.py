"""Tests for ServiceResult, ServiceError and the failure helper."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vaultpatch.domain.errors import ErrorCode
from vaultpatch.services._helpers import failure, plural
from vaultpatch.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_defaults(self) -> None:
        result = ServiceResult(ok=True, op="rename_file")
        assert result.status == 200
        assert result.data == {}
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="rename_file")
        with pytest.raises(ValidationError):
            result.ok = False  # type: ignore[misc]

    def test_error_detail_defaults_empty(self) -> None:
        error = ServiceError(code="NOT_FOUND", message="File not found", error_code=40401)
        assert error.detail == {}


class TestFailure:
    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (ErrorCode.MISSING_VALUE, 400),
            (ErrorCode.NOT_FOUND, 404),
            (ErrorCode.DESTINATION_EXISTS, 409),
            (ErrorCode.ROLLBACK_INCOMPLETE, 500),
        ],
    )
    def test_status_derived_from_code(self, code: ErrorCode, status: int) -> None:
        result = failure("op", code, "msg")
        assert not result.ok
        assert result.status == status
        assert result.error is not None
        assert result.error.code == code.name
        assert result.error.error_code == int(code)

    def test_detail_and_warnings(self) -> None:
        result = failure(
            "move_directory",
            ErrorCode.ROLLBACK_INCOMPLETE,
            "Rollback incomplete",
            detail={"unrestored": ["a.md"]},
            warnings=["w"],
        )
        assert result.error is not None
        assert result.error.detail == {"unrestored": ["a.md"]}
        assert result.warnings == ["w"]


def test_plural() -> None:
    assert plural(1, "file") == "1 file"
    assert plural(0, "file") == "0 files"
    assert plural(3, "tag") == "3 tags"
