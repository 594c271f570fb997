"""Shared service-layer helper functions."""

from __future__ import annotations

from typing import Any

from vaultpatch.domain.errors import ErrorCode
from vaultpatch.services.result import ServiceError, ServiceResult


def failure(
    op: str,
    code: ErrorCode,
    message: str,
    *,
    detail: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> ServiceResult:
    """Failed ServiceResult whose status is derived from *code*.

    Examples:
        >>> failure("rename_file", ErrorCode.NOT_FOUND, "File not found: a.md").status
        404
    """
    return ServiceResult(
        ok=False,
        op=op,
        status=code.status,
        warnings=warnings or [],
        error=ServiceError(
            code=code.name,
            message=message,
            error_code=int(code),
            detail=detail or {},
        ),
    )


def plural(count: int, noun: str) -> str:
    """``"1 file"`` / ``"3 files"``."""
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"
