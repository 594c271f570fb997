"""ServiceResult and ServiceError — the universal service contract.

INVARIANT: All service-layer methods return ServiceResult.
The CLI and the wire adapter consume this type; services never raise
for expected failures (validation, not found, conflict, collaborator I/O).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult.

    Attributes:
        code: Symbolic name of the error (``"DESTINATION_EXISTS"``).
        message: Human-readable description; never holds absolute paths.
        error_code: Stable numeric code (``40901``); ``error_code // 100``
            is the response status.
        detail: Extra structured context (batch results, unrestored files).
    """

    model_config = {"frozen": True}

    code: str
    message: str
    error_code: int
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded (a 207 partial success is ok).
        op: Name of the operation (e.g. ``"rename_file"``).
        status: HTTP-style status: 200/201/207 on success, the error
            code's status on failure.
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry spans).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    status: int = 200
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
