"""Stable numeric error codes and domain exceptions.

Every code encodes its response status in the leading three digits
(``40901 // 100 == 409``), so the taxonomy stays a pure function of the code:

- 400 validation (malformed instruction, unsupported pairing)
- 404 not found
- 409 conflict
- 500 internal (collaborator failure, failed rollback)
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Error codes carried by every failed ServiceResult."""

    MISSING_VALUE = 40001
    INVALID_PATH = 40002
    VAULT_ROOT_PROTECTED = 40003
    RENAME_REQUIRES_NAME_TARGET = 40004
    MOVE_REQUIRES_PATH_TARGET = 40005
    OPERATION_REQUIRES_FILE_OR_DIRECTORY = 40006
    DIRECTORY_OPERATION_UNSUPPORTED = 40007
    INVALID_TAG_NAME = 40008
    TAG_OPERATION_UNSUPPORTED = 40009
    MISSING_TARGET_TYPE = 40010
    INVALID_TARGET_TYPE = 40011
    MISSING_OPERATION = 40012
    INVALID_OPERATION = 40013
    INVALID_CONTENT = 40014
    PATCH_FAILED = 40015
    UNSUPPORTED_OPERATION = 40016
    PATH_OUTSIDE_VAULT = 40017
    SAME_TAG_NAME = 40018

    NOT_FOUND = 40401
    TAG_NOT_FOUND = 40402

    DESTINATION_EXISTS = 40901
    PATH_OCCUPIED_BY_FILE = 40902

    RENAME_FAILED = 50001
    TAG_RENAME_FAILED = 50002
    TAG_UPDATE_FAILED = 50003
    ROLLBACK_INCOMPLETE = 50004
    DIRECTORY_OPERATION_FAILED = 50005
    CONTENT_PATCH_FAILED = 50006
    DELETE_FAILED = 50007

    @property
    def status(self) -> int:
        """HTTP-style status for this code."""
        return int(self) // 100


class InstructionError(ValueError):
    """A request could not be normalized into a valid instruction."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class VaultPathError(InstructionError):
    """A path is malformed or escapes the vault root."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.PATH_OUTSIDE_VAULT) -> None:
        super().__init__(code, message)
