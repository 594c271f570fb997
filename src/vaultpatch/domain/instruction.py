"""Request normalization — raw attributes into a MutationInstruction.

The normalizer is a pure function of the request: it checks that required
attributes are present and that their values belong to the known enums.
It never looks at the vault. Whether the addressed entity exists is decided
later, inside the handler the router selects.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote

from pydantic import BaseModel, Field

from vaultpatch.domain.errors import ErrorCode, InstructionError
from vaultpatch.domain.paths import normalize_vault_path
from vaultpatch.domain.types import CONTENT_KINDS, Operation, TargetKind

DEFAULT_DELIMITER = "::"
JSON_CONTENT_TYPE = "application/json"

_FILE_SHAPED_KINDS = CONTENT_KINDS | {TargetKind.FILE, TargetKind.TAG}


class RawRequest(BaseModel):
    """Attributes handed over by a transport (CLI, HTTP adapter, tests).

    Attributes:
        method: ``PATCH``, ``POST`` or ``DELETE``.
        path: Vault path of the addressed entry, or the tag name when
            *tag_namespace* is set.
        headers: Request attributes; lookup is case-insensitive.
        body: Raw request body.
        tag_namespace: The request addresses a tag by name rather than a
            vault path (vault-wide tag operations).
    """

    model_config = {"frozen": True}

    method: str = "PATCH"
    path: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""
    tag_namespace: bool = False

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup; blank values count as absent."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value if value.strip() else None
        return None

    def flag(self, name: str) -> bool:
        """Boolean header: only a case-insensitive ``true`` is truthy."""
        value = self.header(name)
        return value is not None and value.strip().lower() == "true"


class MutationInstruction(BaseModel):
    """Canonical, validated form of one mutation request.

    The meaning of ``target`` depends only on ``(operation, target_kind)``:
    a heading path for heading patches, ``name``/``path`` selectors for file
    and directory identity changes, a tag token for legacy tag edits.
    """

    model_config = {"frozen": True}

    operation: Operation
    target_kind: TargetKind
    target: str = ""
    delimiter: str = DEFAULT_DELIMITER
    create_if_missing: bool = False
    apply_if_exists: bool = False
    trim_whitespace: bool = False
    body: bytes = b""
    declared_content_type: str = ""
    source_path: str = ""
    permanent: bool | None = None
    tag_namespace: bool = False

    def text(self) -> str:
        """The body decoded as UTF-8 text.

        Raises:
            InstructionError: If the body is not valid UTF-8.
        """
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = "Request body must be UTF-8 text"
            raise InstructionError(ErrorCode.INVALID_CONTENT, msg) from exc

    @property
    def target_segments(self) -> list[str]:
        """``target`` split on ``delimiter`` (heading paths)."""
        return [s for s in self.target.split(self.delimiter) if s]

    @property
    def is_json(self) -> bool:
        """Whether the body was declared as JSON."""
        return self.declared_content_type.split(";")[0].strip().lower() == JSON_CONTENT_TYPE


def _parse_enum(enum_cls: type[Any], value: str, code: ErrorCode, label: str) -> Any:
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        msg = f"Invalid {label} {value!r}; expected one of: {allowed}"
        raise InstructionError(code, msg) from None


def _resolve_verb(raw: RawRequest) -> tuple[Operation, TargetKind]:
    method = raw.method.strip().upper()

    if raw.tag_namespace:
        op_header = raw.header("Operation")
        if op_header is None:
            raise InstructionError(ErrorCode.MISSING_OPERATION, "Operation header is required")
        operation = _parse_enum(Operation, op_header, ErrorCode.INVALID_OPERATION, "operation")
        if method != "PATCH" or operation is not Operation.RENAME:
            msg = "Only 'rename' operation is supported for tags"
            raise InstructionError(ErrorCode.TAG_OPERATION_UNSUPPORTED, msg)
        return operation, TargetKind.TAG

    if method == "DELETE":
        kind_header = raw.header("Target-Type") or TargetKind.FILE.value
        kind = _parse_enum(TargetKind, kind_header, ErrorCode.INVALID_TARGET_TYPE, "target type")
        return Operation.DELETE, kind

    if method == "POST":
        kind_header = raw.header("Target-Type")
        if kind_header is None:
            raise InstructionError(ErrorCode.MISSING_TARGET_TYPE, "Target-Type header is required")
        kind = _parse_enum(TargetKind, kind_header, ErrorCode.INVALID_TARGET_TYPE, "target type")
        return Operation.CREATE, kind

    if method != "PATCH":
        msg = f"Unsupported request method: {raw.method}"
        raise InstructionError(ErrorCode.UNSUPPORTED_OPERATION, msg)

    kind_header = raw.header("Target-Type")
    if kind_header is None:
        raise InstructionError(ErrorCode.MISSING_TARGET_TYPE, "Target-Type header is required")
    kind = _parse_enum(TargetKind, kind_header, ErrorCode.INVALID_TARGET_TYPE, "target type")

    op_header = raw.header("Operation")
    if op_header is None:
        raise InstructionError(ErrorCode.MISSING_OPERATION, "Operation header is required")
    operation = _parse_enum(Operation, op_header, ErrorCode.INVALID_OPERATION, "operation")
    if operation in (Operation.CREATE, Operation.DELETE):
        msg = f"Operation {operation.value!r} is expressed by the request method, not PATCH"
        raise InstructionError(ErrorCode.INVALID_OPERATION, msg)
    return operation, kind


def normalize_request(raw: RawRequest) -> MutationInstruction:
    """Turn *raw* into a :class:`MutationInstruction`.

    Checks, in order: the verb resolves (method + ``Operation``), the
    ``Target-Type`` is present and known, and the source path is
    syntactically valid. Nothing here touches storage.

    Raises:
        InstructionError: With a stable error code on the first violation.
    """
    operation, kind = _resolve_verb(raw)

    if raw.tag_namespace:
        source_path = raw.path.strip().removeprefix("#")
        if not source_path:
            raise InstructionError(ErrorCode.MISSING_VALUE, "Tag name is required")
    else:
        if kind in _FILE_SHAPED_KINDS and raw.path.rstrip().endswith("/"):
            msg = "Path must be a file path, not a directory"
            raise InstructionError(ErrorCode.INVALID_PATH, msg)
        source_path = normalize_vault_path(raw.path, allow_root=True)

    raw_target = raw.header("Target")
    return MutationInstruction(
        operation=operation,
        target_kind=kind,
        target=unquote(raw_target) if raw_target is not None else "",
        delimiter=raw.header("Target-Delimiter") or DEFAULT_DELIMITER,
        create_if_missing=raw.flag("Create-Target-If-Missing"),
        apply_if_exists=raw.flag("Apply-If-Content-Preexists"),
        trim_whitespace=raw.flag("Trim-Target-Whitespace"),
        body=raw.body,
        declared_content_type=raw.header("Content-Type") or "",
        source_path=source_path,
        permanent=raw.flag("Permanent") if raw.header("Permanent") is not None else None,
        tag_namespace=raw.tag_namespace,
    )
