"""MutationRouter — normalize, route, dispatch.

INVARIANT: The handler family is chosen from the instruction alone, before
any existence or conflict check. A request on a tag or directory is never
rejected by code that assumed the entity was a file; each handler performs
its own existence checks after routing.

The routing table is a priority-ordered list of ``(predicate, family)``
pairs. The first matching route wins; a route may additionally require a
specific ``Target`` selector and fail with its own code when it is absent.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from vaultpatch.config.logging import request_context
from vaultpatch.domain.errors import ErrorCode, InstructionError
from vaultpatch.domain.instruction import MutationInstruction, RawRequest, normalize_request
from vaultpatch.domain.types import CONTENT_KINDS, HandlerFamily, Operation, TargetKind
from vaultpatch.services._helpers import failure
from vaultpatch.services.base import BaseService
from vaultpatch.services.content import ContentService
from vaultpatch.services.directory import DirectoryService
from vaultpatch.services.identity import IdentityService
from vaultpatch.services.result import ServiceResult
from vaultpatch.services.tags import TagService
from vaultpatch.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from vaultpatch.infrastructure.vault import Vault

logger = logging.getLogger(__name__)

Predicate = Callable[[MutationInstruction], bool]

_PATCH_OPERATIONS = frozenset({Operation.APPEND, Operation.PREPEND, Operation.REPLACE})


def _is(kinds: frozenset[TargetKind] | TargetKind, *operations: Operation) -> Predicate:
    wanted_kinds = kinds if isinstance(kinds, frozenset) else frozenset({kinds})
    wanted_ops = frozenset(operations)
    return lambda i: i.target_kind in wanted_kinds and i.operation in wanted_ops


def _target_is(value: str) -> Predicate:
    return lambda i: i.target.strip().lower() == value


@dataclass(frozen=True)
class Route:
    """One row of the routing table.

    Attributes:
        name: Label used in logs.
        matches: Selects instructions for this route.
        family: Handler family the route dispatches to.
        requires: Optional extra check on a matched instruction.
        violation: ``(code, message)`` when *requires* is not met.
    """

    name: str
    matches: Predicate
    family: HandlerFamily
    requires: Predicate | None = None
    violation: tuple[ErrorCode, str] | None = None


ROUTING_TABLE: tuple[Route, ...] = (
    Route(
        "content-patch",
        _is(CONTENT_KINDS, *_PATCH_OPERATIONS),
        HandlerFamily.CONTENT_PATCH,
        requires=lambda i: bool(i.target.strip()),
        violation=(ErrorCode.MISSING_VALUE, "Target header is required for content patches"),
    ),
    Route(
        "file-rename",
        _is(TargetKind.FILE, Operation.RENAME),
        HandlerFamily.IDENTITY,
        requires=_target_is("name"),
        violation=(ErrorCode.RENAME_REQUIRES_NAME_TARGET, "Rename requires Target: name"),
    ),
    Route(
        "file-move",
        _is(TargetKind.FILE, Operation.MOVE),
        HandlerFamily.IDENTITY,
        requires=_target_is("path"),
        violation=(ErrorCode.MOVE_REQUIRES_PATH_TARGET, "Move requires Target: path"),
    ),
    Route(
        "file-legacy-rename",
        lambda i: _is(TargetKind.FILE, Operation.REPLACE)(i) and _target_is("name")(i),
        HandlerFamily.IDENTITY,
    ),
    Route("file-delete", _is(TargetKind.FILE, Operation.DELETE), HandlerFamily.IDENTITY),
    Route(
        "directory-transfer",
        _is(TargetKind.DIRECTORY, Operation.MOVE, Operation.COPY),
        HandlerFamily.DIRECTORY,
        requires=_target_is("path"),
        violation=(
            ErrorCode.MOVE_REQUIRES_PATH_TARGET,
            "Directory move and copy require Target: path",
        ),
    ),
    Route(
        "directory-lifecycle",
        _is(TargetKind.DIRECTORY, Operation.DELETE, Operation.CREATE),
        HandlerFamily.DIRECTORY,
    ),
    Route(
        "tag-batch",
        _is(TargetKind.TAG, Operation.ADD, Operation.REMOVE),
        HandlerFamily.TAG_BATCH,
    ),
    Route(
        "tag-rename",
        lambda i: _is(TargetKind.TAG, Operation.RENAME)(i) and i.tag_namespace,
        HandlerFamily.TAG_RENAME,
    ),
)


def _rejection(instruction: MutationInstruction) -> InstructionError:
    """Descriptive error for an instruction no route accepts."""
    kind, operation = instruction.target_kind, instruction.operation
    if kind is TargetKind.TAG:
        return InstructionError(
            ErrorCode.TAG_OPERATION_UNSUPPORTED,
            "Only add and remove are supported on a file's tags; "
            "rename a tag through the tag namespace",
        )
    if operation in (Operation.RENAME, Operation.MOVE):
        return InstructionError(
            ErrorCode.OPERATION_REQUIRES_FILE_OR_DIRECTORY,
            f"Operation {operation.value!r} requires Target-Type: file or directory",
        )
    if kind is TargetKind.DIRECTORY:
        return InstructionError(
            ErrorCode.DIRECTORY_OPERATION_UNSUPPORTED,
            f"Operation {operation.value!r} is not supported on directories; "
            "use move, copy, create or delete",
        )
    return InstructionError(
        ErrorCode.UNSUPPORTED_OPERATION,
        f"Operation {operation.value!r} is not supported for Target-Type {kind.value!r}",
    )


def route(instruction: MutationInstruction) -> HandlerFamily:
    """Choose the handler family for *instruction*.

    Pure function of the instruction; never touches storage.

    Raises:
        InstructionError: If no route accepts the instruction, or the
            matching route's target requirement is not met.
    """
    for candidate in ROUTING_TABLE:
        if not candidate.matches(instruction):
            continue
        if candidate.requires is not None and not candidate.requires(instruction):
            if candidate.violation is None:
                msg = f"Route {candidate.name} has a requirement but no violation"
                raise RuntimeError(msg)
            code, message = candidate.violation
            raise InstructionError(code, message)
        logger.debug("Routed via %s -> %s", candidate.name, candidate.family)
        return candidate.family
    raise _rejection(instruction)


class _Handler(Protocol):
    def apply(self, instruction: MutationInstruction) -> ServiceResult: ...


_HANDLERS: dict[HandlerFamily, Callable[[Vault], _Handler]] = {
    HandlerFamily.CONTENT_PATCH: ContentService,
    HandlerFamily.IDENTITY: IdentityService,
    HandlerFamily.DIRECTORY: DirectoryService,
    HandlerFamily.TAG_BATCH: TagService,
    HandlerFamily.TAG_RENAME: TagService,
}


class MutationRouter(BaseService):
    """Front door for every mutation request."""

    def _handler(self, family: HandlerFamily) -> _Handler:
        return _HANDLERS[family](self._vault)

    @traced
    def dispatch(self, raw: RawRequest) -> ServiceResult:
        """Normalize *raw*, route it, and run the selected handler.

        Normalization and routing failures return a 400 result with op
        ``"route"``; everything after that is the handler's result.
        """
        with request_context(method=raw.method.upper(), path=raw.path):
            with trace_span("normalize_and_route") as span:
                try:
                    instruction = normalize_request(raw)
                    family = route(instruction)
                except InstructionError as exc:
                    logger.info("Rejected request: %s (%d)", exc.message, exc.code)
                    return failure("route", exc.code, exc.message)
                if span:
                    span.annotate("family", family.value)

            handler = self._handler(family)
            return handler.apply(instruction)
