"""Batch-operation engine — per-item results, summaries, atomic execution.

Two strategies share :class:`BatchOperationResult`:

- :class:`AggregatingBatch` records per-item outcomes best-effort; a failed
  item never stops the others.
- :class:`AtomicBatch` applies a planned sequence of steps, each paired with
  a compensating action. The first failure undoes every applied step in
  reverse order, so the batch ends either ``COMMITTED`` or ``ROLLED_BACK``.

Outcome classification (skipped items count as non-failures):

- ``FULL_SUCCESS``: no failed items
- ``PARTIAL_SUCCESS``: failures plus at least one success or skip
- ``TOTAL_FAILURE``: failures and nothing else
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from vaultpatch.domain.types import BatchOutcome, ItemStatus
from vaultpatch.services.telemetry import StepPhase, record_batch, record_step

logger = logging.getLogger(__name__)

MULTI_STATUS = 207


class BatchItemResult(BaseModel):
    """Outcome of one item (a tag, a file) inside a batch."""

    model_config = {"frozen": True}

    identifier: str
    status: ItemStatus
    message: str = ""


class BatchSummary(BaseModel):
    """Counts over a batch. ``requested`` is the number of distinct items."""

    model_config = {"frozen": True}

    requested: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0


class BatchOperationResult(BaseModel):
    """Summary plus ordered per-item results."""

    model_config = {"frozen": True}

    summary: BatchSummary = Field(default_factory=BatchSummary)
    results: list[BatchItemResult] = Field(default_factory=list)

    @property
    def outcome(self) -> BatchOutcome:
        return classify(self.summary)

    def to_payload(self, key: str = "identifier") -> dict[str, Any]:
        """``{summary, results}`` with each item's identifier under *key*."""
        return {
            "summary": self.summary.model_dump(),
            "results": [
                {key: item.identifier, "status": item.status.value, "message": item.message}
                for item in self.results
            ],
        }


def classify(summary: BatchSummary) -> BatchOutcome:
    """Overall outcome for *summary*."""
    if summary.failed == 0:
        return BatchOutcome.FULL_SUCCESS
    if summary.succeeded + summary.skipped > 0:
        return BatchOutcome.PARTIAL_SUCCESS
    return BatchOutcome.TOTAL_FAILURE


def outcome_status(outcome: BatchOutcome, failure_status: int, success_status: int = 200) -> int:
    """Map an outcome to a response status.

    Examples:
        >>> outcome_status(BatchOutcome.PARTIAL_SUCCESS, 500)
        207
    """
    if outcome is BatchOutcome.FULL_SUCCESS:
        return success_status
    if outcome is BatchOutcome.PARTIAL_SUCCESS:
        return MULTI_STATUS
    return failure_status


# ---------------------------------------------------------------------------
# AggregatingBatch: best-effort
# ---------------------------------------------------------------------------


class AggregatingBatch:
    """Accumulates per-item outcomes in request order.

    Items whose outcome depends on a later shared step (the single write of a
    tag batch) are recorded as *pending* and settled once that step is done.
    """

    def __init__(self) -> None:
        self._items: list[tuple[str, ItemStatus | None, str]] = []

    def record(self, identifier: str, status: ItemStatus, message: str = "") -> None:
        self._items.append((identifier, status, message))

    def success(self, identifier: str, message: str = "") -> None:
        self.record(identifier, ItemStatus.SUCCESS, message)

    def skipped(self, identifier: str, message: str = "") -> None:
        self.record(identifier, ItemStatus.SKIPPED, message)

    def failed(self, identifier: str, message: str = "") -> None:
        self.record(identifier, ItemStatus.FAILED, message)

    def pending(self, identifier: str) -> None:
        self._items.append((identifier, None, ""))

    @property
    def pending_items(self) -> list[str]:
        return [identifier for identifier, status, _ in self._items if status is None]

    def settle_pending(self, status: ItemStatus, message: str = "") -> None:
        """Resolve every pending item to *status*."""
        for position, (identifier, current, _) in enumerate(self._items):
            if current is None:
                self._items[position] = (identifier, status, message)

    def result(self) -> BatchOperationResult:
        if self.pending_items:
            msg = f"Unsettled batch items: {self.pending_items}"
            raise RuntimeError(msg)
        results = [
            BatchItemResult(identifier=identifier, status=status, message=message)
            for identifier, status, message in self._items
            if status is not None
        ]
        summary = BatchSummary(
            requested=len(results),
            succeeded=sum(1 for r in results if r.status is ItemStatus.SUCCESS),
            skipped=sum(1 for r in results if r.status is ItemStatus.SKIPPED),
            failed=sum(1 for r in results if r.status is ItemStatus.FAILED),
        )
        record_batch(summary.model_dump())
        return BatchOperationResult(summary=summary, results=results)


# ---------------------------------------------------------------------------
# AtomicBatch: compensating actions with reverse-order rollback
# ---------------------------------------------------------------------------


class AtomicState(StrEnum):
    """Lifecycle of an :class:`AtomicBatch`."""

    PENDING = "pending"
    ENUMERATING = "enumerating"
    APPLYING = "applying"
    COMMITTED = "committed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"


_TRANSITIONS: dict[AtomicState, frozenset[AtomicState]] = {
    AtomicState.PENDING: frozenset({AtomicState.ENUMERATING}),
    AtomicState.ENUMERATING: frozenset({AtomicState.APPLYING}),
    AtomicState.APPLYING: frozenset({AtomicState.COMMITTED, AtomicState.ROLLING_BACK}),
    AtomicState.ROLLING_BACK: frozenset({AtomicState.ROLLED_BACK}),
    AtomicState.COMMITTED: frozenset(),
    AtomicState.ROLLED_BACK: frozenset(),
}


@dataclass(frozen=True)
class AtomicStep:
    """One planned step: *apply* it, or undo it with *compensate*."""

    identifier: str
    apply: Callable[[], None]
    compensate: Callable[[], None]


@dataclass(frozen=True)
class StepFailure:
    """The step that aborted the batch and why."""

    identifier: str
    message: str


class AtomicBatch:
    """All-or-nothing execution of planned steps.

    Usage::

        batch = AtomicBatch()
        batch.enumerate(steps)
        result = batch.execute()
        if batch.state is AtomicState.ROLLED_BACK:
            ... batch.failure, batch.unrestored ...

    Any exception raised by a step aborts the batch and triggers rollback.
    Compensation failures are recorded in :attr:`unrestored`.
    """

    def __init__(self) -> None:
        self._state = AtomicState.PENDING
        self._steps: list[AtomicStep] = []
        self._failure: StepFailure | None = None
        self._unrestored: list[str] = []

    @property
    def state(self) -> AtomicState:
        return self._state

    @property
    def failure(self) -> StepFailure | None:
        return self._failure

    @property
    def unrestored(self) -> list[str]:
        """Identifiers whose compensation failed during rollback."""
        return list(self._unrestored)

    def _transition(self, target: AtomicState) -> None:
        if target not in _TRANSITIONS[self._state]:
            msg = f"Illegal atomic batch transition: {self._state} -> {target}"
            raise RuntimeError(msg)
        logger.debug("Atomic batch %s -> %s", self._state, target)
        self._state = target

    def enumerate(self, steps: Iterable[AtomicStep]) -> None:
        """Fix the ordered step plan before anything is applied."""
        self._transition(AtomicState.ENUMERATING)
        self._steps = list(steps)

    def execute(self) -> BatchOperationResult:
        """Apply every step; on the first failure roll back the applied ones."""
        self._transition(AtomicState.APPLYING)
        applied: list[AtomicStep] = []
        for step in self._steps:
            try:
                step.apply()
            except Exception as exc:
                logger.warning("Atomic step failed: %s (%s)", step.identifier, exc)
                record_step(step.identifier, StepPhase.FAILED)
                self._failure = StepFailure(step.identifier, str(exc) or type(exc).__name__)
                self._rollback(applied)
                return self._finish(self._rolled_back_result(applied))
            record_step(step.identifier, StepPhase.APPLIED)
            applied.append(step)

        self._transition(AtomicState.COMMITTED)
        batch = AggregatingBatch()
        for step in applied:
            batch.success(step.identifier)
        return self._finish(batch.result())

    def _finish(self, result: BatchOperationResult) -> BatchOperationResult:
        record_batch(result.summary.model_dump(), state=self._state.value)
        return result

    def _rollback(self, applied: list[AtomicStep]) -> None:
        self._transition(AtomicState.ROLLING_BACK)
        for step in reversed(applied):
            try:
                step.compensate()
            except Exception:
                logger.warning("Failed to roll back step: %s", step.identifier)
                record_step(step.identifier, StepPhase.UNRESTORED)
                self._unrestored.append(step.identifier)
                continue
            record_step(step.identifier, StepPhase.COMPENSATED)
        self._unrestored.reverse()
        self._transition(AtomicState.ROLLED_BACK)

    def _rolled_back_result(self, applied: list[AtomicStep]) -> BatchOperationResult:
        if self._failure is None:
            msg = "Rolled-back batch has no recorded failure"
            raise RuntimeError(msg)
        unrestored = set(self._unrestored)
        applied_ids = {step.identifier for step in applied}
        batch = AggregatingBatch()
        for step in self._steps:
            if step.identifier == self._failure.identifier:
                batch.failed(step.identifier, self._failure.message)
            elif step.identifier in unrestored:
                batch.failed(step.identifier, "Applied but could not be rolled back")
            elif step.identifier in applied_ids:
                batch.skipped(step.identifier, "Rolled back")
            else:
                batch.skipped(step.identifier, "Not attempted")
        return batch.result()
