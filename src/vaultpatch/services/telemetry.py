"""Verbose-mode tracing for vault mutations.

With ``--verbose`` every ``@traced`` service call opens a span; nested
calls and ``trace_span`` blocks become children. Besides timing, a span
records what the batch machinery did under it: the per-step trail of an
atomic directory transfer (applied, failed, compensated, unrestored) and
the item counts of the batch result. The outermost span's tree lands in
``ServiceResult.meta["telemetry"]``.

Disabled tracing costs one ContextVar lookup per call.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ParamSpec, TypeVar

import structlog

from vaultpatch.services.result import ServiceResult

_log = structlog.get_logger("vaultpatch.telemetry")

_enabled: ContextVar[bool] = ContextVar("vaultpatch_tracing", default=False)
_active: ContextVar[Span | None] = ContextVar("vaultpatch_span", default=None)


class StepPhase(StrEnum):
    """What happened to one atomic step."""

    APPLIED = "applied"
    FAILED = "failed"
    COMPENSATED = "compensated"
    UNRESTORED = "unrestored"


@dataclass
class Span:
    """One timed unit of work inside a traced service call."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)
    steps: list[tuple[str, StepPhase]] = field(default_factory=list)
    batch: dict[str, Any] | None = None

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def step_counts(self) -> dict[str, int]:
        """Steps per phase, including every descendant span."""
        counts: dict[str, int] = {}
        for span in self.walk():
            for _, phase in span.steps:
                counts[phase.value] = counts.get(phase.value, 0) + 1
        return counts

    def walk(self) -> Generator[Span]:
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.annotations:
            data["annotations"] = self.annotations
        if self.batch is not None:
            data["batch"] = self.batch
        if self.steps:
            data["steps"] = [
                {"id": identifier, "phase": phase.value} for identifier, phase in self.steps
            ]
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def get_current_span() -> Span | None:
    """The innermost open span, or None when tracing is off."""
    if not _enabled.get():
        return None
    return _active.get()


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Open a child span under the active one.

    Yields None when tracing is off or no traced call is running.
    """
    parent = get_current_span()
    if parent is None:
        yield None
        return

    child = Span(name=name, parent=parent)
    parent.children.append(child)
    token = _active.set(child)
    try:
        yield child
    finally:
        child.end()
        _active.reset(token)


def record_step(identifier: str, phase: StepPhase) -> None:
    """Append one atomic step outcome to the active span."""
    span = get_current_span()
    if span is not None:
        span.steps.append((identifier, phase))


def record_batch(counts: Mapping[str, int], *, state: str | None = None) -> None:
    """Attach batch item counts (and an atomic end state) to the active span."""
    span = get_current_span()
    if span is None:
        return
    span.batch = dict(counts)
    if state is not None:
        span.batch["state"] = state


def _finish(span: Span, result: object) -> object:
    ok = getattr(result, "ok", True)
    _log.debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=ok,
        children=len(span.children),
        **span.step_counts(),
    )
    if span.parent is None and isinstance(result, ServiceResult):
        meta = {**(result.meta or {}), "telemetry": span.to_dict()}
        return result.model_copy(update={"meta": meta})
    return result


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Trace a service method; the outermost call carries the span tree."""

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        parent = _active.get()
        span = Span(name=func.__qualname__, parent=parent)
        if parent is not None:
            parent.children.append(span)
        token = _active.set(span)
        try:
            result = func(*args, **kwargs)
        except Exception:
            _log.debug("span.error", span_name=span.name)
            raise
        finally:
            span.end()
            _active.reset(token)
        return _finish(span, result)  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    """Turn tracing on for the current context (``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)
