"""Tests for telemetry primitives: Span, trace_span, @traced."""

from __future__ import annotations

import functools
import time
from pathlib import Path

import pytest

from tests.conftest import request, write_file
from vaultpatch.infrastructure.vault import Vault
from vaultpatch.services.batch import AtomicBatch, AtomicState, AtomicStep
from vaultpatch.services.result import ServiceResult
from vaultpatch.services.router import MutationRouter
from vaultpatch.services.telemetry import (
    Span,
    StepPhase,
    _active,
    enable_telemetry,
    get_current_span,
    record_batch,
    record_step,
    trace_span,
    traced,
)


class _SampleService:
    @traced
    def outer(self) -> ServiceResult:
        with trace_span("step") as span:
            if span:
                span.annotate("files", 3)
        return self.inner()

    @traced
    def inner(self) -> ServiceResult:
        current = get_current_span()
        if current is not None:
            current.annotate("seen", True)
        return ServiceResult(ok=True, op="inner", meta={"existing": 1})

    @traced
    def boom(self) -> ServiceResult:
        raise RuntimeError("boom")


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="test").duration_ms == 0.0

    def test_duration_after_end(self) -> None:
        span = Span(name="test")
        time.sleep(0.002)
        span.end()
        assert span.duration_ms > 0

    def test_to_dict_minimal(self) -> None:
        span = Span(name="root")
        span.end()
        d = span.to_dict()
        assert d["name"] == "root"
        assert "children" not in d
        assert "annotations" not in d

    def test_annotate(self) -> None:
        span = Span(name="test")
        span.annotate("rows", 42)
        assert span.to_dict()["annotations"] == {"rows": 42}

    def test_to_dict_carries_steps_and_batch(self) -> None:
        span = Span(name="transfer")
        span.steps.append(("projects/a.md", StepPhase.APPLIED))
        span.batch = {"requested": 1, "succeeded": 1, "state": "committed"}
        data = span.to_dict()
        assert data["steps"] == [{"id": "projects/a.md", "phase": "applied"}]
        assert data["batch"]["state"] == "committed"

    def test_step_counts_include_children(self) -> None:
        root = Span(name="root")
        child = Span(name="child", parent=root)
        root.children.append(child)
        root.steps.append(("a.md", StepPhase.APPLIED))
        child.steps.extend([("b.md", StepPhase.APPLIED), ("c.md", StepPhase.FAILED)])
        assert root.step_counts() == {"applied": 2, "failed": 1}


class TestTraceSpan:
    def test_disabled_yields_none(self) -> None:
        with trace_span("test") as span:
            assert span is None

    def test_no_root_yields_none(self) -> None:
        enable_telemetry()
        with trace_span("test") as span:
            assert span is None

    def test_nested_spans(self) -> None:
        enable_telemetry()
        root = Span(name="root")
        token = _active.set(root)
        try:
            with trace_span("a"), trace_span("b"):
                pass
        finally:
            _active.reset(token)
        assert [c.name for c in root.children] == ["a"]
        assert [c.name for c in root.children[0].children] == ["b"]
        assert root.children[0].end_time is not None


class TestTraced:
    def test_disabled_leaves_meta_alone(self) -> None:
        result = _SampleService().outer()
        assert result.meta == {"existing": 1}

    def test_outermost_result_carries_tree(self) -> None:
        enable_telemetry()
        result = _SampleService().outer()
        assert result.meta is not None
        assert result.meta["existing"] == 1
        tree = result.meta["telemetry"]
        assert tree["name"] == "_SampleService.outer"
        names = [c["name"] for c in tree["children"]]
        assert names == ["step", "_SampleService.inner"]
        assert tree["children"][0]["annotations"] == {"files": 3}
        assert tree["children"][1]["annotations"] == {"seen": True}

    def test_span_context_restored_after_exception(self) -> None:
        enable_telemetry()
        with pytest.raises(RuntimeError):
            _SampleService().boom()
        assert _active.get() is None

    def test_get_current_span_disabled(self) -> None:
        assert get_current_span() is None

    def test_router_dispatch_is_traced(self, vault: Vault, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "x")
        enable_telemetry()
        raw = request("DELETE", "notes/a.md", Permanent="true")
        result = MutationRouter(vault).dispatch(raw)
        assert result.ok
        assert result.meta is not None
        tree = result.meta["telemetry"]
        assert tree["name"] == "MutationRouter.dispatch"
        route_span = tree["children"][0]
        assert route_span["name"] == "normalize_and_route"
        assert route_span["annotations"] == {"family": "identity"}


class _MovingService:
    def __init__(self, fail_on: str | None = None) -> None:
        self._fail_on = fail_on

    def _apply(self, identifier: str) -> None:
        if identifier == self._fail_on:
            raise OSError(f"Move failed for {identifier}")

    @traced
    def transfer(self, identifiers: list[str]) -> ServiceResult:
        batch = AtomicBatch()
        batch.enumerate(
            AtomicStep(i, functools.partial(self._apply, i), lambda: None) for i in identifiers
        )
        with trace_span("atomic_transfer"):
            batch.execute()
        return ServiceResult(ok=batch.state is AtomicState.COMMITTED, op="transfer")


class TestBatchRecording:
    def test_recording_without_span_is_noop(self) -> None:
        record_step("a.md", StepPhase.APPLIED)
        record_batch({"requested": 1})
        assert get_current_span() is None

    def test_committed_transfer_records_steps(self) -> None:
        enable_telemetry()
        result = _MovingService().transfer(["a.md", "b.md"])
        assert result.meta is not None
        transfer = result.meta["telemetry"]["children"][0]
        assert transfer["name"] == "atomic_transfer"
        assert [s["phase"] for s in transfer["steps"]] == ["applied", "applied"]
        assert transfer["batch"] == {
            "requested": 2,
            "succeeded": 2,
            "skipped": 0,
            "failed": 0,
            "state": "committed",
        }

    def test_rolled_back_transfer_records_compensation(self) -> None:
        enable_telemetry()
        result = _MovingService(fail_on="b.md").transfer(["a.md", "b.md", "c.md"])
        assert not result.ok
        assert result.meta is not None
        transfer = result.meta["telemetry"]["children"][0]
        assert transfer["steps"] == [
            {"id": "a.md", "phase": "applied"},
            {"id": "b.md", "phase": "failed"},
            {"id": "a.md", "phase": "compensated"},
        ]
        assert transfer["batch"]["state"] == "rolled_back"
        assert transfer["batch"]["failed"] == 1
