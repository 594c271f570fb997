"""Rich/JSON output helpers.

The CLI renders ServiceResult for humans (Rich output) or machines
(--json). In JSON mode the wire response ``{"status": ..., "body": ...}``
is printed, the same shape an HTTP adapter would send.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING

from pydantic import BaseModel

from vaultpatch.output.renderers import render_quiet, render_result
from vaultpatch.output.wire import to_wire

if TYPE_CHECKING:
    from vaultpatch.services.result import ServiceResult


class OutputSettings(BaseModel):
    """Output mode flags resolved from the global CLI options."""

    model_config = {"frozen": True}

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_json(result: ServiceResult) -> str:
    """The wire response as indented JSON."""
    status, body = to_wire(result)
    payload = {"status": status, "body": body}
    if result.meta:
        payload["meta"] = result.meta
    return _json.dumps(payload, indent=2, ensure_ascii=False)


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        settings: Output mode; defaults to human-readable Rich output.
    """
    settings = settings or OutputSettings()
    if settings.json_output:
        return format_json(result)
    if settings.quiet:
        return render_quiet(result)
    return render_result(result, verbose=settings.verbose)
