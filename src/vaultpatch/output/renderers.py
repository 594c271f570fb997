"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from vaultpatch.output.console import create_console, get_output, style_for_item_status

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

    from vaultpatch.services.result import ServiceResult

    Renderer = Callable[..., None]

MULTI_STATUS = 207


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    # Listings print one name per line
    items = result.data.get("items") or result.data.get("files")
    if items and isinstance(items, list):
        return "\n".join(_extract_name(item) for item in items if _extract_name(item))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_name(item: Any) -> str:
    if isinstance(item, dict):
        for key in ("tag", "path", "file"):
            val = item.get(key)
            if val is not None:
                return str(val)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK/PARTIAL status line."""
    if result.status == MULTI_STATUS:
        label = Text("PARTIAL", style="vp.partial")
    else:
        label = Text("OK", style="vp.ok")
    op = Text(f"  {result.op}", style="vp.op")
    console.print(label, op, Text(f"  ({result.status})", style="vp.code"), end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="vp.key")
    if key == "path" or key.endswith("_path"):
        v = Text(str(value), style="vp.path")
    elif key.endswith("_tag") or key == "tag":
        v = Text(str(value), style="vp.tag")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{ak}={av}" for ak, av in annotations.items()) + ")"

    console.print(line)
    batch = span_data.get("batch")
    if batch:
        counts = " ".join(f"{bk}={bv}" for bk, bv in batch.items())
        console.print(f"{prefix}{' ' * 12}batch: {counts}")
    for step in span_data.get("steps", []):
        if step["phase"] in ("failed", "unrestored"):
            console.print(
                f"{prefix}{' ' * 12}[vp.status.failed]{step['phase']}[/vp.status.failed] "
                f"{escape(step['id'])}"
            )

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _summary_line(console: Console, summary: dict[str, Any]) -> None:
    console.print(
        f"  requested {summary.get('requested', 0)}"
        f"  [vp.status.success]succeeded {summary.get('succeeded', 0)}[/vp.status.success]"
        f"  [vp.status.skipped]skipped {summary.get('skipped', 0)}[/vp.status.skipped]"
        f"  [vp.status.failed]failed {summary.get('failed', 0)}[/vp.status.failed]"
    )


def _results_table(results: list[dict[str, Any]]) -> Table:
    """Build a Rich Table of per-item batch results."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    key = next((k for k in ("tag", "file") if results and k in results[0]), "identifier")
    table.add_column(key.title(), no_wrap=True)
    table.add_column("Status")
    table.add_column("Message", style="dim")
    for item in results:
        status = str(item.get("status", ""))
        table.add_row(
            str(item.get(key, "")),
            Text(status, style=style_for_item_status(status)),
            str(item.get("message", "")),
        )
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="vp.error")
    op = Text(f"  {result.op}", style="vp.op")
    code = Text(f"  [{err.error_code}]" if err else "", style="vp.code")
    sep = Text(" — ")
    console.print(label, op, code, sep, msg)

    if not err or not err.detail:
        return
    detail = dict(err.detail)
    unrestored = detail.pop("unrestored", None)
    if unrestored:
        console.print(Text("  unrestored:", style="vp.error"))
        for path in unrestored:
            console.print(f"    {path}")
    results = detail.pop("results", None)
    summary = detail.pop("summary", None)
    if verbose:
        if summary:
            _summary_line(console, summary)
        if results:
            console.print(_results_table(results))
        for k, v in detail.items():
            console.print(f"  {k}: {v}")


# ── Mutation renderers ────────────────────────────────────────────────


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render single-entry results: rename, move, delete, mkdir, patch."""
    _status_line(console, result)
    mutation_keys = (
        "message",
        "old_path",
        "new_path",
        "path",
        "trash_path",
        "permanent",
        "created",
        "operation",
        "target_type",
        "target",
    )
    for key in mutation_keys:
        if key in result.data:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


def _render_batch(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render batch results: directory transfers/deletes and tag edits."""
    _status_line(console, result)
    d = result.data
    for key in (
        "message",
        "path",
        "old_path",
        "new_path",
        "old_tag",
        "new_tag",
        "files_moved_count",
        "files_copied_count",
        "modified_count",
    ):
        if key in d:
            _field(console, key, d[key])
    if "summary" in d:
        _summary_line(console, d["summary"])
    results = d.get("results", [])
    show_all = verbose or any(r.get("status") == "failed" for r in results)
    if results and show_all:
        console.print()
        console.print(_results_table(results))
    for err in d.get("errors", []):
        console.print(f"  [vp.error]error[/vp.error] {err.get('file')}: {err.get('error')}")
    if verbose:
        _render_meta(console, result)


# ── Tag query renderers ───────────────────────────────────────────────


def _render_tag_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Tag", style="vp.tag", no_wrap=True)
    table.add_column("Files", justify="right")
    for item in items:
        table.add_row(str(item.get("tag", "")), str(item.get("files", 0)))
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} tags")
    if verbose:
        _render_meta(console, result)


def _render_tag_detail(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    console.print(Text(f"#{d.get('tag', '?')}", style="vp.tag"))
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("File", style="vp.path")
    table.add_column("Occurrences", justify="right")
    for entry in d.get("files", []):
        table.add_row(str(entry.get("path", "")), str(entry.get("occurrences", 0)))
    console.print(table)
    console.print(f"\n{d.get('count', 0)} files")
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Renderer] = {
    # Identity
    "rename_file": _render_mutation,
    "move_file": _render_mutation,
    "delete_file": _render_mutation,
    # Directory
    "move_directory": _render_batch,
    "copy_directory": _render_batch,
    "delete_directory": _render_batch,
    "create_directory": _render_mutation,
    # Tags
    "tag_batch": _render_batch,
    "tag_rename": _render_batch,
    "list_tags": _render_tag_list,
    "get_tag": _render_tag_detail,
    # Content
    "patch_content": _render_mutation,
}
