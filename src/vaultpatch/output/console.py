"""Rich Console factory and theme for vaultpatch output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

VAULTPATCH_THEME = Theme(
    {
        "vp.ok": "bold green",
        "vp.partial": "bold yellow",
        "vp.error": "bold red",
        "vp.warning": "bold yellow",
        "vp.op": "bold cyan",
        "vp.key": "dim",
        "vp.path": "blue",
        "vp.tag": "magenta",
        "vp.code": "dim",
        "vp.status.success": "green",
        "vp.status.skipped": "yellow",
        "vp.status.failed": "red",
    }
)

_ITEM_STATUS_STYLES: dict[str, str] = {
    "success": "vp.status.success",
    "skipped": "vp.status.skipped",
    "failed": "vp.status.failed",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=VAULTPATCH_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    if not isinstance(console.file, StringIO):
        msg = "Console is not backed by a StringIO buffer"
        raise RuntimeError(msg)
    return console.file.getvalue()


def style_for_item_status(status: str) -> str:
    """Return the Rich style name for a batch item status."""
    return _ITEM_STATUS_STYLES.get(status, "")
