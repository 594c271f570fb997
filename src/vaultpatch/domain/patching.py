"""Default structural patcher for heading, block, and frontmatter targets.

The router treats the patcher as an opaque collaborator with the signature
``(content, instruction) -> new content`` that raises :class:`PatchFailed`
when the instruction cannot be applied. Any callable with that shape can be
injected into the vault in place of :func:`apply_patch`.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any, Protocol

from vaultpatch.domain.content import parse_document, render_frontmatter
from vaultpatch.domain.types import Operation, TargetKind

if TYPE_CHECKING:
    from vaultpatch.domain.instruction import MutationInstruction

_HEADING = re.compile(r"^(#{1,6})[ \t]+(.*?)[ \t]*#*[ \t]*$")
_FENCE_LINE = re.compile(r"^(```|~~~)")


class PatchFailed(Exception):
    """The instruction cannot be applied to the document."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StructuralPatcher(Protocol):
    """Collaborator contract for content patches."""

    def __call__(self, content: str, instruction: MutationInstruction) -> str: ...


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _payload_text(instruction: MutationInstruction) -> str:
    text = instruction.text()
    return text if text.endswith("\n") or not text else text + "\n"


def _splice(
    section: list[str],
    payload: str,
    operation: Operation,
    *,
    apply_if_exists: bool,
    trim: bool,
) -> list[str]:
    """Apply *operation* to the lines of one target section."""
    new_lines = payload.rstrip("\n").split("\n")
    if operation is Operation.REPLACE:
        trailing = [] if trim else _trailing_blank(section)
        return new_lines + trailing

    existing = "\n".join(section)
    if not apply_if_exists and payload.strip() and payload.strip() in existing:
        raise PatchFailed("content-already-preexists-in-target")

    body = list(section)
    if trim:
        while body and not body[0].strip():
            body.pop(0)
        while body and not body[-1].strip():
            body.pop()
    if operation is Operation.PREPEND:
        return new_lines + body
    trailing = _trailing_blank(body)
    core = body[: len(body) - len(trailing)]
    return core + new_lines + trailing


def _trailing_blank(lines: list[str]) -> list[str]:
    count = 0
    for line in reversed(lines):
        if line.strip():
            break
        count += 1
    return lines[len(lines) - count :] if count else []


# ---------------------------------------------------------------------------
# Heading targets
# ---------------------------------------------------------------------------


def _heading_lines(lines: list[str]) -> list[tuple[int, int, str]]:
    """``(line_index, level, text)`` for every heading outside code fences."""
    found: list[tuple[int, int, str]] = []
    in_fence = False
    for index, line in enumerate(lines):
        if _FENCE_LINE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING.match(line)
        if match:
            found.append((index, len(match.group(1)), match.group(2)))
    return found


def _find_heading(lines: list[str], path: list[str]) -> tuple[int, int] | None:
    """Locate the section for a nested heading *path*.

    Returns ``(heading_line, section_end)``; the section spans the lines
    between the heading and the next heading of the same or higher rank.
    """
    headings = _heading_lines(lines)
    stack: list[tuple[int, str]] = []
    for position, (index, level, text) in enumerate(headings):
        while stack and stack[-1][0] >= level:
            stack.pop()
        stack.append((level, text))
        if [t for _, t in stack] != path:
            continue
        end = len(lines)
        for next_index, next_level, _ in headings[position + 1 :]:
            if next_level <= level:
                end = next_index
                break
        return index, end
    return None


def _patch_heading(content: str, instruction: MutationInstruction) -> str:
    path = instruction.target_segments
    if not path:
        raise PatchFailed("invalid-target")
    lines = content.split("\n")
    payload = _payload_text(instruction)
    located = _find_heading(lines, path)

    if located is None:
        if not instruction.create_if_missing:
            raise PatchFailed("invalid-target")
        level = min(len(path), 6)
        prefix = content if content.endswith("\n") or not content else content + "\n"
        return f"{prefix}{'#' * level} {path[-1]}\n{payload}"

    heading_index, end = located
    section = lines[heading_index + 1 : end]
    patched = _splice(
        section,
        payload,
        instruction.operation,
        apply_if_exists=instruction.apply_if_exists,
        trim=instruction.trim_whitespace,
    )
    return "\n".join(lines[: heading_index + 1] + patched + lines[end:])


# ---------------------------------------------------------------------------
# Block targets
# ---------------------------------------------------------------------------


def _patch_block(content: str, instruction: MutationInstruction) -> str:
    block_id = instruction.target.strip().removeprefix("^")
    if not block_id:
        raise PatchFailed("invalid-target")
    marker = re.compile(r"[ \t]+\^" + re.escape(block_id) + r"[ \t]*$")
    lines = content.split("\n")

    for index, line in enumerate(lines):
        match = marker.search(line)
        if match is None:
            continue
        start = index
        while start > 0 and lines[start - 1].strip():
            start -= 1
        suffix = line[match.start() :]
        block = lines[start:index] + [line[: match.start()]]
        patched = _splice(
            block,
            _payload_text(instruction),
            instruction.operation,
            apply_if_exists=instruction.apply_if_exists,
            trim=instruction.trim_whitespace,
        )
        while patched and not patched[-1].strip():
            patched.pop()
        if not patched:
            patched = [""]
        patched[-1] = patched[-1] + suffix
        return "\n".join(lines[:start] + patched + lines[index + 1 :])

    raise PatchFailed("invalid-target")


# ---------------------------------------------------------------------------
# Frontmatter targets
# ---------------------------------------------------------------------------


def _frontmatter_value(instruction: MutationInstruction) -> Any:
    text = instruction.text()
    if instruction.is_json:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PatchFailed("invalid-content") from exc
    return text.strip() if instruction.trim_whitespace else text


def _patch_frontmatter(content: str, instruction: MutationInstruction) -> str:
    key = instruction.target.strip()
    if not key:
        raise PatchFailed("invalid-target")
    doc = parse_document(content)
    fm = doc.frontmatter
    value = _frontmatter_value(instruction)

    if key not in fm:
        if not instruction.create_if_missing:
            raise PatchFailed("invalid-target")
        fm[key] = value
        return render_frontmatter(fm, doc.body, doc.newline)

    current = fm[key]
    op = instruction.operation
    if op is Operation.REPLACE:
        fm[key] = value
    elif isinstance(current, list):
        additions = value if isinstance(value, list) else [value]
        if not instruction.apply_if_exists and all(a in current for a in additions):
            raise PatchFailed("content-already-preexists-in-target")
        if op is Operation.APPEND:
            current.extend(additions)
        else:
            for item in reversed(additions):
                current.insert(0, item)
    elif isinstance(current, str) and isinstance(value, str):
        fm[key] = current + value if op is Operation.APPEND else value + current
    else:
        raise PatchFailed("invalid-target")
    return render_frontmatter(fm, doc.body, doc.newline)


_PATCHERS = {
    TargetKind.HEADING: _patch_heading,
    TargetKind.BLOCK: _patch_block,
    TargetKind.FRONTMATTER: _patch_frontmatter,
}


def apply_patch(content: str, instruction: MutationInstruction) -> str:
    """Apply a heading/block/frontmatter *instruction* to *content*.

    Raises:
        PatchFailed: When the target is missing, the content already exists,
            or the instruction does not fit the target.
    """
    patcher = _PATCHERS.get(instruction.target_kind)
    if patcher is None or instruction.operation not in (
        Operation.APPEND,
        Operation.PREPEND,
        Operation.REPLACE,
    ):
        raise PatchFailed("invalid-target")
    return patcher(content, instruction)
