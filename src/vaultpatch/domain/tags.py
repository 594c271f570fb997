"""Tag domain logic — grammar, extraction, and in-memory rewrites.

Tags live in two places inside a markdown file:

- the frontmatter ``tags`` (or legacy ``tag``) key, as a list or a
  comma/space separated string;
- inline ``#tag`` occurrences in the body, outside code spans and fences.

All rewrites match whole tags only: ``project`` never matches
``project/archived``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

DEFAULT_MAX_TAG_LENGTH = 100

_TAG_GRAMMAR = re.compile(r"^[A-Za-z0-9_\-]+(?:/[A-Za-z0-9_\-]+)*$")
_HAS_NON_DIGIT = re.compile(r"[^0-9/]")

# A '#' that starts a tag: not preceded by a word char, slash, '#', '&' or '-'.
_TAG_START = r"(?<![\w/#&\-])#"
_INLINE_TAG = re.compile(_TAG_START + r"([A-Za-z0-9_\-]+(?:/[A-Za-z0-9_\-]+)*)")
_TAG_END = r"(?![\w/\-])"

_FENCE = re.compile(r"^(```|~~~).*?^\1[^\n]*$", re.MULTILINE | re.DOTALL)
_CODE_SPAN = re.compile(r"`[^`\n]*`")
_BLANK_RUNS = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")

FRONTMATTER_TAG_KEYS = ("tags", "tag")


class TagError(ValueError):
    """A tag token does not satisfy the tag grammar."""


def normalize_tag(raw: str, *, max_length: int = DEFAULT_MAX_TAG_LENGTH) -> str:
    """Validate *raw* and return the canonical tag token.

    One leading ``#`` is dropped; case is preserved.

    Raises:
        TagError: If the token is empty, too long, purely numeric, or contains
            characters outside letters, digits, ``_``, ``-`` and ``/``.

    Examples:
        >>> normalize_tag("#project/alpha")
        'project/alpha'
    """
    token = raw.strip().removeprefix("#")
    if not token:
        msg = "Tag name is empty"
        raise TagError(msg)
    if len(token) > max_length:
        msg = f"Tag name exceeds {max_length} characters"
        raise TagError(msg)
    if not _TAG_GRAMMAR.match(token):
        msg = (
            "Invalid tag name. Tags can only contain letters, numbers, "
            "underscores, hyphens, and forward slashes"
        )
        raise TagError(msg)
    if not _HAS_NON_DIGIT.search(token):
        msg = "Invalid tag name. Tags must contain at least one non-numeric character"
        raise TagError(msg)
    return token


def is_valid_tag(raw: str, *, max_length: int = DEFAULT_MAX_TAG_LENGTH) -> bool:
    """True if *raw* normalizes without error."""
    try:
        normalize_tag(raw, max_length=max_length)
    except TagError:
        return False
    return True


def dedupe_tags(raw_tags: Iterable[str]) -> list[str]:
    """Drop repeated tokens, keeping the first occurrence.

    Tokens are compared after trimming whitespace and one leading ``#``, so
    ``"#a"`` and ``"a"`` collapse; malformed tokens are kept for reporting.
    """
    seen: set[str] = set()
    result: list[str] = []
    for raw in raw_tags:
        key = raw.strip().removeprefix("#")
        if key in seen:
            continue
        seen.add(key)
        result.append(raw)
    return result


def is_tag_or_child(tag: str, parent: str) -> bool:
    """True for ``parent`` itself and nested ``parent/...`` tags."""
    return tag == parent or tag.startswith(parent + "/")


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _mask_code(body: str) -> str:
    """Blank out fenced blocks and code spans with NULs, preserving offsets."""

    def blank(match: re.Match[str]) -> str:
        return re.sub(r"[^\n]", "\x00", match.group(0))

    return _CODE_SPAN.sub(blank, _FENCE.sub(blank, body))


def extract_inline_tags(body: str) -> list[str]:
    """Return inline tag occurrences in document order (duplicates kept)."""
    masked = _mask_code(body)
    return [m.group(1) for m in _INLINE_TAG.finditer(masked) if _HAS_NON_DIGIT.search(m.group(1))]


def _coerce_tag_values(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [t for t in re.split(r"[,\s]+", value) if t]
    if isinstance(value, list):
        return [str(v) for v in value if v is not None]
    return [str(value)]


def frontmatter_tag_key(frontmatter: dict[str, Any]) -> str | None:
    """The key holding tags in *frontmatter*, if any."""
    for key in FRONTMATTER_TAG_KEYS:
        if key in frontmatter:
            return key
    return None


def extract_frontmatter_tags(frontmatter: dict[str, Any]) -> list[str]:
    """Return tags declared in frontmatter, without leading ``#``."""
    key = frontmatter_tag_key(frontmatter)
    if key is None:
        return []
    return [t.strip().removeprefix("#") for t in _coerce_tag_values(frontmatter[key]) if t.strip()]


# ---------------------------------------------------------------------------
# Frontmatter rewrites (mutate the mapping in place)
# ---------------------------------------------------------------------------


def _tag_list(frontmatter: dict[str, Any], key: str) -> list[Any]:
    """Return the tag list under *key*, converting string forms to a list."""
    value = frontmatter.get(key)
    if isinstance(value, list):
        return value
    values: list[Any] = _coerce_tag_values(value)
    frontmatter[key] = values
    return values


def add_frontmatter_tags(frontmatter: dict[str, Any], tags: Iterable[str]) -> list[str]:
    """Append *tags* missing from the frontmatter tag list. Returns those added."""
    key = frontmatter_tag_key(frontmatter) or "tags"
    values = _tag_list(frontmatter, key)
    present = {str(v).strip().removeprefix("#") for v in values}
    added: list[str] = []
    for tag in tags:
        if tag in present:
            continue
        values.append(tag)
        present.add(tag)
        added.append(tag)
    return added


def remove_frontmatter_tags(frontmatter: dict[str, Any], tags: Iterable[str]) -> set[str]:
    """Remove exact *tags* from frontmatter; drops the key when emptied."""
    key = frontmatter_tag_key(frontmatter)
    if key is None:
        return set()
    wanted = set(tags)
    values = _tag_list(frontmatter, key)
    removed: set[str] = set()
    for index in range(len(values) - 1, -1, -1):
        clean = str(values[index]).strip().removeprefix("#")
        if clean in wanted:
            del values[index]
            removed.add(clean)
    if not values:
        del frontmatter[key]
    return removed


def rename_frontmatter_tag(frontmatter: dict[str, Any], old: str, new: str) -> bool:
    """Replace exact *old* entries with *new*, keeping list position.

    If *new* is already listed, the *old* entry is dropped instead of
    creating a duplicate.
    """
    key = frontmatter_tag_key(frontmatter)
    if key is None:
        return False
    values = _tag_list(frontmatter, key)
    present = {str(v).strip().removeprefix("#") for v in values}
    changed = False
    for index in range(len(values) - 1, -1, -1):
        if str(values[index]).strip().removeprefix("#") != old:
            continue
        if new in present:
            del values[index]
        else:
            values[index] = new
            present.add(new)
        changed = True
    return changed


# ---------------------------------------------------------------------------
# Inline rewrites (return new body text)
# ---------------------------------------------------------------------------


def _exact_tag_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(r"(?P<lead>[ \t]*)" + _TAG_START + re.escape(tag) + _TAG_END)


def _substitute_outside_code(body: str, pattern: re.Pattern[str], replace: Any) -> tuple[str, int]:
    masked = _mask_code(body)
    parts: list[str] = []
    cursor = 0
    count = 0
    for match in pattern.finditer(masked):
        parts.append(body[cursor : match.start()])
        parts.append(replace(match))
        cursor = match.end()
        count += 1
    parts.append(body[cursor:])
    return "".join(parts), count


def remove_inline_tag(body: str, tag: str) -> tuple[str, int]:
    """Delete exact inline occurrences of *tag*. Returns ``(body, count)``."""
    new_body, count = _substitute_outside_code(body, _exact_tag_pattern(tag), lambda m: "")
    if count:
        new_body = _BLANK_RUNS.sub("\n\n", new_body)
    return new_body, count


def rename_inline_tag(body: str, old: str, new: str) -> tuple[str, int]:
    """Rewrite exact inline occurrences of *old* as *new*."""
    return _substitute_outside_code(
        body, _exact_tag_pattern(old), lambda m: f"{m.group('lead')}#{new}"
    )


def append_inline_tags(body: str, tags: Iterable[str]) -> str:
    """Append *tags* as a line of inline tags at the end of *body*."""
    tag_list = list(tags)
    if not tag_list:
        return body
    if body and not body.endswith("\n"):
        body += "\n"
    line = " ".join(f"#{t}" for t in tag_list)
    return f"{body}\n{line}\n" if body else f"{line}\n"
