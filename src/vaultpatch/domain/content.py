"""Markdown document parsing — frontmatter block + body.

Pure parsing utilities shared by the tag handler, the metadata index, and the
default structural patcher. The YAML block is parsed round-trip so that key
order, comments, and quote styles survive a rewrite; the body is kept
byte-for-byte.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

_FRONTMATTER_DELIMITER = "---"


def _new_yaml() -> YAML:
    """Create a fresh round-trip YAML parser.

    A new instance per call avoids corrupted internal emitter state from
    propagating across operations (ruamel.yaml's YAML object is stateful
    and a failed dump can leave the singleton in a broken state).
    """
    y = YAML()
    y.preserve_quotes = True
    y.default_flow_style = False
    y.width = 4096
    return y


@dataclass
class Document:
    """A markdown file split into frontmatter and body."""

    frontmatter: dict[str, Any] = field(default_factory=dict)
    body: str = ""
    has_frontmatter: bool = False
    newline: str = "\n"


def parse_document(content: str) -> Document:
    """Split *content* into a :class:`Document`.

    The file must start with ``---`` on the first line; the next ``---`` line
    closes the YAML block. Everything after the closing line is the body,
    untouched. Handles both ``\\n`` and ``\\r\\n`` line endings; the ending of
    the first line is recorded in :attr:`Document.newline`.

    A block that is not a YAML mapping (or fails to parse) is treated as
    ordinary body text.
    """
    lines = content.split("\n")
    newline = "\r\n" if lines[0].endswith("\r") else "\n"
    if lines[0].strip() != _FRONTMATTER_DELIMITER:
        return Document(body=content, newline=newline)

    end_idx: int | None = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == _FRONTMATTER_DELIMITER:
            end_idx = i
            break

    if end_idx is None:
        return Document(body=content, newline=newline)

    yaml_block = "\n".join(line.removesuffix("\r") for line in lines[1:end_idx])
    body = "\n".join(lines[end_idx + 1 :])

    try:
        fm = _new_yaml().load(yaml_block) if yaml_block.strip() else {}
    except YAMLError:
        return Document(body=content, newline=newline)
    if fm is None:
        fm = {}
    if not isinstance(fm, dict):
        return Document(body=content, newline=newline)
    return Document(frontmatter=fm, body=body, has_frontmatter=True, newline=newline)


def render_frontmatter(frontmatter: dict[str, Any], body: str, newline: str = "\n") -> str:
    """Render a frontmatter mapping and body text back into markdown.

    Key order is whatever the mapping holds (round-trip maps keep the order
    of the original file). An empty mapping renders an empty block. The
    delimiter and YAML lines end with *newline*; *body* is written as given.
    """
    yaml_text = ""
    if frontmatter:
        buf = StringIO()
        _new_yaml().dump(frontmatter, buf)
        yaml_text = buf.getvalue().replace("\n", newline)
    return "".join(
        [_FRONTMATTER_DELIMITER, newline, yaml_text, _FRONTMATTER_DELIMITER, newline, body]
    )


def render_document(doc: Document) -> str:
    """Render *doc*; documents without frontmatter are just their body."""
    if not doc.has_frontmatter:
        return doc.body
    return render_frontmatter(doc.frontmatter, doc.body, doc.newline)
