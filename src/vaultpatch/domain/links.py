"""Link parsing and rewriting — wikilinks and markdown links.

Pure functions, no infrastructure dependencies. The link-preserving renamer
uses them to update references when a file changes path; deciding *which*
link targets refer to the renamed file is the caller's job (passed in as a
resolver callback).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote, unquote

# [[Target]], [[Target#Heading]], [[Target#^block|Display]], ![[embed.png]]
_WIKILINK_PATTERN = re.compile(r"\[\[([^\[\]]+)\]\]")

# [text](dest) and ![alt](dest); dest may be wrapped in <...>.
_MARKDOWN_LINK_PATTERN = re.compile(
    r"(?P<prefix>!?\[[^\]\n]*\]\()(?P<dest><[^>\n]+>|[^)\s]+)(?P<suffix>[^)\n]*\))"
)
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")

Resolver = Callable[[str], str | None]


@dataclass(frozen=True)
class WikiLink:
    """A wikilink extracted from body text."""

    raw: str  # link target without anchor or display text
    anchor: str | None = None  # "#Heading" or "#^block" if present
    display: str | None = None  # display text after | if present

    def render(self, target: str) -> str:
        """``[[...]]`` text pointing at *target*, keeping anchor and display."""
        inner = target + (self.anchor or "")
        if self.display is not None:
            inner += "|" + self.display
        return f"[[{inner}]]"


def parse_wikilink(inner: str) -> WikiLink:
    """Parse the text between ``[[`` and ``]]``."""
    target_part, sep, display = inner.partition("|")
    raw, hash_sep, anchor = target_part.partition("#")
    return WikiLink(
        raw=raw.strip(),
        anchor=hash_sep + anchor if hash_sep else None,
        display=display if sep else None,
    )


def extract_wikilinks(body: str) -> list[WikiLink]:
    """Extract all ``[[wikilinks]]`` from markdown body text.

    Handles ``[[Target]]``, ``[[Target|Display Text]]`` and anchored
    ``[[Target#Heading]]`` forms. Returns an empty list if none are found.
    """
    return [parse_wikilink(m.group(1)) for m in _WIKILINK_PATTERN.finditer(body)]


def rewrite_wikilinks(body: str, resolve: Resolver) -> tuple[str, int]:
    """Rewrite wikilinks whose target *resolve* maps to a new target.

    *resolve* receives the raw link target and returns the replacement
    target, or None to leave the link alone. Returns ``(body, count)``.
    """
    count = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal count
        link = parse_wikilink(match.group(1))
        if not link.raw:
            return match.group(0)
        target = resolve(link.raw)
        if target is None or target == link.raw:
            return match.group(0)
        count += 1
        return link.render(target)

    return _WIKILINK_PATTERN.sub(replace, body), count


def _split_destination(dest: str) -> tuple[str, str, bool]:
    """``(path, anchor, bracketed)`` for a markdown link destination."""
    bracketed = dest.startswith("<") and dest.endswith(">")
    if bracketed:
        dest = dest[1:-1]
    path, sep, anchor = dest.partition("#")
    return path, sep + anchor, bracketed


def rewrite_markdown_links(body: str, resolve: Resolver) -> tuple[str, int]:
    """Rewrite ``[text](dest)`` links whose destination *resolve* maps.

    *resolve* receives the URL-decoded destination path (no anchor) and
    returns the replacement path or None. External URLs and pure anchors are
    never passed to it. Percent-encoding and ``<...>`` wrapping of the
    original destination are preserved.
    """
    count = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal count
        path, anchor, bracketed = _split_destination(match.group("dest"))
        if not path or _URL_SCHEME.match(path):
            return match.group(0)
        decoded = unquote(path)
        target = resolve(decoded)
        if target is None or target == decoded:
            return match.group(0)
        count += 1
        dest = quote(target, safe="/") if "%" in path else target
        if bracketed or " " in dest:
            dest = f"<{dest}>"
        return f"{match.group('prefix')}{dest}{anchor}{match.group('suffix')}"

    return _MARKDOWN_LINK_PATTERN.sub(replace, body), count
