"""Splits raw blocks into a preamble and ordered tags.

Grammar, applied to the block text (marker and one space already removed):

* a line starting with ``@name`` (an identifier) starts a new tag; the rest
  of the line and every following line up to the next tag belong to it;
* ``@@`` is an escaped literal ``@`` anywhere in the text and never starts
  a tag;
* a line starting with a single ``@`` not followed by an identifier is a
  parse error, since the grammar cannot tell what was meant;
* text before the first tag is the preamble.

Blank lines inside tag content are kept as paragraph separators; blank lines
around it are trimmed. Unknown tag names are kept so that validation can
report them later with their position.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from ..errors import ParseError
from ..models import ParsedBlock, RawBlock, SourcePosition, Tag

DEFAULT_TAG_MARKER = "@"

_BLANK_RUN = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)*")


class TagParser:
    """Parses :class:`RawBlock` objects into :class:`ParsedBlock` objects."""

    def __init__(self, marker: str = DEFAULT_TAG_MARKER) -> None:
        self.marker = marker
        self._escaped = marker * 2
        self._tag_start = re.compile(
            rf"^{re.escape(marker)}([A-Za-z][A-Za-z0-9_]*)(?:[ \t]+(.*))?$"
        )

    def unescape(self, text: str) -> str:
        return text.replace(self._escaped, self.marker)

    def parse(self, block: RawBlock) -> ParsedBlock:
        preamble: List[str] = []
        tags: List[Tuple[str, int, List[str]]] = []

        for comment in block.lines:
            text = comment.text
            if text.startswith(self.marker) and not text.startswith(self._escaped):
                match = self._tag_start.match(text)
                if not match:
                    raise ParseError(
                        f"'{self.marker}' at the start of a line must begin a tag name "
                        f"or be doubled as '{self._escaped}'",
                        position=SourcePosition(block.unit, comment.line, block.position.rank),
                        key=text.split()[0] if text.split() else self.marker,
                    )
                rest = match.group(2) or ""
                tags.append((match.group(1), comment.line, [self.unescape(rest)]))
                continue

            target = tags[-1][2] if tags else preamble
            target.append(self.unescape(text))

        return ParsedBlock(
            block=block,
            preamble=_join(preamble),
            tags=tuple(Tag(name=name, content=_join(lines), line=line) for name, line, lines in tags),
        )


def paragraphs(text: str) -> List[str]:
    """Split text on blank lines, dropping empty paragraphs."""
    if not text.strip():
        return []
    return [chunk.strip("\n") for chunk in _BLANK_RUN.split(text.strip("\n")) if chunk.strip()]


def split_first_word(text: str) -> Tuple[str, str]:
    """Return ``(first word, remaining text)`` of tag content."""
    stripped = text.lstrip()
    if not stripped:
        return "", ""
    parts = stripped.split(None, 1)
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1].strip()


def split_titled(text: str) -> Tuple[Optional[str], str]:
    """Split ``Title: body`` content used by section-like tags."""
    first, _, remainder = text.partition("\n")
    if ":" not in first:
        return None, text
    title, _, inline = first.partition(":")
    body = "\n".join(part for part in (inline.strip(), remainder) if part)
    return title.strip() or None, _join(body.split("\n"))


def _join(lines: Sequence[str]) -> str:
    """Join lines, trimming trailing whitespace and blank lines at both ends."""
    cleaned = [line.rstrip() for line in lines]
    while cleaned and not cleaned[0].strip():
        cleaned.pop(0)
    while cleaned and not cleaned[-1].strip():
        cleaned.pop()
    return "\n".join(cleaned)


__all__ = ["DEFAULT_TAG_MARKER", "TagParser", "paragraphs", "split_first_word", "split_titled"]
