"""Serialises topics into the canonical Rd-style declarative format."""

from __future__ import annotations

import re
from typing import List

from ..models import Declaration, DeclarationKind, Section, Topic

GENERATED_HEADER = "% Generated by roxdoc: do not edit by hand"

_UNESCAPED_PERCENT = re.compile(r"(?<!\\)%")
_SAFE_FILENAME_CHARS = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789._-")
_INFIX = re.compile(r"^%[^%]*%$")

# Operator characters are spelled out so distinct operators get distinct files.
_SPELLED = {
    "%": "grapes",
    ">": "greater-than",
    "<": "less-than",
    "=": "equals",
    "!": "bang",
    "+": "plus",
    "*": "times",
    "/": "slash",
    "^": "hat",
    "|": "or",
    "&": "and",
    "$": "dollar",
    "@": "at",
    "[": "open-bracket",
    "]": "close-bracket",
    ":": "colon",
    "~": "tilde",
    "?": "help",
    " ": "space",
}


class RdRenderer:
    """Renders a topic with a fixed field order.

    name, title, description, usage, arguments, value, details, sections,
    examples, references, seealso, keywords, aliases
    """

    def render(self, topic: Topic) -> str:
        lines: List[str] = [GENERATED_HEADER]
        sources = ", ".join(topic.source_units)
        lines.append(f"% Please edit documentation in {sources}")
        lines.append(f"\\name{{{_escape(topic.name)}}}")
        if topic.title:
            lines.append(f"\\title{{{_escape(' '.join(topic.title.text.split()))}}}")
        _block(lines, "description", _escape(topic.description.text))
        _block(lines, "usage", _escape("\n\n".join(self.usage(topic))))
        self._arguments(lines, topic)
        _block(lines, "value", _escape(topic.value.text))
        _block(lines, "details", _escape(topic.details.text))
        for section in topic.sections:
            self._section(lines, section, "section")
        _block(lines, "examples", "\n".join(topic.examples))
        _block(lines, "references", _escape("\n\n".join(topic.references)))
        _block(lines, "seealso", _escape("\n\n".join(topic.seealso)))
        for keyword in topic.keywords:
            lines.append(f"\\keyword{{{keyword}}}")
        for alias in topic.aliases or (topic.name,):
            lines.append(f"\\alias{{{_escape(alias)}}}")
        return "\n".join(lines) + "\n"

    def usage(self, topic: Topic) -> List[str]:
        if topic.usage:
            return list(topic.usage)
        usages: List[str] = []
        for declaration in topic.declarations:
            usage = _declaration_usage(declaration)
            if usage and usage not in usages:
                usages.append(usage)
        return usages

    @staticmethod
    def _arguments(lines: List[str], topic: Topic) -> None:
        if not topic.params:
            return
        items = [f"\\item{{{param.name}}}{{{_escape(param.description)}}}" for param in topic.params]
        lines.append("\\arguments{")
        lines.append("\n\n".join(items))
        lines.append("}")

    def _section(self, lines: List[str], section: Section, command: str) -> None:
        lines.append(f"\\{command}{{{_escape(section.title)}}}{{")
        if section.body:
            lines.append(_escape(section.body))
        for subsection in section.subsections:
            self._section(lines, subsection, "subsection")
        lines.append("}")


def render_topic(topic: Topic) -> str:
    """Render one topic; pure and deterministic."""
    return RdRenderer().render(topic)


def topic_filename(topic: Topic) -> str:
    """File name for a topic: commas become ``_``, operator characters are spelled out."""
    parts: List[str] = []
    for char in topic.name:
        if char in _SAFE_FILENAME_CHARS:
            parts.append(char)
        elif char == ",":
            parts.append("_")
        else:
            parts.append(f"-{_SPELLED.get(char, f'u{ord(char):04x}')}-")
    stem = re.sub(r"-{2,}", "-", "".join(parts)).strip("-")
    return f"{stem or '_'}.Rd"


def _declaration_usage(declaration: Declaration) -> str:
    signature = declaration.signature or ""
    if declaration.kind is DeclarationKind.METHOD:
        return f"\\S4method{{{declaration.generic}}}{{{','.join(declaration.types)}}}({signature})"
    if declaration.is_s3_method:
        return f"\\method{{{declaration.generic}}}{{{declaration.s3_class}}}({signature})"
    if declaration.kind in {DeclarationKind.FUNCTION, DeclarationKind.GENERIC}:
        formals = declaration.formals
        if declaration.name and _INFIX.match(declaration.name) and len(formals) == 2:
            return f"{formals[0]} {declaration.name} {formals[1]}"
        return f"{declaration.name}({signature})"
    if declaration.kind is DeclarationKind.DATA:
        return declaration.name or ""
    return ""


def _block(lines: List[str], command: str, body: str) -> None:
    if not body:
        return
    lines.append(f"\\{command}{{")
    lines.append(body)
    lines.append("}")


def _escape(text: str) -> str:
    return _UNESCAPED_PERCENT.sub(r"\\%", text)


__all__ = ["GENERATED_HEADER", "RdRenderer", "render_topic", "topic_filename"]
