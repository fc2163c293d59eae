"""Regex recogniser for R declaration starts.

Hosts with real reflection can hand declarations to the extractor directly
(see :class:`roxdoc.models.SourceUnit`); this recogniser covers the common
top-level forms when nothing better is available:

* ``name <- function(args)`` and ``name = function(args)``
* ``setGeneric("name", ...)``
* ``setMethod("generic", signature("a", "b"), ...)``
* ``setClass("Name", ...)`` and ``setRefClass("Name", ...)``, also when assigned
* ``name <- <anything else>`` (data)
* the ``NULL`` and ``"_PACKAGE"`` sentinels
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from ..models import Declaration, DeclarationKind, SentinelMarker

_NAME = r"(?:`[^`]+`|[A-Za-z.][\w.]*)"
_ASSIGN = re.compile(rf"^\s*({_NAME})\s*(?:<<-|<-|=)\s*(.*)$", re.DOTALL)
_FUNCTION_START = re.compile(r"\bfunction\s*\(")
_CALL = re.compile(r"^\s*(setGeneric|setMethod|setClass|setRefClass)\s*\(", re.DOTALL)
_FIRST_STRING = re.compile(r"""^\s*["']([^"']+)["']\s*,?\s*(.*)$""", re.DOTALL)
_QUOTED = re.compile(r"""["']([^"']+)["']""")
_PACKAGE_SENTINELS = {'"_PACKAGE"', "'_PACKAGE'"}
_MAX_STATEMENT_LINES = 200

# Base generics whose ``generic.class`` functions are treated as S3 methods.
S3_GENERICS = frozenset(
    {
        "all.equal",
        "anyNA",
        "as.character",
        "as.data.frame",
        "as.list",
        "as.vector",
        "c",
        "dim",
        "format",
        "head",
        "length",
        "levels",
        "mean",
        "merge",
        "plot",
        "predict",
        "print",
        "rev",
        "sort",
        "split",
        "subset",
        "summary",
        "tail",
        "toString",
        "unique",
        "update",
    }
)


class DeclarationRecognizer:
    """Recognises a declaration starting at a given line."""

    def __init__(self, s3_generics: Sequence[str] = ()) -> None:
        generics = set(S3_GENERICS) | set(s3_generics)
        # Longest first so ``as.data.frame.foo`` is not read as ``as.data`` + ``frame.foo``.
        self._s3_generics = sorted(generics, key=len, reverse=True)

    def recognize(self, lines: Sequence[str], index: int) -> Optional[Declaration]:
        stripped = lines[index].strip()
        if stripped == "NULL":
            return Declaration(kind=DeclarationKind.SENTINEL, marker=SentinelMarker.NULL)
        if stripped in _PACKAGE_SENTINELS:
            return Declaration(kind=DeclarationKind.SENTINEL, marker=SentinelMarker.PACKAGE)

        statement = statement_text(lines, index)
        call = _CALL.match(statement)
        if call:
            return self._recognize_call(call.group(1), statement[call.end():])

        assign = _ASSIGN.match(statement)
        if assign:
            name = assign.group(1).strip("`")
            rhs = assign.group(2)
            if re.match(r"\s*function\s*\(", rhs):
                return self._function(name, rhs)
            # ``Person <- setClass("Person", ...)`` keeps the generator object.
            call = _CALL.match(rhs)
            if call:
                declaration = self._recognize_call(call.group(1), rhs[call.end():])
                if declaration is not None:
                    return declaration
            return Declaration(kind=DeclarationKind.DATA, name=name)
        return None

    def _recognize_call(self, call: str, args: str) -> Optional[Declaration]:
        first = _FIRST_STRING.match(args)
        if not first:
            return None
        name, rest = first.group(1), first.group(2)
        if call == "setGeneric":
            return Declaration(
                kind=DeclarationKind.GENERIC, name=name, signature=_formals(rest)
            )
        if call == "setMethod":
            types = _method_types(rest)
            return Declaration(
                kind=DeclarationKind.METHOD,
                name=name,
                generic=name,
                types=types,
                signature=_formals(rest),
            )
        return Declaration(kind=DeclarationKind.CLASS, name=name)

    def _function(self, name: str, rhs: str) -> Declaration:
        signature = _formals(rhs)
        for generic in self._s3_generics:
            prefix = f"{generic}."
            if name.startswith(prefix) and len(name) > len(prefix):
                return Declaration(
                    kind=DeclarationKind.FUNCTION,
                    name=name,
                    signature=signature,
                    generic=generic,
                    s3_class=name[len(prefix):],
                )
        return Declaration(kind=DeclarationKind.FUNCTION, name=name, signature=signature)


def statement_text(lines: Sequence[str], index: int) -> str:
    """Join lines from ``index`` until parentheses balance."""
    collected: List[str] = []
    depth = 0
    for line in lines[index:index + _MAX_STATEMENT_LINES]:
        collected.append(line)
        depth += _paren_delta(line)
        if depth <= 0:
            break
    return "\n".join(collected)


def _paren_delta(line: str) -> int:
    return bracket_delta(line, "(", ")")


def bracket_delta(line: str, opening: str = "({[", closing: str = ")}]") -> int:
    """Net bracket depth change over one line, skipping strings and comments."""
    depth = 0
    quote: Optional[str] = None
    escaped = False
    for char in line:
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char == "#":
            break
        if char in {'"', "'", "`"}:
            quote = char
        elif char in opening:
            depth += 1
        elif char in closing:
            depth -= 1
    return depth


def _balanced(text: str, open_index: int) -> Tuple[str, int]:
    """Return the text inside the parenthesis opening at ``open_index``."""
    depth = 0
    for position in range(open_index, len(text)):
        char = text[position]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return text[open_index + 1:position], position
    return text[open_index + 1:], len(text)


def _formals(text: str) -> Optional[str]:
    match = _FUNCTION_START.search(text)
    if not match:
        return None
    inner, _ = _balanced(text, match.end() - 1)
    return " ".join(inner.split())


def _method_types(rest: str) -> Tuple[str, ...]:
    stripped = rest.lstrip()
    call = re.match(r"(signature|c)\s*\(", stripped)
    if call:
        inner, _ = _balanced(stripped, call.end() - 1)
        return tuple(_QUOTED.findall(inner))
    single = re.match(r"""["']([^"']+)["']""", stripped)
    if single:
        return (single.group(1),)
    return ()


__all__ = ["DeclarationRecognizer", "S3_GENERICS", "bracket_delta", "statement_text"]
