"""Core data models shared across roxdoc components."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

_FORMAL_SPLIT = re.compile(r",(?![^()]*\))")


class DeclarationKind(str, Enum):
    """Kinds of source declarations a comment block can attach to."""

    FUNCTION = "function"
    METHOD = "method"
    GENERIC = "generic"
    CLASS = "class"
    DATA = "data"
    SENTINEL = "sentinel"


class SentinelMarker(str, Enum):
    """Statements that stand in for a declaration (``NULL`` and ``"_PACKAGE"``)."""

    NULL = "null"
    PACKAGE = "package"


class DocType(str, Enum):
    """Closed set of topic shapes."""

    FUNCTION = "function"
    METHOD = "method"
    GENERIC = "generic"
    CLASS = "class"
    DATA = "data"
    PACKAGE = "package"


@dataclass(frozen=True)
class SourcePosition:
    """Location of a line inside one source unit.

    ``rank`` is the unit's index in enumeration order, so comparing
    ``sort_key()`` values gives source order across the whole input.
    """

    unit: str
    line: int
    rank: int = 0

    def sort_key(self) -> Tuple[int, int]:
        return (self.rank, self.line)

    def __str__(self) -> str:
        return f"{self.unit}:{self.line}"


@dataclass(frozen=True)
class Declaration:
    """Metadata for one declaration as supplied by the host or the recogniser.

    ``export_names`` holds the names given to the documenting block's
    ``@export`` tag; they replace this declaration's own export entry.
    """

    kind: DeclarationKind
    name: Optional[str] = None
    signature: Optional[str] = None
    types: Tuple[str, ...] = ()
    generic: Optional[str] = None
    marker: Optional[SentinelMarker] = None
    s3_class: Optional[str] = None
    position: Optional[SourcePosition] = None
    export_names: Tuple[str, ...] = ()

    @property
    def topic_name(self) -> Optional[str]:
        """Name used as the default grouping identifier for this declaration."""
        if self.kind is DeclarationKind.METHOD and self.generic:
            return f"{self.generic},{','.join(self.types)}-method"
        return self.name

    @property
    def formals(self) -> List[str]:
        """Formal argument names parsed from the signature text."""
        if not self.signature:
            return []
        names: List[str] = []
        for part in _FORMAL_SPLIT.split(self.signature):
            name = part.split("=", 1)[0].strip()
            if name:
                names.append(name)
        return names

    @property
    def is_s3_method(self) -> bool:
        return self.kind is DeclarationKind.FUNCTION and self.s3_class is not None


@dataclass(frozen=True)
class CommentLine:
    """One marker comment line with the marker and a single space removed."""

    line: int
    text: str


@dataclass(frozen=True)
class RawBlock:
    """A run of marker comments and the declaration it documents."""

    unit: str
    lines: Tuple[CommentLine, ...]
    declaration: Declaration
    position: SourcePosition


@dataclass(frozen=True)
class Tag:
    """A named content span inside a block."""

    name: str
    content: str
    line: int


@dataclass(frozen=True)
class ParsedBlock:
    """A raw block split into its preamble and ordered tags."""

    block: RawBlock
    preamble: str
    tags: Tuple[Tag, ...]

    def tags_named(self, name: str) -> List[Tag]:
        return [tag for tag in self.tags if tag.name == name]

    def first(self, name: str) -> Optional[Tag]:
        for tag in self.tags:
            if tag.name == name:
                return tag
        return None

    def has(self, name: str) -> bool:
        return self.first(name) is not None


@dataclass(frozen=True)
class FieldValue:
    """Text of a title/description/details/value field and where it came from."""

    text: str = ""
    explicit: bool = False

    def __bool__(self) -> bool:
        return bool(self.text)


@dataclass(frozen=True)
class Param:
    name: str
    description: str


@dataclass(frozen=True)
class Section:
    """A free-form section; bodies may hold nested subsections."""

    title: str
    body: str
    subsections: Tuple["Section", ...] = ()


@dataclass(frozen=True)
class Topic:
    """One documentation unit, possibly covering several declarations.

    ``borrows_doc_type`` marks a block that names no doc-type of its own and
    takes the one of the topic it is merged into.
    """

    name: str
    doc_type: DocType
    position: SourcePosition
    title: FieldValue = FieldValue()
    description: FieldValue = FieldValue()
    details: FieldValue = FieldValue()
    value: FieldValue = FieldValue()
    usage: Tuple[str, ...] = ()
    params: Tuple[Param, ...] = ()
    sections: Tuple[Section, ...] = ()
    examples: Tuple[str, ...] = ()
    export: bool = False
    aliases: Tuple[str, ...] = ()
    family: Optional[str] = None
    references: Tuple[str, ...] = ()
    seealso: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    declarations: Tuple[Declaration, ...] = ()
    inherit_params: Tuple[str, ...] = ()
    no_rd: bool = False
    borrows_doc_type: bool = False

    @property
    def source_units(self) -> List[str]:
        """Units that contributed to this topic, in source order."""
        units: List[str] = []
        for declaration in self.declarations:
            if declaration.position and declaration.position.unit not in units:
                units.append(declaration.position.unit)
        if not units:
            units.append(self.position.unit)
        return units

    def param(self, name: str) -> Optional[Param]:
        for param in self.params:
            if param.name == name:
                return param
        return None


@dataclass
class SourceUnit:
    """One source file handed to the pipeline.

    ``declarations`` maps 1-based line numbers to host-supplied declaration
    metadata; lines missing from the mapping fall back to the built-in
    recogniser.
    """

    path: str
    text: str
    declarations: Dict[int, Declaration] = field(default_factory=dict)
