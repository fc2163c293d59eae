"""Turns parsed blocks into pre-merge topics."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import FrozenSet, List, Optional, Tuple

from ..errors import DiagnosticLog, ValidationError
from ..models import (
    Declaration,
    DeclarationKind,
    DocType,
    FieldValue,
    Param,
    ParsedBlock,
    Section,
    SentinelMarker,
    SourcePosition,
    Tag,
    Topic,
)
from ..parsing.tags import paragraphs, split_first_word, split_titled
from .doctypes import DOC_TYPE_RULES, FORMAT_SECTION, infer_doc_type, parse_doc_type

KNOWN_TAGS = frozenset(
    {
        "aliases",
        "author",
        "description",
        "details",
        "docType",
        "examples",
        "export",
        "family",
        "format",
        "include",
        "inheritParams",
        "keywords",
        "method",
        "name",
        "noRd",
        "note",
        "param",
        "rdname",
        "references",
        "return",
        "section",
        "seealso",
        "source",
        "subsection",
        "title",
        "usage",
        "value",
    }
)

# Tags whose content becomes a fixed-title section.
_SECTION_TAGS = {
    "format": FORMAT_SECTION,
    "source": "Source",
    "note": "Note",
    "author": "Author(s)",
}


@dataclass(frozen=True)
class IncludeDirective:
    """``@include target`` found in ``unit``: target must be collated first."""

    unit: str
    target: str
    position: SourcePosition


@dataclass
class BuildContext:
    """Project-wide facts the per-block builder needs."""

    package: Optional[str] = None
    local_generics: FrozenSet[str] = frozenset()
    strict: bool = False


@dataclass
class _SectionDraft:
    title: str
    body: str
    subsections: List[Section] = field(default_factory=list)

    def freeze(self) -> Section:
        return Section(title=self.title, body=self.body, subsections=tuple(self.subsections))


class TopicBuilder:
    """Builds one :class:`Topic` per parsed block."""

    def __init__(self, context: BuildContext | None = None) -> None:
        self.context = context or BuildContext()

    def build(self, parsed: ParsedBlock, log: DiagnosticLog) -> Optional[Topic]:
        """Return the block's topic, or ``None`` for directive-only blocks.

        Block-level problems raise :class:`ValidationError`; warnings are
        added to ``log``.
        """
        block = parsed.block
        if _is_directive_only(parsed):
            return None

        self._check_tags(parsed, log)

        declaration = block.declaration
        method_tag = parsed.first("method")
        if method_tag is not None:
            declaration = self._apply_method_tag(parsed, method_tag, declaration)

        doc_type = self._doc_type(parsed, declaration)
        borrows_doc_type = doc_type is None
        if doc_type is None:
            # Placeholder until the merge adopts the group's doc-type.
            doc_type = DocType.FUNCTION
        name = self._bound_name(parsed, declaration)
        if declaration.kind is DeclarationKind.SENTINEL:
            if doc_type is DocType.DATA:
                declaration = Declaration(
                    kind=DeclarationKind.DATA, name=name, position=declaration.position
                )
            else:
                declaration = replace(declaration, name=name)

        rdname = parsed.first("rdname")
        if rdname is not None:
            group = split_first_word(rdname.content)[0]
        elif doc_type is DocType.PACKAGE:
            group = package_topic_name(name)
        else:
            group = name
        if not group:
            raise ValidationError("@rdname needs a topic name", position=self._at(parsed, rdname))

        title, description, details = self._preamble_fields(parsed)
        export = parsed.has("export")
        export_names = tuple(_words(parsed.tags_named("export")))
        if export_names:
            declaration = replace(declaration, export_names=export_names)

        if (
            doc_type is DocType.METHOD
            and declaration.kind is DeclarationKind.METHOD
            and declaration.generic not in self.context.local_generics
            and not export
        ):
            log.warn(
                f"method for '{declaration.generic}' extends a generic defined outside "
                "this package; add @export to decide its visibility",
                position=block.position,
                key=declaration.topic_name,
            )

        keywords = _words(parsed.tags_named("keywords"))
        if not borrows_doc_type:
            for keyword in DOC_TYPE_RULES[doc_type].keywords:
                if keyword not in keywords:
                    keywords.append(keyword)

        return Topic(
            name=group,
            doc_type=doc_type,
            position=block.position,
            title=title,
            description=description,
            details=details,
            value=_joined_field(parsed.tags_named("return") + parsed.tags_named("value")),
            usage=tuple(tag.content for tag in parsed.tags_named("usage") if tag.content),
            params=self._params(parsed),
            sections=self._sections(parsed),
            examples=tuple(tag.content for tag in parsed.tags_named("examples") if tag.content),
            export=export,
            aliases=tuple(_words(parsed.tags_named("aliases"))),
            family=_first_content(parsed, "family"),
            references=tuple(tag.content for tag in parsed.tags_named("references") if tag.content),
            seealso=tuple(tag.content for tag in parsed.tags_named("seealso") if tag.content),
            keywords=tuple(keywords),
            declarations=(declaration,),
            inherit_params=tuple(_words(parsed.tags_named("inheritParams"))),
            no_rd=parsed.has("noRd"),
            borrows_doc_type=borrows_doc_type,
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _check_tags(self, parsed: ParsedBlock, log: DiagnosticLog) -> None:
        for tag in parsed.tags:
            if tag.name in KNOWN_TAGS:
                continue
            message = f"unknown tag @{tag.name}"
            position = self._at(parsed, tag)
            if self.context.strict:
                raise ValidationError(message, position=position, key=tag.name)
            log.warn(message, position=position, key=tag.name)

    def _apply_method_tag(
        self, parsed: ParsedBlock, tag: Tag, declaration: Declaration
    ) -> Declaration:
        parts = tag.content.split()
        if len(parts) != 2:
            raise ValidationError(
                "@method needs a generic and a class", position=self._at(parsed, tag), key="method"
            )
        return replace(declaration, generic=parts[0], s3_class=parts[1])

    def _doc_type(self, parsed: ParsedBlock, declaration: Declaration) -> Optional[DocType]:
        tag = parsed.first("docType")
        if tag is not None:
            try:
                return parse_doc_type(tag.content)
            except ValueError as exc:
                raise ValidationError(str(exc), position=self._at(parsed, tag), key=tag.content) from exc
        inferred = infer_doc_type(declaration, has_format=parsed.has("format"))
        if inferred is None and parsed.has("rdname"):
            return None
        if inferred is None:
            raise ValidationError(
                "block bound to NULL needs @docType (or @format for a dataset)",
                position=parsed.block.position,
            )
        return inferred

    def _bound_name(self, parsed: ParsedBlock, declaration: Declaration) -> str:
        tag = parsed.first("name")
        if tag is not None:
            name = split_first_word(tag.content)[0]
            if not name:
                raise ValidationError("@name needs a value", position=self._at(parsed, tag), key="name")
            return name
        if declaration.kind is DeclarationKind.SENTINEL:
            if declaration.marker is SentinelMarker.PACKAGE and self.context.package:
                return self.context.package
            rdname = parsed.first("rdname")
            if rdname is not None and split_first_word(rdname.content)[0]:
                return split_first_word(rdname.content)[0]
            raise ValidationError(
                "block bound to a sentinel statement needs @name",
                position=parsed.block.position,
            )
        name = declaration.topic_name
        if not name:
            raise ValidationError(
                "declaration has no name; add @name", position=parsed.block.position
            )
        return name

    def _preamble_fields(self, parsed: ParsedBlock) -> Tuple[FieldValue, FieldValue, FieldValue]:
        chunks = paragraphs(parsed.preamble)
        title = _joined_field(parsed.tags_named("title")) or FieldValue(chunks[0] if chunks else "")
        description = _joined_field(parsed.tags_named("description")) or FieldValue(
            chunks[1] if len(chunks) > 1 else ""
        )
        details = _joined_field(parsed.tags_named("details")) or FieldValue("\n\n".join(chunks[2:]))
        if not title and description:
            title = FieldValue(description.text, explicit=description.explicit)
        return title, description, details

    def _params(self, parsed: ParsedBlock) -> Tuple[Param, ...]:
        params: List[Param] = []
        seen = set()
        for tag in parsed.tags_named("param"):
            names, description = split_first_word(tag.content)
            if not names:
                raise ValidationError("@param needs an argument name", position=self._at(parsed, tag), key="param")
            for name in names.split(","):
                name = name.strip()
                if name and name not in seen:
                    seen.add(name)
                    params.append(Param(name=name, description=description))
        return tuple(params)

    def _sections(self, parsed: ParsedBlock) -> Tuple[Section, ...]:
        drafts: List[_SectionDraft] = []
        for tag in parsed.tags:
            if tag.name in _SECTION_TAGS:
                drafts.append(_SectionDraft(title=_SECTION_TAGS[tag.name], body=tag.content))
            elif tag.name in {"section", "subsection"}:
                title, body = split_titled(tag.content)
                if title is None:
                    raise ValidationError(
                        f"@{tag.name} needs a 'Title:' on its first line",
                        position=self._at(parsed, tag),
                        key=tag.name,
                    )
                if tag.name == "section":
                    drafts.append(_SectionDraft(title=title, body=body))
                elif not drafts:
                    raise ValidationError(
                        "@subsection must follow a @section",
                        position=self._at(parsed, tag),
                        key=tag.name,
                    )
                else:
                    drafts[-1].subsections.append(Section(title=title, body=body))
        return tuple(draft.freeze() for draft in drafts)

    @staticmethod
    def _at(parsed: ParsedBlock, tag: Optional[Tag]) -> SourcePosition:
        if tag is None:
            return parsed.block.position
        return replace(parsed.block.position, line=tag.line)


def package_topic_name(package: str) -> str:
    """Grouping identifier of a package's own topic."""
    return f"package-{package}"


def include_directives(parsed: ParsedBlock) -> List[IncludeDirective]:
    """Collation directives declared by ``@include`` tags in a block."""
    directives: List[IncludeDirective] = []
    for tag in parsed.tags_named("include"):
        position = replace(parsed.block.position, line=tag.line)
        for target in tag.content.split():
            directives.append(IncludeDirective(unit=parsed.block.unit, target=target, position=position))
    return directives


def _is_directive_only(parsed: ParsedBlock) -> bool:
    return (
        parsed.block.declaration.kind is DeclarationKind.SENTINEL
        and not parsed.preamble
        and bool(parsed.tags)
        and all(tag.name == "include" for tag in parsed.tags)
    )


def _joined_field(tags: List[Tag]) -> FieldValue:
    text = "\n\n".join(tag.content for tag in tags if tag.content)
    return FieldValue(text, explicit=True) if text else FieldValue()


def _first_content(parsed: ParsedBlock, name: str) -> Optional[str]:
    tag = parsed.first(name)
    if tag is None or not tag.content.strip():
        return None
    return " ".join(tag.content.split())


def _words(tags: List[Tag]) -> List[str]:
    words: List[str] = []
    for tag in tags:
        for word in tag.content.split():
            if word not in words:
                words.append(word)
    return words


__all__ = [
    "BuildContext",
    "IncludeDirective",
    "KNOWN_TAGS",
    "TopicBuilder",
    "include_directives",
    "package_topic_name",
]
