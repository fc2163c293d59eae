"""Doc-type rules: inference from declarations and required fields per variant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..models import Declaration, DeclarationKind, DocType, SentinelMarker, Topic

FORMAT_SECTION = "Format"


@dataclass(frozen=True)
class DocTypeRule:
    """Field requirements and defaults for one doc-type."""

    doc_type: DocType
    required: Tuple[str, ...]
    keywords: Tuple[str, ...] = ()


DOC_TYPE_RULES: Dict[DocType, DocTypeRule] = {
    DocType.FUNCTION: DocTypeRule(DocType.FUNCTION, required=("title",)),
    DocType.METHOD: DocTypeRule(DocType.METHOD, required=("title",)),
    DocType.GENERIC: DocTypeRule(DocType.GENERIC, required=("title",)),
    DocType.CLASS: DocTypeRule(DocType.CLASS, required=("title",)),
    DocType.DATA: DocTypeRule(DocType.DATA, required=("title", "format"), keywords=("datasets",)),
    DocType.PACKAGE: DocTypeRule(DocType.PACKAGE, required=("title",)),
}

_FIELD_CHECKS: Dict[str, Callable[[Topic], bool]] = {
    "title": lambda topic: bool(topic.title),
    "format": lambda topic: any(section.title == FORMAT_SECTION for section in topic.sections),
}


def parse_doc_type(value: str) -> DocType:
    """Return the doc-type named by a ``@docType`` value."""
    try:
        return DocType(value.strip())
    except ValueError as exc:
        choices = ", ".join(item.value for item in DocType)
        raise ValueError(f"unknown doc-type '{value.strip()}' (expected one of: {choices})") from exc


def infer_doc_type(declaration: Declaration, *, has_format: bool = False) -> Optional[DocType]:
    """Infer a doc-type from the declaration kind; ``None`` when it cannot be inferred."""
    kind = declaration.kind
    if kind is DeclarationKind.SENTINEL:
        if declaration.marker is SentinelMarker.PACKAGE:
            return DocType.PACKAGE
        if has_format:
            return DocType.DATA
        return None
    return {
        DeclarationKind.FUNCTION: DocType.FUNCTION,
        DeclarationKind.METHOD: DocType.METHOD,
        DeclarationKind.GENERIC: DocType.GENERIC,
        DeclarationKind.CLASS: DocType.CLASS,
        DeclarationKind.DATA: DocType.DATA,
    }[kind]


def missing_fields(topic: Topic) -> List[str]:
    """Return the required fields the topic does not provide."""
    rule = DOC_TYPE_RULES[topic.doc_type]
    return [name for name in rule.required if not _FIELD_CHECKS[name](topic)]


__all__ = [
    "DOC_TYPE_RULES",
    "DocTypeRule",
    "FORMAT_SECTION",
    "infer_doc_type",
    "missing_fields",
    "parse_doc_type",
]
