"""Merging of topics that share a grouping identifier, and topic finalisation."""

from __future__ import annotations

from dataclasses import replace
from functools import reduce
from typing import Dict, Iterable, List, Sequence, Tuple, TypeVar

from ..errors import DiagnosticLog, ValidationError
from ..logging import get_logger
from ..models import DocType, FieldValue, Param, Topic
from .doctypes import missing_fields

T = TypeVar("T")

logger = get_logger("merge")

_CALLABLE_TYPES = {DocType.FUNCTION, DocType.METHOD, DocType.GENERIC}


def merge_pair(left: Topic, right: Topic) -> Topic:
    """Merge two topics of one group; ``left`` precedes ``right`` in source order.

    The operation is associative, so folding a source-ordered group gives the
    same topic however the group is bracketed.
    """
    if left.borrows_doc_type:
        doc_type = right.doc_type
    elif right.borrows_doc_type or left.doc_type is right.doc_type:
        doc_type = left.doc_type
    else:
        raise ValidationError(
            f"topic '{left.name}' mixes doc-types {left.doc_type.value} "
            f"({left.position}) and {right.doc_type.value} ({right.position})",
            position=right.position,
            key=left.name,
        )
    return replace(
        left,
        doc_type=doc_type,
        borrows_doc_type=left.borrows_doc_type and right.borrows_doc_type,
        title=_merge_field(left.title, right.title),
        description=_merge_field(left.description, right.description),
        details=_merge_field(left.details, right.details),
        value=_merge_field(left.value, right.value),
        usage=left.usage + right.usage,
        params=_dedupe_params(left.params + right.params),
        sections=left.sections + right.sections,
        examples=left.examples + right.examples,
        export=left.export or right.export,
        aliases=_union(left.aliases, right.aliases),
        family=left.family or right.family,
        references=left.references + right.references,
        seealso=left.seealso + right.seealso,
        keywords=_union(left.keywords, right.keywords),
        declarations=left.declarations + right.declarations,
        inherit_params=_union(left.inherit_params, right.inherit_params),
        no_rd=left.no_rd or right.no_rd,
    )


class MergeResolver:
    """Groups pre-merge topics by grouping identifier and merges each group."""

    def resolve(self, topics: Iterable[Topic]) -> List[Topic]:
        groups: Dict[str, List[Topic]] = {}
        for topic in sorted(topics, key=lambda item: item.position.sort_key()):
            groups.setdefault(topic.name, []).append(topic)

        merged: List[Topic] = []
        for name, group in groups.items():
            if len(group) > 1:
                logger.debug("Merging %d blocks into topic %s", len(group), name)
            merged.append(reduce(merge_pair, group))
        return merged


def finalize_topics(topics: Sequence[Topic], log: DiagnosticLog) -> List[Topic]:
    """Resolve family links and inherited parameters, then validate required fields.

    Topics missing a required field are reported and left out of the result.
    """
    by_name = _plain_keys(topics)
    families: Dict[str, List[str]] = {}
    for topic in topics:
        if topic.family and not topic.no_rd:
            families.setdefault(topic.family, []).append(topic.name)

    finalized: List[Topic] = []
    for topic in topics:
        topic = _link_family(topic, families)
        topic = _inherit_params(topic, by_name, log)

        if topic.borrows_doc_type:
            log.error(
                f"topic '{topic.name}' only has blocks bound to NULL; add @docType "
                "(or @format for a dataset)",
                position=topic.position,
                key=topic.name,
            )
            continue

        if topic.no_rd:
            finalized.append(topic)
            continue

        missing = missing_fields(topic)
        if missing:
            log.error(
                f"{topic.doc_type.value} topic '{topic.name}' is missing required "
                f"field(s): {', '.join(missing)}",
                position=topic.position,
                key=topic.name,
            )
            continue

        undocumented = [name for name in _formals(topic) if topic.param(name) is None]
        if undocumented and topic.doc_type in _CALLABLE_TYPES:
            log.warn(
                f"topic '{topic.name}' has undocumented arguments: {', '.join(undocumented)}",
                position=topic.position,
                key=topic.name,
            )
        finalized.append(topic)
    return finalized


def _plain_keys(topics: Sequence[Topic]) -> Dict[str, Topic]:
    """Topics by grouping id, then by declaration name and explicit alias."""
    keys = {topic.name: topic for topic in topics}
    for topic in topics:
        names = [declaration.topic_name for declaration in topic.declarations]
        for name in names + list(topic.aliases):
            if name:
                keys.setdefault(name, topic)
    return keys


def _link_family(topic: Topic, families: Dict[str, List[str]]) -> Topic:
    if not topic.family or topic.no_rd:
        return topic
    others = sorted(name for name in families.get(topic.family, []) if name != topic.name)
    if not others:
        return topic
    links = ", ".join(f"\\code{{\\link{{{name}}}}}" for name in others)
    return replace(topic, seealso=topic.seealso + (f"Other {topic.family}: {links}",))


def _inherit_params(topic: Topic, by_name: Dict[str, Topic], log: DiagnosticLog) -> Topic:
    if not topic.inherit_params:
        return topic
    params = list(topic.params)
    for source_name in topic.inherit_params:
        source = by_name.get(source_name)
        if source is None:
            log.warn(
                f"@inheritParams source '{source_name}' is not a topic in this package",
                position=topic.position,
                key=source_name,
            )
            continue
        for name in _formals(topic):
            if any(param.name == name for param in params):
                continue
            inherited = source.param(name)
            if inherited is not None:
                params.append(inherited)
    return replace(topic, params=tuple(params))


def _formals(topic: Topic) -> List[str]:
    names: List[str] = []
    for declaration in topic.declarations:
        for name in declaration.formals:
            if name not in names:
                names.append(name)
    return names


def _merge_field(left: FieldValue, right: FieldValue) -> FieldValue:
    # Last explicit value wins, otherwise the first non-empty inferred one.
    if right.explicit:
        return right
    if left.explicit:
        return left
    return left if left else right


def _dedupe_params(params: Tuple[Param, ...]) -> Tuple[Param, ...]:
    seen = set()
    result: List[Param] = []
    for param in params:
        if param.name in seen:
            continue
        seen.add(param.name)
        result.append(param)
    return tuple(result)


def _union(left: Tuple[T, ...], right: Tuple[T, ...]) -> Tuple[T, ...]:
    result = list(left)
    for item in right:
        if item not in result:
            result.append(item)
    return tuple(result)


__all__ = ["MergeResolver", "finalize_topics", "merge_pair"]
