"""Persistent store for compiled topics."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..models import (
    Declaration,
    DeclarationKind,
    DocType,
    FieldValue,
    Param,
    Section,
    SentinelMarker,
    SourcePosition,
    Topic,
)

_STORE_VERSION = 1


class TopicStore:
    """Stores finalized topics keyed by a fingerprint of the source tree."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._payload: Dict[str, Any] = {}
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    @property
    def fingerprint(self) -> Optional[str]:
        value = self._payload.get("fingerprint")
        return value if isinstance(value, str) else None

    @property
    def policy(self) -> Optional[str]:
        value = self._payload.get("policy")
        return value if isinstance(value, str) else None

    def topics(self) -> List[Topic]:
        raw_topics = self._payload.get("topics")
        if not isinstance(raw_topics, list):
            return []
        topics: List[Topic] = []
        for raw in raw_topics:
            topic = topic_from_dict(raw)
            if topic is not None:
                topics.append(topic)
        return topics

    def store(self, topics: Sequence[Topic], *, fingerprint: str, policy: str) -> None:
        self._payload = {
            "fingerprint": fingerprint,
            "policy": policy,
            "topics": [topic_to_dict(topic) for topic in topics],
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        payload = {"version": _STORE_VERSION, **self._payload}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        self._dirty = False

    def clear(self) -> None:
        self._payload = {}
        self._dirty = True

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            return
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            return
        self._payload = {key: value for key, value in data.items() if key != "version"}
        self._dirty = False


def topic_to_dict(topic: Topic) -> Dict[str, Any]:
    return {
        "name": topic.name,
        "doc_type": topic.doc_type.value,
        "position": _position_to_dict(topic.position),
        "title": _field_to_dict(topic.title),
        "description": _field_to_dict(topic.description),
        "details": _field_to_dict(topic.details),
        "value": _field_to_dict(topic.value),
        "usage": list(topic.usage),
        "params": [{"name": param.name, "description": param.description} for param in topic.params],
        "sections": [_section_to_dict(section) for section in topic.sections],
        "examples": list(topic.examples),
        "export": topic.export,
        "aliases": list(topic.aliases),
        "family": topic.family,
        "references": list(topic.references),
        "seealso": list(topic.seealso),
        "keywords": list(topic.keywords),
        "declarations": [_declaration_to_dict(item) for item in topic.declarations],
        "inherit_params": list(topic.inherit_params),
        "no_rd": topic.no_rd,
    }


def topic_from_dict(payload: object) -> Optional[Topic]:
    if not isinstance(payload, dict):
        return None
    try:
        position = _position_from_dict(payload["position"])
        declarations = tuple(_declaration_from_dict(item) for item in payload.get("declarations", []))
        return Topic(
            name=str(payload["name"]),
            doc_type=DocType(payload["doc_type"]),
            position=position,
            title=_field_from_dict(payload.get("title")),
            description=_field_from_dict(payload.get("description")),
            details=_field_from_dict(payload.get("details")),
            value=_field_from_dict(payload.get("value")),
            usage=_str_tuple(payload.get("usage")),
            params=tuple(
                Param(name=str(item["name"]), description=str(item.get("description", "")))
                for item in payload.get("params", [])
            ),
            sections=tuple(_section_from_dict(item) for item in payload.get("sections", [])),
            examples=_str_tuple(payload.get("examples")),
            export=bool(payload.get("export", False)),
            aliases=_str_tuple(payload.get("aliases")),
            family=payload.get("family") if isinstance(payload.get("family"), str) else None,
            references=_str_tuple(payload.get("references")),
            seealso=_str_tuple(payload.get("seealso")),
            keywords=_str_tuple(payload.get("keywords")),
            declarations=declarations,
            inherit_params=_str_tuple(payload.get("inherit_params")),
            no_rd=bool(payload.get("no_rd", False)),
        )
    except (KeyError, TypeError, ValueError):
        return None


def _position_to_dict(position: SourcePosition) -> Dict[str, Any]:
    return {"unit": position.unit, "line": position.line, "rank": position.rank}


def _position_from_dict(payload: Dict[str, Any]) -> SourcePosition:
    return SourcePosition(
        unit=str(payload["unit"]), line=int(payload["line"]), rank=int(payload.get("rank", 0))
    )


def _field_to_dict(value: FieldValue) -> Dict[str, Any]:
    return {"text": value.text, "explicit": value.explicit}


def _field_from_dict(payload: object) -> FieldValue:
    if not isinstance(payload, dict):
        return FieldValue()
    return FieldValue(text=str(payload.get("text", "")), explicit=bool(payload.get("explicit", False)))


def _section_to_dict(section: Section) -> Dict[str, Any]:
    return {
        "title": section.title,
        "body": section.body,
        "subsections": [_section_to_dict(item) for item in section.subsections],
    }


def _section_from_dict(payload: Dict[str, Any]) -> Section:
    return Section(
        title=str(payload["title"]),
        body=str(payload.get("body", "")),
        subsections=tuple(_section_from_dict(item) for item in payload.get("subsections", [])),
    )


def _declaration_to_dict(declaration: Declaration) -> Dict[str, Any]:
    return {
        "kind": declaration.kind.value,
        "name": declaration.name,
        "signature": declaration.signature,
        "types": list(declaration.types),
        "generic": declaration.generic,
        "marker": declaration.marker.value if declaration.marker else None,
        "s3_class": declaration.s3_class,
        "export_names": list(declaration.export_names),
        "position": _position_to_dict(declaration.position) if declaration.position else None,
    }


def _declaration_from_dict(payload: Dict[str, Any]) -> Declaration:
    marker = payload.get("marker")
    position = payload.get("position")
    return Declaration(
        kind=DeclarationKind(payload["kind"]),
        name=payload.get("name"),
        signature=payload.get("signature"),
        types=_str_tuple(payload.get("types")),
        generic=payload.get("generic"),
        marker=SentinelMarker(marker) if marker else None,
        s3_class=payload.get("s3_class"),
        export_names=_str_tuple(payload.get("export_names")),
        position=_position_from_dict(position) if isinstance(position, dict) else None,
    )


def _str_tuple(value: object) -> tuple:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value)


__all__ = ["TopicStore", "topic_from_dict", "topic_to_dict"]
