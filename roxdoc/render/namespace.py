"""Export list (NAMESPACE) derivation and rendering."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from ..models import DeclarationKind, Topic

NAMESPACE_HEADER = "# Generated by roxdoc: do not edit by hand"

_SYNTACTIC = re.compile(r"^(?:[A-Za-z]|\.(?![0-9]))[A-Za-z0-9._]*$")
_REGISTRATIONS = {"S3method", "exportMethods", "exportClasses"}


@dataclass(frozen=True, order=True)
class ExportEntry:
    """One export-list line, e.g. ``export(arrange)`` or ``S3method(print,tbl)``."""

    directive: str
    args: Tuple[str, ...]

    @property
    def is_registration(self) -> bool:
        """True for dispatch registrations rather than directly callable symbols."""
        return self.directive in _REGISTRATIONS

    def render(self) -> str:
        return f"{self.directive}({','.join(_quote(arg) for arg in self.args)})"


def export_entries(topics: Iterable[Topic]) -> List[ExportEntry]:
    """Derive the export list from exported topics, sorted and de-duplicated."""
    entries = set()
    for topic in topics:
        if not topic.export:
            continue
        for declaration in topic.declarations:
            if declaration.export_names:
                entries.update(ExportEntry("export", (name,)) for name in declaration.export_names)
            elif declaration.is_s3_method:
                entries.add(ExportEntry("S3method", (declaration.generic, declaration.s3_class)))
            elif declaration.kind is DeclarationKind.METHOD and declaration.generic:
                entries.add(ExportEntry("exportMethods", (declaration.generic,)))
            elif declaration.kind is DeclarationKind.CLASS and declaration.name:
                entries.add(ExportEntry("exportClasses", (declaration.name,)))
            elif declaration.kind in {
                DeclarationKind.FUNCTION,
                DeclarationKind.GENERIC,
                DeclarationKind.DATA,
            } and declaration.name:
                entries.add(ExportEntry("export", (declaration.name,)))
    return sorted(entries, key=lambda entry: entry.render())


def render_namespace(entries: Iterable[ExportEntry]) -> str:
    lines = [NAMESPACE_HEADER]
    lines.extend(entry.render() for entry in entries)
    return "\n".join(lines) + "\n"


def _quote(name: str) -> str:
    if _SYNTACTIC.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


__all__ = ["ExportEntry", "NAMESPACE_HEADER", "export_entries", "render_namespace"]
