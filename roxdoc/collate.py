"""Collation order over source units."""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import CycleError, DiagnosticLog, ValidationError
from .models import DeclarationKind, SourcePosition, Topic
from .topics.builder import IncludeDirective

# Method registrations and sentinels do not define a symbol of their own.
_NON_SYMBOLS = frozenset({DeclarationKind.METHOD, DeclarationKind.SENTINEL})


@dataclass(frozen=True)
class CollationEdge:
    """``before`` must be processed before ``after``."""

    before: str
    after: str
    position: Optional[SourcePosition] = None


@dataclass
class CollationResult:
    units: List[str]
    symbols: List[str]
    has_directives: bool = False


class DependencyOrderer:
    """Builds a total order over units from explicit ordering directives."""

    def __init__(self, units: Sequence[str]) -> None:
        self.units = list(units)
        self._rank = {unit: index for index, unit in enumerate(self.units)}
        self._successors: Dict[str, List[str]] = {unit: [] for unit in self.units}
        self._by_basename: Dict[str, List[str]] = {}
        for unit in self.units:
            self._by_basename.setdefault(PurePosixPath(unit).name, []).append(unit)
        self.edges: List[CollationEdge] = []

    def add_edge(self, before: str, after: str, position: Optional[SourcePosition] = None) -> None:
        for unit in (before, after):
            if unit not in self._rank:
                raise ValidationError(f"unknown source unit '{unit}'", position=position, key=unit)
        if before == after or after in self._successors[before]:
            return
        self._successors[before].append(after)
        self._successors[before].sort(key=self._rank.__getitem__)
        self.edges.append(CollationEdge(before, after, position))

    def add_includes(self, directives: Iterable[IncludeDirective], log: DiagnosticLog) -> None:
        """Add an edge per ``@include``; unknown targets are reported, not fatal."""
        for directive in directives:
            target = self._resolve(directive.target)
            if target is None:
                log.error(
                    f"@include target '{directive.target}' is not a source unit",
                    position=directive.position,
                    key=directive.target,
                )
                continue
            self.add_edge(target, directive.unit, directive.position)

    def find_cycle(self) -> Optional[List[str]]:
        """Depth-first search with an explicit stack; returns the offending chain."""
        done: set = set()
        on_stack: Dict[str, int] = {}
        path: List[str] = []

        for start in self.units:
            if start in done:
                continue
            on_stack[start] = 0
            path.append(start)
            pending: List[Iterator[str]] = [iter(self._successors[start])]
            while pending:
                successor = next(pending[-1], None)
                if successor is None:
                    pending.pop()
                    unit = path.pop()
                    del on_stack[unit]
                    done.add(unit)
                elif successor in on_stack:
                    return path[on_stack[successor]:] + [successor]
                elif successor not in done:
                    on_stack[successor] = len(path)
                    path.append(successor)
                    pending.append(iter(self._successors[successor]))
        return None

    def order(self) -> List[str]:
        """Topological order, ties broken by original unit order."""
        chain = self.find_cycle()
        if chain:
            raise CycleError(chain)

        indegree = {unit: 0 for unit in self.units}
        for successors in self._successors.values():
            for successor in successors:
                indegree[successor] += 1

        ready: List[Tuple[int, str]] = [
            (self._rank[unit], unit) for unit in self.units if indegree[unit] == 0
        ]
        heapq.heapify(ready)
        ordered: List[str] = []
        while ready:
            _, unit = heapq.heappop(ready)
            ordered.append(unit)
            for successor in self._successors[unit]:
                indegree[successor] -= 1
                if indegree[successor] == 0:
                    heapq.heappush(ready, (self._rank[successor], successor))
        return ordered

    def _resolve(self, target: str) -> Optional[str]:
        if target in self._rank:
            return target
        matches = self._by_basename.get(PurePosixPath(target).name, [])
        return matches[0] if len(matches) == 1 else None


def order_symbols(unit_order: Sequence[str], topics: Iterable[Topic]) -> List[str]:
    """Exported symbol names ordered by their unit's collation position and line."""
    rank = {unit: index for index, unit in enumerate(unit_order)}
    located: List[Tuple[int, int, str]] = []
    seen = set()
    for topic in topics:
        if not topic.export:
            continue
        for declaration in topic.declarations:
            name = declaration.name
            if declaration.kind in _NON_SYMBOLS or declaration.position is None:
                continue
            if not name or name in seen:
                continue
            seen.add(name)
            position = declaration.position
            located.append((rank.get(position.unit, len(rank)), position.line, name))
    return [name for _, _, name in sorted(located)]


def collate(
    units: Sequence[str],
    directives: Sequence[IncludeDirective],
    topics: Iterable[Topic],
    log: DiagnosticLog,
) -> CollationResult:
    """Order units by their ``@include`` directives; raises :class:`CycleError`."""
    orderer = DependencyOrderer(units)
    orderer.add_includes(directives, log)
    unit_order = orderer.order()
    return CollationResult(
        units=unit_order,
        symbols=order_symbols(unit_order, topics),
        has_directives=bool(directives),
    )


__all__ = [
    "CollationEdge",
    "CollationResult",
    "DependencyOrderer",
    "collate",
    "order_symbols",
]
