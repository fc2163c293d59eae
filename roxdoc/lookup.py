"""Query-time topic lookup over alias indexes."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .aliases import AliasIndex, attach_aliases, build_alias_index
from .config import PackageAliasPolicy
from .errors import AmbiguousQueryError, NotFoundError
from .logging import get_logger
from .models import Topic
from .render.rd import render_topic

logger = get_logger("lookup")

_COMBINATION = re.compile(r"^(?P<generic>[^()]+?)\s*\((?P<types>.*)\)$")


class Scope(str, Enum):
    SOURCE = "source"
    COMPILED = "compiled"


class QueryKind(str, Enum):
    PLAIN = "plain"
    QUALIFIED = "qualified"
    COMBINATION = "combination"


@dataclass(frozen=True)
class ParsedQuery:
    kind: QueryKind
    name: str
    namespace: Optional[str] = None
    types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RenderedTopic:
    topic: str
    text: str


@dataclass(frozen=True)
class NotFound:
    query: str


@dataclass(frozen=True)
class Ambiguous:
    query: str
    candidates: Tuple[str, ...]


LookupResult = Union[RenderedTopic, NotFound, Ambiguous]
TopicLoader = Callable[[], Sequence[Topic]]


def parse_query(query: str) -> ParsedQuery:
    """Classify a query as plain, ``ns?name`` or ``generic(types)``."""
    text = query.strip()
    namespace: Optional[str] = None
    if "?" in text:
        namespace, _, text = text.partition("?")
        namespace = namespace.strip() or None
        text = text.strip()

    match = _COMBINATION.match(text)
    if match and namespace in (None, "method"):
        types = tuple(
            part.strip().strip("\"'")
            for part in match.group("types").split(",")
            if part.strip()
        )
        return ParsedQuery(QueryKind.COMBINATION, match.group("generic").strip(), namespace, types)
    if namespace:
        return ParsedQuery(QueryKind.QUALIFIED, text, namespace)
    return ParsedQuery(QueryKind.PLAIN, text)


class LookupResolver:
    """Answers topic queries against per-scope alias tables.

    Tables are read-only once built; :meth:`refresh` replaces them wholesale.
    """

    def __init__(
        self,
        loaders: Mapping[Scope, TopicLoader],
        policy: PackageAliasPolicy = PackageAliasPolicy.SYMBOL_FIRST,
    ) -> None:
        self._loaders = dict(loaders)
        self._policy = policy
        self._indexes: Mapping[Scope, AliasIndex] = MappingProxyType({})
        self._lock = threading.Lock()

    @property
    def scopes(self) -> List[Scope]:
        return list(self._loaders)

    def refresh(self, scope: Optional[Scope] = None) -> None:
        """Rebuild one scope's table (or all of them) from its loader."""
        with self._lock:
            indexes: Dict[Scope, AliasIndex] = dict(self._indexes)
            scopes = [scope] if scope is not None else self.scopes
            for item in scopes:
                index = build_alias_index(self._loader(item)(), self._policy)
                topics = attach_aliases(index.topics.values(), index)
                indexes[item] = AliasIndex(
                    plain=index.plain,
                    qualified=index.qualified,
                    combinations=index.combinations,
                    topics={topic.name: topic for topic in topics},
                )
                logger.debug("Loaded %d topics for %s scope", len(topics), item.value)
            self._indexes = MappingProxyType(indexes)

    def index(self, scope: Scope = Scope.SOURCE) -> AliasIndex:
        index = self._indexes.get(scope)
        if index is None:
            self.refresh(scope)
            index = self._indexes[scope]
        return index

    def lookup(self, query: str, scope: Scope = Scope.SOURCE) -> LookupResult:
        """Return the rendered topic, or a :class:`NotFound` / :class:`Ambiguous` outcome."""
        if not query.strip():
            return NotFound(query)
        index = self.index(scope)
        parsed = parse_query(query)

        topic: Optional[str]
        if parsed.kind is QueryKind.PLAIN:
            topic = index.lookup_plain(parsed.name)
        elif parsed.kind is QueryKind.QUALIFIED:
            topic = index.lookup_qualified(parsed.namespace or "", parsed.name)
        else:
            candidates = index.match_combination(parsed.name, parsed.types)
            if len(candidates) > 1:
                return Ambiguous(query, tuple(candidates))
            topic = candidates[0] if candidates else None

        if topic is None:
            return NotFound(query)
        return RenderedTopic(topic=topic, text=render_topic(index.topics[topic]))

    def resolve(self, query: str, scope: Scope = Scope.SOURCE) -> RenderedTopic:
        """Like :meth:`lookup` but raises for query-time failures."""
        result = self.lookup(query, scope)
        if isinstance(result, NotFound):
            raise NotFoundError(query)
        if isinstance(result, Ambiguous):
            raise AmbiguousQueryError(query, result.candidates)
        return result

    def _loader(self, scope: Scope) -> TopicLoader:
        try:
            return self._loaders[scope]
        except KeyError as exc:
            raise ValueError(f"no topics configured for scope '{scope.value}'") from exc


__all__ = [
    "Ambiguous",
    "LookupResolver",
    "LookupResult",
    "NotFound",
    "ParsedQuery",
    "QueryKind",
    "RenderedTopic",
    "Scope",
    "parse_query",
]
