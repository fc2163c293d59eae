"""Lookup-key derivation for finalized topics.

Keys live in three independent namespaces:

``plain``
    ``arrange``, ``package-dplyr``: grouping identifiers, declaration names
    and explicit ``@aliases``.
``qualified``
    ``class?Person``, ``package?dplyr``: ``<doc-type>?<name>`` forms.
``combination``
    ``show(numeric,character)``: a generic plus an ordered type signature,
    synthesized for method topics.

A key claimed by two different topics within one namespace is a build
error; the index is never partially built.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import PackageAliasPolicy
from .errors import CollisionError
from .models import DeclarationKind, DocType, Topic

PLAIN = "plain"
QUALIFIED = "qualified"
COMBINATION = "combination"


@dataclass(frozen=True)
class AliasEntry:
    namespace: str
    key: str
    topic: str


@dataclass(frozen=True)
class CombinationKey:
    generic: str
    types: Tuple[str, ...]
    topic: str

    @property
    def key(self) -> str:
        return f"{self.generic}({','.join(self.types)})"


class AliasIndex:
    """Read-only mapping from lookup keys to topic names."""

    def __init__(
        self,
        plain: Mapping[str, str],
        qualified: Mapping[str, str],
        combinations: Mapping[str, Sequence[CombinationKey]],
        topics: Mapping[str, Topic],
    ) -> None:
        self.plain = MappingProxyType(dict(plain))
        self.qualified = MappingProxyType(dict(qualified))
        self.combinations = MappingProxyType(
            {generic: tuple(keys) for generic, keys in combinations.items()}
        )
        self.topics = MappingProxyType(dict(topics))

    def lookup_plain(self, name: str) -> Optional[str]:
        return self.plain.get(name)

    def lookup_qualified(self, kind: str, name: str) -> Optional[str]:
        return self.qualified.get(f"{kind}?{name}")

    def match_combination(self, generic: str, types: Sequence[str]) -> List[str]:
        """Return the topics matching a combination query at the best specificity.

        An exact signature match wins. Otherwise every key whose signature is a
        prefix of the query (or the query a prefix of it) competes, and the
        longest shared prefix wins. More than one result means ambiguity.
        """
        query = tuple(types)
        keys = self.combinations.get(generic, ())
        exact = [key.topic for key in keys if key.types == query]
        if exact:
            return _unique(exact)

        best = -1
        candidates: List[str] = []
        for key in keys:
            shared = _shared_prefix(key.types, query)
            if shared != min(len(key.types), len(query)):
                continue
            if shared == 0 and query:
                continue
            if shared > best:
                best = shared
                candidates = [key.topic]
            elif shared == best:
                candidates.append(key.topic)
        return _unique(candidates)

    def aliases_for(self, topic: str) -> Tuple[str, ...]:
        """Plain keys resolving to ``topic``, grouping identifier first."""
        keys = [key for key, owner in self.plain.items() if owner == topic]
        keys.sort(key=lambda key: (key != topic, key))
        return tuple(keys)

    def entries(self) -> List[AliasEntry]:
        entries = [AliasEntry(PLAIN, key, topic) for key, topic in self.plain.items()]
        entries.extend(AliasEntry(QUALIFIED, key, topic) for key, topic in self.qualified.items())
        for keys in self.combinations.values():
            entries.extend(AliasEntry(COMBINATION, key.key, key.topic) for key in keys)
        return sorted(entries, key=lambda entry: (entry.namespace, entry.key))

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        payload: Dict[str, Dict[str, str]] = {PLAIN: {}, QUALIFIED: {}, COMBINATION: {}}
        for entry in self.entries():
            payload[entry.namespace][entry.key] = entry.topic
        return payload


def build_alias_index(
    topics: Iterable[Topic],
    policy: PackageAliasPolicy = PackageAliasPolicy.SYMBOL_FIRST,
) -> AliasIndex:
    """Compute every lookup key for a finalized topic set."""
    topic_list = list(topics)
    plain: Dict[str, str] = {}
    qualified: Dict[str, str] = {}
    combination_owners: Dict[Tuple[str, Tuple[str, ...]], str] = {}
    combinations: Dict[str, List[CombinationKey]] = {}

    def claim(table: Dict[str, str], namespace: str, key: str, topic: str) -> None:
        owner = table.get(key)
        if owner is None:
            table[key] = topic
        elif owner != topic:
            raise CollisionError(namespace, key, [owner, topic])

    deferred: List[Tuple[str, Topic]] = []
    for topic in topic_list:
        claim(plain, PLAIN, topic.name, topic.name)
        if topic.doc_type is DocType.PACKAGE:
            package = _package_name(topic)
            deferred.append((package, topic))
            claim(plain, PLAIN, f"package-{package}", topic.name)
            claim(qualified, QUALIFIED, f"package?{package}", topic.name)

        for declaration in topic.declarations:
            if declaration.kind is DeclarationKind.SENTINEL:
                continue
            name = declaration.topic_name
            if name:
                claim(plain, PLAIN, name, topic.name)
                claim(qualified, QUALIFIED, f"{topic.doc_type.value}?{name}", topic.name)
            if (
                topic.doc_type is DocType.METHOD
                and declaration.kind is DeclarationKind.METHOD
                and declaration.generic
                and declaration.types
            ):
                signature = (declaration.generic, declaration.types)
                owner = combination_owners.get(signature)
                key = CombinationKey(declaration.generic, declaration.types, topic.name)
                if owner is None:
                    combination_owners[signature] = topic.name
                    combinations.setdefault(declaration.generic, []).append(key)
                elif owner != topic.name:
                    raise CollisionError(COMBINATION, key.key, [owner, topic.name])

        for alias in topic.aliases:
            claim(plain, PLAIN, alias, topic.name)
        claim(qualified, QUALIFIED, f"{topic.doc_type.value}?{topic.name}", topic.name)

    # Package topics get their bare name last so that a symbol of the same
    # name keeps it under the symbol-first policy.
    for package, topic in deferred:
        if policy is PackageAliasPolicy.STRICT or package not in plain:
            claim(plain, PLAIN, package, topic.name)

    return AliasIndex(
        plain=plain,
        qualified=qualified,
        combinations=combinations,
        topics={topic.name: topic for topic in topic_list},
    )


def attach_aliases(topics: Iterable[Topic], index: AliasIndex) -> List[Topic]:
    """Return topics whose alias set holds every plain key that resolves to them."""
    return [replace(topic, aliases=index.aliases_for(topic.name)) for topic in topics]


def _package_name(topic: Topic) -> str:
    for declaration in topic.declarations:
        if declaration.kind is DeclarationKind.SENTINEL and declaration.name:
            return declaration.name
    prefix = "package-"
    return topic.name[len(prefix):] if topic.name.startswith(prefix) else topic.name


def _shared_prefix(left: Sequence[str], right: Sequence[str]) -> int:
    count = 0
    for a, b in zip(left, right):
        if a != b:
            break
        count += 1
    return count


def _unique(items: Iterable[str]) -> List[str]:
    result: List[str] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


__all__ = [
    "AliasEntry",
    "AliasIndex",
    "COMBINATION",
    "CombinationKey",
    "PLAIN",
    "QUALIFIED",
    "attach_aliases",
    "build_alias_index",
]
