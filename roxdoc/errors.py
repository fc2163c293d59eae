"""Error taxonomy and diagnostic records for roxdoc runs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from .models import SourcePosition


class RoxdocError(RuntimeError):
    """Base class for every error raised by the pipeline."""

    def __init__(
        self,
        message: str,
        *,
        position: Optional[SourcePosition] = None,
        key: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.position = position
        self.key = key

    def __str__(self) -> str:
        if self.position is not None:
            return f"{self.position}: {self.message}"
        return self.message


class ParseError(RoxdocError):
    """Raised when block text cannot be split into tags."""


class ValidationError(RoxdocError):
    """Raised when a block or topic violates doc-type rules."""


class CollisionError(RoxdocError):
    """Raised when two topics claim the same lookup key."""

    def __init__(self, namespace: str, key: str, topics: Sequence[str]) -> None:
        owners = ", ".join(topics)
        super().__init__(
            f"{namespace} key '{key}' is claimed by several topics: {owners}",
            key=key,
        )
        self.namespace = namespace
        self.topics = list(topics)


class CycleError(RoxdocError):
    """Raised when collation directives form a cycle."""

    def __init__(self, chain: Sequence[str]) -> None:
        super().__init__(f"collation cycle: {' -> '.join(chain)}", key=chain[0] if chain else None)
        self.chain = list(chain)


class AmbiguousQueryError(RoxdocError):
    """Raised by strict lookups when several topics match equally well."""

    def __init__(self, query: str, candidates: Sequence[str]) -> None:
        super().__init__(
            f"query '{query}' is ambiguous; candidates: {', '.join(candidates)}",
            key=query,
        )
        self.candidates = list(candidates)


class NotFoundError(RoxdocError):
    """Raised by strict lookups when nothing matches."""

    def __init__(self, query: str) -> None:
        super().__init__(f"no topic matches '{query}'", key=query)


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """A positioned warning or error collected during a run."""

    severity: Severity
    message: str
    position: Optional[SourcePosition] = None
    key: Optional[str] = None

    @classmethod
    def from_error(cls, exc: RoxdocError) -> "Diagnostic":
        return cls(Severity.ERROR, exc.message, position=exc.position, key=exc.key)

    def __str__(self) -> str:
        location = f"{self.position}: " if self.position is not None else ""
        return f"{location}{self.severity.value}: {self.message}"


class DiagnosticLog:
    """Accumulates diagnostics so a run can report them all at the end."""

    def __init__(self, items: Iterable[Diagnostic] = ()) -> None:
        self._items: List[Diagnostic] = list(items)

    def warn(
        self,
        message: str,
        *,
        position: Optional[SourcePosition] = None,
        key: Optional[str] = None,
    ) -> None:
        self._items.append(Diagnostic(Severity.WARNING, message, position=position, key=key))

    def error(
        self,
        message: str,
        *,
        position: Optional[SourcePosition] = None,
        key: Optional[str] = None,
    ) -> None:
        self._items.append(Diagnostic(Severity.ERROR, message, position=position, key=key))

    def record(self, exc: RoxdocError) -> None:
        self._items.append(Diagnostic.from_error(exc))

    def extend(self, other: Iterable[Diagnostic]) -> None:
        self._items.extend(other)

    @property
    def warnings(self) -> List[Diagnostic]:
        return [item for item in self._items if item.severity is Severity.WARNING]

    @property
    def errors(self) -> List[Diagnostic]:
        return [item for item in self._items if item.severity is Severity.ERROR]

    @property
    def has_errors(self) -> bool:
        return any(item.severity is Severity.ERROR for item in self._items)

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


class BuildError(RoxdocError):
    """Raised when a run finished with per-unit errors."""

    def __init__(self, diagnostics: Sequence[Diagnostic]) -> None:
        count = len(diagnostics)
        noun = "error" if count == 1 else "errors"
        super().__init__(f"documentation build failed with {count} {noun}")
        self.diagnostics = list(diagnostics)


__all__ = [
    "AmbiguousQueryError",
    "BuildError",
    "CollisionError",
    "CycleError",
    "Diagnostic",
    "DiagnosticLog",
    "NotFoundError",
    "ParseError",
    "RoxdocError",
    "Severity",
    "ValidationError",
]
