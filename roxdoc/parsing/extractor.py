"""Comment block extraction from source units."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence

from ..errors import Diagnostic, Severity
from ..logging import get_logger
from ..models import CommentLine, Declaration, RawBlock, SourcePosition, SourceUnit
from .declarations import DeclarationRecognizer, bracket_delta

DEFAULT_MARKER = "#'"

logger = get_logger("extractor")


class LineKind(str, Enum):
    MARKER = "marker"
    COMMENT = "comment"
    BLANK = "blank"
    CODE = "code"


@dataclass
class ExtractionResult:
    """Blocks, declarations and warnings found in one source unit."""

    unit: str
    blocks: List[RawBlock] = field(default_factory=list)
    declarations: List[Declaration] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


class BlockExtractor:
    """Groups marker comment runs and binds them to the declaration that follows."""

    def __init__(
        self,
        recognizer: DeclarationRecognizer | None = None,
        marker: str = DEFAULT_MARKER,
    ) -> None:
        self.recognizer = recognizer or DeclarationRecognizer()
        self.marker = marker

    def classify(self, line: str) -> LineKind:
        stripped = line.strip()
        if not stripped:
            return LineKind.BLANK
        if stripped.startswith(self.marker):
            return LineKind.MARKER
        if stripped.startswith("#"):
            return LineKind.COMMENT
        return LineKind.CODE

    def strip_marker(self, line: str) -> str:
        """Remove the marker and exactly one following space."""
        text = line.strip()[len(self.marker):]
        if text.startswith(" "):
            text = text[1:]
        return text.rstrip()

    def extract(self, unit: SourceUnit, rank: int = 0) -> ExtractionResult:
        result = ExtractionResult(unit=unit.path)
        lines = unit.text.splitlines()
        pending: List[CommentLine] = []
        depth = 0

        for index, line in enumerate(lines):
            kind = self.classify(line)
            if kind is LineKind.MARKER:
                pending.append(CommentLine(line=index + 1, text=self.strip_marker(line)))
                continue
            if kind is not LineKind.CODE:
                continue

            declaration: Optional[Declaration] = None
            if depth == 0:
                declaration = self._declaration_at(unit, lines, index)
            depth = max(0, depth + bracket_delta(line))

            if declaration is not None:
                declaration = replace(
                    declaration, position=SourcePosition(unit.path, index + 1, rank)
                )
                result.declarations.append(declaration)

            if pending:
                position = SourcePosition(unit.path, pending[0].line, rank)
                if declaration is not None:
                    result.blocks.append(
                        RawBlock(
                            unit=unit.path,
                            lines=tuple(pending),
                            declaration=declaration,
                            position=position,
                        )
                    )
                else:
                    self._discard(result, position, "is not followed by a recognised declaration")
                pending = []

        if pending:
            position = SourcePosition(unit.path, pending[0].line, rank)
            self._discard(result, position, "reaches the end of the file without a declaration")

        logger.debug("Extracted %d blocks from %s", len(result.blocks), unit.path)
        return result

    def _declaration_at(
        self, unit: SourceUnit, lines: Sequence[str], index: int
    ) -> Optional[Declaration]:
        supplied = unit.declarations.get(index + 1)
        if supplied is not None:
            return supplied
        return self.recognizer.recognize(lines, index)

    @staticmethod
    def _discard(result: ExtractionResult, position: SourcePosition, reason: str) -> None:
        result.diagnostics.append(
            Diagnostic(
                Severity.WARNING,
                f"documentation block {reason}; skipping",
                position=position,
            )
        )


__all__ = ["BlockExtractor", "DEFAULT_MARKER", "ExtractionResult", "LineKind"]
