"""Writing generated artifacts without clobbering hand-written files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence

from .errors import DiagnosticLog
from .logging import get_logger

GENERATED_MARKER = "Generated by roxdoc"

logger = get_logger("writers")


def is_generated(path: Path) -> bool:
    """True when the file's first line carries the roxdoc header."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            first = handle.readline()
    except FileNotFoundError:
        return False
    return GENERATED_MARKER in first


class OutputWriter:
    """Writes artifacts only when they changed and only over files roxdoc owns."""

    def __init__(self, log: DiagnosticLog, *, dry_run: bool = False) -> None:
        self.log = log
        self.dry_run = dry_run
        self.written: List[Path] = []
        self.removed: List[Path] = []

    def write(self, path: Path, text: str, *, owned: bool = False) -> bool:
        """Write ``text`` to ``path``; ``owned`` skips the generated-header check."""
        if path.exists():
            if not owned and not is_generated(path):
                self.log.warn(f"{path.name} was not generated by roxdoc; leaving it untouched", key=str(path))
                return False
            if path.read_text(encoding="utf-8") == text:
                return False
        if not self.dry_run:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        logger.debug("Writing %s", path)
        self.written.append(path)
        return True

    def remove_stale(self, directory: Path, keep: Iterable[str], suffix: str = ".Rd") -> List[Path]:
        """Delete generated files in ``directory`` that this run did not produce."""
        if not directory.is_dir():
            return []
        keep_set = set(keep)
        removed: List[Path] = []
        for path in sorted(directory.glob(f"*{suffix}")):
            if path.name in keep_set or not is_generated(path):
                continue
            if not self.dry_run:
                path.unlink()
            logger.debug("Removing stale %s", path)
            removed.append(path)
        self.removed.extend(removed)
        return removed


def update_collate_field(description: str, units: Sequence[str]) -> str:
    """Return DESCRIPTION text with its ``Collate:`` field replaced by ``units``."""
    kept: List[str] = []
    skipping = False
    for line in description.splitlines():
        if skipping and line[:1] in {" ", "\t"}:
            continue
        skipping = line.startswith("Collate:")
        if not skipping:
            kept.append(line)
    while kept and not kept[-1].strip():
        kept.pop()
    kept.append("Collate:")
    kept.extend(f"    '{unit}'" for unit in units)
    return "\n".join(kept) + "\n"


__all__ = ["GENERATED_MARKER", "OutputWriter", "is_generated", "update_collate_field"]
