"""Source unit enumeration for a package tree."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from .config import RoxdocConfig
from .logging import get_logger
from .models import SourceUnit

logger = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents an exclude pattern from .roxdoc.yml."""

    pattern: str
    directory_only: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False
        if self.has_slash:
            return fnmatchcase(rel_path, self.pattern)
        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def _build_ignore_rule(pattern: str) -> IgnoreRule | None:
    pattern = pattern.strip().lstrip("/")
    if not pattern:
        return None
    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]
    return IgnoreRule(pattern=pattern, directory_only=directory_only, has_slash="/" in pattern)


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    return any(rule.matches(rel_path, is_dir) for rule in rules)


class SourceScanner:
    """Walks the configured source directory and yields source units."""

    def scan(self, config: RoxdocConfig) -> List[SourceUnit]:
        root = config.root
        source_dir = config.source_path
        if not source_dir.exists():
            raise FileNotFoundError(f"Source directory not found: {source_dir}")
        if not source_dir.is_dir():
            raise NotADirectoryError(f"Source path is not a directory: {source_dir}")

        rules = [rule for rule in map(_build_ignore_rule, config.exclude_paths) if rule]
        units: List[SourceUnit] = []
        for path in sorted(self._iter_files(root, source_dir, config.file_patterns, rules)):
            rel_path = path.relative_to(root).as_posix()
            text = path.read_text(encoding="utf-8")
            units.append(SourceUnit(path=rel_path, text=text))
        logger.debug("Scanner found %d source units under %s", len(units), source_dir)
        return units

    @staticmethod
    def _iter_files(
        root: Path,
        source_dir: Path,
        patterns: Sequence[str],
        rules: Sequence[IgnoreRule],
    ) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(source_dir):
            current = Path(dirpath)
            rel_dir = current.relative_to(root).as_posix()
            dirnames[:] = sorted(
                name for name in dirnames if not _should_ignore(f"{rel_dir}/{name}", True, rules)
            )
            for filename in filenames:
                if not any(fnmatchcase(filename, pattern) for pattern in patterns):
                    continue
                if _should_ignore(f"{rel_dir}/{filename}", False, rules):
                    continue
                yield current / filename


def fingerprint_units(units: Sequence[SourceUnit]) -> str:
    """Stable digest of unit paths and contents."""
    digest = hashlib.sha256()
    for unit in units:
        digest.update(unit.path.encode("utf-8"))
        digest.update(b"\0")
        digest.update(unit.text.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


__all__ = ["IgnoreRule", "SourceScanner", "fingerprint_units"]
