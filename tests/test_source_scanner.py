"""Tests for roxdoc.source_scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from roxdoc.config import load_config
from roxdoc.models import SourceUnit
from roxdoc.source_scanner import SourceScanner, fingerprint_units

from tests._fixtures.package_builder import PackageBuilder


def test_scan_lists_units_relative_to_root(package_builder: PackageBuilder) -> None:
    package_builder.write(
        {
            "R/b.R": "b <- 1\n",
            "R/a.R": "a <- 1\n",
            "R/sub/c.r": "c <- 1\n",
            "R/notes.txt": "not source\n",
            "R/legacy/old.R": "old <- 1\n",
            "R/tmp_scratch.R": "tmp <- 1\n",
            "tests/test-a.R": "outside <- 1\n",
            ".roxdoc.yml": 'exclude_paths: ["R/legacy/", "*_scratch.R"]\n',
        }
    )
    units = SourceScanner().scan(package_builder.config())

    assert [unit.path for unit in units] == ["R/a.R", "R/b.R", "R/sub/c.r"]
    assert units[0].text == "a <- 1\n"
    assert units[0].declarations == {}


def test_scan_rejects_missing_source_dir(package_builder: PackageBuilder) -> None:
    config = package_builder.config()
    with pytest.raises(FileNotFoundError) as excinfo:
        SourceScanner().scan(config)
    assert str(config.source_path) in str(excinfo.value)


def test_scan_rejects_file_as_source_dir(package_builder: PackageBuilder) -> None:
    package_builder.write({"R": "not a directory\n"})
    with pytest.raises(NotADirectoryError):
        SourceScanner().scan(package_builder.config())


def test_fingerprint_tracks_paths_and_contents() -> None:
    base = [SourceUnit("R/a.R", "a <- 1\n")]
    assert fingerprint_units(base) == fingerprint_units([SourceUnit("R/a.R", "a <- 1\n")])
    assert fingerprint_units(base) != fingerprint_units([SourceUnit("R/b.R", "a <- 1\n")])
    assert fingerprint_units(base) != fingerprint_units([SourceUnit("R/a.R", "a <- 2\n")])
    assert len(fingerprint_units([])) == 64


def test_scan_result_is_sorted(tmp_path: Path) -> None:
    root = tmp_path / "pkg"
    (root / "R").mkdir(parents=True)
    for name in ["zz.R", "aa.R", "mm.R"]:
        (root / "R" / name).write_text("x <- 1\n", encoding="utf-8")
    units = SourceScanner().scan(load_config(root))
    assert [unit.path for unit in units] == ["R/aa.R", "R/mm.R", "R/zz.R"]
