"""Tests for roxdoc.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from roxdoc.config import ConfigError, PackageAliasPolicy, RoxdocConfig, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, RoxdocConfig)
    assert config.root == tmp_path.resolve()
    assert config.package is None
    assert config.source_dir == "R"
    assert config.output_dir == "man"
    assert config.namespace_file == "NAMESPACE"
    assert config.workers == 4
    assert config.strict is False
    assert config.package_alias_policy is PackageAliasPolicy.SYMBOL_FIRST
    assert config.file_patterns == ["*.R", "*.r"]
    assert config.exclude_paths == []
    assert config.source_path == tmp_path.resolve() / "R"
    assert config.state_path == tmp_path.resolve() / ".roxdoc"


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".roxdoc.yml"
    config_file.write_text(
        """
package: shapes
source_dir: src/R
output_dir: docs/man
workers: 2
strict: yes
package_alias_policy: strict
file_patterns: ["*.R"]
exclude_paths:
  - "R/legacy/"
  - "*_scratch.R"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.package == "shapes"
    assert config.source_dir == "src/R"
    assert config.output_path == tmp_path.resolve() / "docs/man"
    assert config.workers == 2
    assert config.strict is True
    assert config.package_alias_policy is PackageAliasPolicy.STRICT
    assert config.file_patterns == ["*.R"]
    assert config.exclude_paths == ["R/legacy/", "*_scratch.R"]


def test_package_name_falls_back_to_description(tmp_path: Path) -> None:
    (tmp_path / "DESCRIPTION").write_text("Package: tidyish\nVersion: 1.0\n", encoding="utf-8")
    assert load_config(tmp_path).package == "tidyish"


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".roxdoc.yml").write_text("\n", encoding="utf-8")
    assert load_config(tmp_path).workers == 4


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "workers: 0\n",
        "workers: many\n",
        "strict: sometimes\n",
        "package_alias_policy: loose\n",
        "package: [unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    (tmp_path / ".roxdoc.yml").write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)
