"""Configuration loading for roxdoc (.roxdoc.yml)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".roxdoc.yml"

_PACKAGE_FIELD = re.compile(r"^Package:\s*(\S+)\s*$", re.MULTILINE)


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


class PackageAliasPolicy(str, Enum):
    """How a package topic's plain ``<name>`` key interacts with a symbol of that name."""

    SYMBOL_FIRST = "symbol-first"
    STRICT = "strict"


@dataclass
class RoxdocConfig:
    """Represents the settings defined in .roxdoc.yml."""

    root: Path
    package: Optional[str] = None
    source_dir: str = "R"
    output_dir: str = "man"
    namespace_file: str = "NAMESPACE"
    description_file: str = "DESCRIPTION"
    workers: int = 4
    strict: bool = False
    package_alias_policy: PackageAliasPolicy = PackageAliasPolicy.SYMBOL_FIRST
    file_patterns: List[str] = field(default_factory=lambda: ["*.R", "*.r"])
    exclude_paths: List[str] = field(default_factory=list)

    @property
    def source_path(self) -> Path:
        return self.root / self.source_dir

    @property
    def output_path(self) -> Path:
        return self.root / self.output_dir

    @property
    def state_path(self) -> Path:
        return self.root / ".roxdoc"


def load_config(config_path: Path) -> RoxdocConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = RoxdocConfig(root=root)
    config.package = _as_str(data.get("package"))
    config.source_dir = _as_str(data.get("source_dir")) or config.source_dir
    config.output_dir = _as_str(data.get("output_dir")) or config.output_dir
    config.namespace_file = _as_str(data.get("namespace_file")) or config.namespace_file
    config.description_file = _as_str(data.get("description_file")) or config.description_file

    workers = data.get("workers")
    if workers is not None:
        parsed = _as_int(workers)
        if parsed is None or parsed < 1:
            raise ConfigError("workers must be a positive integer")
        config.workers = parsed

    strict = data.get("strict")
    if strict is not None:
        parsed_bool = _as_bool(strict)
        if parsed_bool is None:
            raise ConfigError("strict must be a boolean")
        config.strict = parsed_bool

    policy = _as_str(data.get("package_alias_policy"))
    if policy is not None:
        try:
            config.package_alias_policy = PackageAliasPolicy(policy)
        except ValueError as exc:
            choices = ", ".join(item.value for item in PackageAliasPolicy)
            raise ConfigError(
                f"package_alias_policy must be one of: {choices}"
            ) from exc

    patterns = _as_str_list(data.get("file_patterns"))
    if patterns:
        config.file_patterns = patterns
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    if config.package is None:
        config.package = _package_from_description(root / config.description_file)

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _package_from_description(path: Path) -> Optional[str]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    match = _PACKAGE_FIELD.search(text)
    return match.group(1) if match else None


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "ConfigError", "PackageAliasPolicy", "RoxdocConfig", "load_config"]
