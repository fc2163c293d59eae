"""Pipeline orchestration for build and lookup flows."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Sequence

from .aliases import AliasIndex, attach_aliases, build_alias_index
from .collate import CollationResult, collate
from .config import RoxdocConfig, load_config
from .errors import BuildError, Diagnostic, DiagnosticLog, ParseError, ValidationError
from .logging import get_logger, log_diagnostics
from .lookup import LookupResolver, Scope
from .models import DeclarationKind, ParsedBlock, SourceUnit, Topic
from .parsing import BlockExtractor, TagParser
from .render import export_entries, render_namespace, render_topic, topic_filename
from .source_scanner import SourceScanner, fingerprint_units
from .stores import TopicStore
from .topics import (
    BuildContext,
    IncludeDirective,
    MergeResolver,
    TopicBuilder,
    finalize_topics,
    include_directives,
)
from .writers import OutputWriter, update_collate_field

TOPIC_STORE_FILE = "topics.json"
ALIASES_FILE = "aliases.json"
COLLATE_FILE = "collate.json"


@dataclass
class _UnitParse:
    """Per-unit output of the extraction and tag parsing stage."""

    unit: str
    blocks: List[ParsedBlock] = field(default_factory=list)
    generics: List[str] = field(default_factory=list)
    log: DiagnosticLog = field(default_factory=DiagnosticLog)


@dataclass
class _UnitTopics:
    topics: List[Topic] = field(default_factory=list)
    directives: List[IncludeDirective] = field(default_factory=list)
    log: DiagnosticLog = field(default_factory=DiagnosticLog)


@dataclass
class CompileOutcome:
    """Everything the in-memory pipeline produced for one source tree."""

    config: RoxdocConfig
    units: List[SourceUnit]
    topics: List[Topic]
    index: AliasIndex
    collation: CollationResult
    log: DiagnosticLog

    @property
    def fingerprint(self) -> str:
        return fingerprint_units(self.units)


@dataclass
class BuildResult:
    """Result of a build run: what was compiled and which files changed."""

    outcome: CompileOutcome
    written: List[Path]
    removed: List[Path]
    dry_run: bool = False

    @property
    def topics(self) -> List[Topic]:
        return self.outcome.topics

    @property
    def warnings(self) -> List[Diagnostic]:
        return self.outcome.log.warnings


class Orchestrator:
    """Coordinates the documentation pipeline for a package tree."""

    def __init__(
        self,
        scanner: SourceScanner | None = None,
        extractor: BlockExtractor | None = None,
        tag_parser: TagParser | None = None,
        merge_resolver: MergeResolver | None = None,
    ) -> None:
        self.scanner = scanner or SourceScanner()
        self.extractor = extractor or BlockExtractor()
        self.tag_parser = tag_parser or TagParser()
        self.merge_resolver = merge_resolver or MergeResolver()
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Public entrypoints

    def run_build(self, path: str, *, dry_run: bool = False) -> BuildResult:
        """Compile the package at ``path`` and write every artifact.

        Fatal errors (doc-type conflicts, alias collisions, collation cycles)
        propagate immediately. Per-unit errors still let the remaining topics
        be written, after which :class:`BuildError` is raised.
        """
        config = self._load_config(path)
        self.logger.info("Starting build for %s", config.root)
        units = self.scanner.scan(config)
        outcome = self.compile_units(config, units)

        writer = OutputWriter(outcome.log, dry_run=dry_run)
        self._write_topics(config, outcome.topics, writer)
        self._write_namespace(config, outcome.topics, writer)
        self._write_collate(config, outcome.collation, writer)
        self._write_state(outcome, writer)

        log_diagnostics(self.logger, outcome.log)
        if outcome.log.has_errors:
            raise BuildError(outcome.log.errors)
        self.logger.info(
            "Built %d topics (%d files written, %d removed)",
            len(outcome.topics),
            len(writer.written),
            len(writer.removed),
        )
        return BuildResult(
            outcome=outcome, written=writer.written, removed=writer.removed, dry_run=dry_run
        )

    def compile(self, path: str) -> CompileOutcome:
        """Run the pipeline in memory without touching any artifact."""
        config = self._load_config(path)
        return self.compile_units(config, self.scanner.scan(config))

    def compile_units(self, config: RoxdocConfig, units: Sequence[SourceUnit]) -> CompileOutcome:
        log = DiagnosticLog()
        workers = max(1, config.workers)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            parses = list(pool.map(self._parse_unit, units, range(len(units))))
            generics = frozenset(name for item in parses for name in item.generics)
            context = BuildContext(
                package=config.package, local_generics=generics, strict=config.strict
            )
            built = list(pool.map(lambda item: self._build_unit(item, context), parses))

        topics: List[Topic] = []
        directives: List[IncludeDirective] = []
        for parse, unit_topics in zip(parses, built):
            log.extend(parse.log)
            log.extend(unit_topics.log)
            topics.extend(unit_topics.topics)
            directives.extend(unit_topics.directives)
        self.logger.debug("Built %d block topics from %d units", len(topics), len(units))

        merged = self.merge_resolver.resolve(topics)
        finalized = finalize_topics(merged, log)
        index = build_alias_index(finalized, config.package_alias_policy)
        finalized = attach_aliases(finalized, index)
        collation = collate([unit.path for unit in units], directives, finalized, log)

        return CompileOutcome(
            config=config,
            units=list(units),
            topics=finalized,
            index=index,
            collation=collation,
            log=log,
        )

    def resolver(self, path: str) -> LookupResolver:
        """Lookup resolver over the source tree and the last compiled topics."""
        config = self._load_config(path)

        def from_source() -> List[Topic]:
            outcome = self.compile_units(config, self.scanner.scan(config))
            log_diagnostics(self.logger, outcome.log)
            return outcome.topics

        def from_store() -> List[Topic]:
            return TopicStore(config.state_path / TOPIC_STORE_FILE).topics()

        return LookupResolver(
            {Scope.SOURCE: from_source, Scope.COMPILED: from_store},
            policy=config.package_alias_policy,
        )

    # ------------------------------------------------------------------
    # Per-unit stages

    def _parse_unit(self, unit: SourceUnit, rank: int) -> _UnitParse:
        extraction = self.extractor.extract(unit, rank)
        result = _UnitParse(unit=unit.path)
        result.log.extend(extraction.diagnostics)
        result.generics = [
            declaration.name
            for declaration in extraction.declarations
            if declaration.kind is DeclarationKind.GENERIC and declaration.name
        ]
        for block in extraction.blocks:
            try:
                result.blocks.append(self.tag_parser.parse(block))
            except ParseError as exc:
                result.log.record(exc)
        return result

    @staticmethod
    def _build_unit(parse: _UnitParse, context: BuildContext) -> _UnitTopics:
        builder = TopicBuilder(context)
        result = _UnitTopics()
        for parsed in parse.blocks:
            result.directives.extend(include_directives(parsed))
            try:
                topic = builder.build(parsed, result.log)
            except ValidationError as exc:
                result.log.record(exc)
                continue
            if topic is not None:
                result.topics.append(topic)
        return result

    # ------------------------------------------------------------------
    # Artifact writers

    def _write_topics(self, config: RoxdocConfig, topics: Sequence[Topic], writer: OutputWriter) -> None:
        filenames: Dict[str, str] = {}
        for topic in topics:
            if topic.no_rd:
                continue
            filename = topic_filename(topic)
            clash = filenames.get(filename)
            if clash is not None:
                writer.log.error(
                    f"topics '{clash}' and '{topic.name}' both render to {filename}",
                    position=topic.position,
                    key=filename,
                )
                continue
            filenames[filename] = topic.name
            writer.write(config.output_path / filename, render_topic(topic))
        writer.remove_stale(config.output_path, keep=filenames)

    def _write_namespace(self, config: RoxdocConfig, topics: Sequence[Topic], writer: OutputWriter) -> None:
        text = render_namespace(export_entries(topics))
        writer.write(config.root / config.namespace_file, text)

    def _write_collate(self, config: RoxdocConfig, collation: CollationResult, writer: OutputWriter) -> None:
        description = config.root / config.description_file
        if not collation.has_directives or not description.exists():
            return
        units = [_strip_source_dir(unit, config.source_dir) for unit in collation.units]
        updated = update_collate_field(description.read_text(encoding="utf-8"), units)
        writer.write(description, updated, owned=True)

    def _write_state(self, outcome: CompileOutcome, writer: OutputWriter) -> None:
        config = outcome.config
        state = config.state_path
        collation = {
            "units": outcome.collation.units,
            "symbols": outcome.collation.symbols,
        }
        writer.write(state / COLLATE_FILE, _json_text(collation), owned=True)
        writer.write(state / ALIASES_FILE, _json_text(outcome.index.to_dict()), owned=True)

        store = TopicStore(state / TOPIC_STORE_FILE)
        if store.fingerprint == outcome.fingerprint and store.policy == config.package_alias_policy.value:
            self.logger.debug("Topic store already matches the source tree")
            return
        store.store(
            outcome.topics,
            fingerprint=outcome.fingerprint,
            policy=config.package_alias_policy.value,
        )
        if not writer.dry_run:
            store.persist()

    # ------------------------------------------------------------------
    # Helpers

    def _load_config(self, path: str) -> RoxdocConfig:
        root = Path(path).expanduser().resolve()
        return load_config(root)


def _strip_source_dir(unit: str, source_dir: str) -> str:
    path = PurePosixPath(unit)
    prefix = PurePosixPath(source_dir)
    try:
        return path.relative_to(prefix).as_posix()
    except ValueError:
        return unit


def _json_text(payload: object) -> str:
    return json.dumps(payload, indent=2, sort_keys=True) + "\n"


__all__ = ["BuildResult", "CompileOutcome", "Orchestrator"]
