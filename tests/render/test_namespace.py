"""Export list tests."""

from __future__ import annotations

from roxdoc.models import Declaration, DeclarationKind, DocType, SourcePosition, Topic
from roxdoc.render import ExportEntry, export_entries, render_namespace
from roxdoc.errors import DiagnosticLog
from roxdoc.render.namespace import NAMESPACE_HEADER
from roxdoc.topics import MergeResolver, TopicBuilder

from tests._fixtures.package_builder import parse_blocks


def _topic(name: str, *declarations: Declaration, export: bool = True) -> Topic:
    return Topic(
        name=name,
        doc_type=DocType.FUNCTION,
        position=SourcePosition("R/a.R", 1),
        export=export,
        declarations=declarations,
    )


def test_entries_by_declaration_kind() -> None:
    topics = [
        _topic("arrange", Declaration(DeclarationKind.FUNCTION, name="arrange")),
        _topic(
            "print.tbl",
            Declaration(DeclarationKind.FUNCTION, name="print.tbl", generic="print", s3_class="tbl"),
        ),
        _topic("area", Declaration(DeclarationKind.GENERIC, name="area")),
        _topic(
            "area,Circle-method",
            Declaration(DeclarationKind.METHOD, name="area", generic="area", types=("Circle",)),
        ),
        _topic("Circle", Declaration(DeclarationKind.CLASS, name="Circle")),
        _topic("helper", Declaration(DeclarationKind.FUNCTION, name="helper"), export=False),
    ]
    rendered = [entry.render() for entry in export_entries(topics)]
    assert rendered == [
        "S3method(print,tbl)",
        "export(area)",
        "export(arrange)",
        "exportClasses(Circle)",
        "exportMethods(area)",
    ]


def test_explicit_export_names_replace_derived_entries() -> None:
    topic = _topic(
        "ops",
        Declaration(DeclarationKind.FUNCTION, name="ops_impl", export_names=("%>%", "pipe")),
    )
    entries = export_entries([topic])
    assert [entry.render() for entry in entries] == ['export("%>%")', "export(pipe)"]


def test_entries_are_unique_and_registration_flag() -> None:
    declaration = Declaration(DeclarationKind.FUNCTION, name="arrange")
    entries = export_entries([_topic("a", declaration), _topic("b", declaration)])
    assert entries == [ExportEntry("export", ("arrange",))]
    assert not entries[0].is_registration
    assert ExportEntry("S3method", ("print", "tbl")).is_registration


def test_render_namespace() -> None:
    text = render_namespace([ExportEntry("export", ("arrange",))])
    assert text == f"{NAMESPACE_HEADER}\nexport(arrange)\n"


def test_explicit_names_only_replace_their_own_block() -> None:
    blocks = parse_blocks(
        """
        #' Shared helpers
        #' @rdname shared
        #' @export
        alpha <- function() 1

        #' @rdname shared
        #' @export beta_alias
        beta <- function() 2
        """
    )
    builder = TopicBuilder()
    log = DiagnosticLog()
    (topic,) = MergeResolver().resolve([builder.build(block, log) for block in blocks])

    rendered = [entry.render() for entry in export_entries([topic])]
    assert rendered == ["export(alpha)", "export(beta_alias)"]
