"""Block extraction and declaration recognition tests."""

from __future__ import annotations

from roxdoc.errors import Severity
from roxdoc.models import Declaration, DeclarationKind, SentinelMarker
from roxdoc.parsing import BlockExtractor, DeclarationRecognizer
from roxdoc.parsing.extractor import LineKind

from tests._fixtures.package_builder import source_unit


def _extract(text: str):
    return BlockExtractor().extract(source_unit(text))


def test_classify_lines() -> None:
    extractor = BlockExtractor()
    assert extractor.classify("#' Title") is LineKind.MARKER
    assert extractor.classify("  #'") is LineKind.MARKER
    assert extractor.classify("# plain comment") is LineKind.COMMENT
    assert extractor.classify("   ") is LineKind.BLANK
    assert extractor.classify("x <- 1") is LineKind.CODE


def test_strip_marker_removes_one_space_only() -> None:
    extractor = BlockExtractor()
    assert extractor.strip_marker("#'   indented") == "  indented"
    assert extractor.strip_marker("#'") == ""


def test_block_binds_to_following_function() -> None:
    result = _extract(
        """
        #' Add numbers
        #'
        #' @param x first
        add <- function(x, y) x + y
        """
    )
    assert len(result.blocks) == 1
    block = result.blocks[0]
    assert [line.line for line in block.lines] == [1, 2, 3]
    assert block.position.line == 1
    assert block.declaration.kind is DeclarationKind.FUNCTION
    assert block.declaration.name == "add"
    assert block.declaration.signature == "x, y"
    assert block.declaration.position.line == 4
    assert not result.diagnostics


def test_blank_lines_and_plain_comments_do_not_detach_block() -> None:
    result = _extract(
        """
        #' Scale a vector

        # helper below
        scale2 <- function(x) x * 2
        """
    )
    assert [block.declaration.name for block in result.blocks] == ["scale2"]


def test_unattached_run_is_discarded_with_warning() -> None:
    result = _extract(
        """
        #' Orphaned text
        if (TRUE) message("hi")

        #' Trailing block
        """
    )
    assert result.blocks == []
    assert len(result.diagnostics) == 2
    assert all(item.severity is Severity.WARNING for item in result.diagnostics)
    assert result.diagnostics[0].position.line == 1
    assert "end of the file" in result.diagnostics[1].message


def test_declarations_inside_function_bodies_are_ignored() -> None:
    result = _extract(
        """
        outer <- function() {
          inner <- function(y) y
          inner(1)
        }
        after <- 2
        """
    )
    assert [item.name for item in result.declarations] == ["outer", "after"]


def test_sentinels_are_recognised() -> None:
    result = _extract(
        """
        #' @docType package
        "_PACKAGE"

        #' A dataset
        #' @name cars2
        #' @format A data frame.
        NULL
        """
    )
    markers = [block.declaration.marker for block in result.blocks]
    assert markers == [SentinelMarker.PACKAGE, SentinelMarker.NULL]


def test_s4_forms() -> None:
    result = _extract(
        """
        setGeneric("area", function(shape, ...) standardGeneric("area"))
        setClass("Circle", representation(r = "numeric"))
        setMethod("area", signature("Circle", "numeric"), function(shape, ...) {
          pi * shape@r^2
        })
        setMethod("show", "Circle", function(object) cat("circle"))
        """
    )
    kinds = [(item.kind, item.name) for item in result.declarations]
    assert kinds == [
        (DeclarationKind.GENERIC, "area"),
        (DeclarationKind.CLASS, "Circle"),
        (DeclarationKind.METHOD, "area"),
        (DeclarationKind.METHOD, "show"),
    ]
    method = result.declarations[2]
    assert method.types == ("Circle", "numeric")
    assert method.topic_name == "area,Circle,numeric-method"
    assert result.declarations[3].types == ("Circle",)


def test_assigned_s4_generators_are_not_data() -> None:
    result = _extract(
        """
        Person <- setClass("Person", representation(name = "character"))
        Account <- setRefClass("Account", fields = list(balance = "numeric"))
        describe <- setGeneric("describe", function(x) standardGeneric("describe"))
        """
    )
    kinds = [(item.kind, item.name) for item in result.declarations]
    assert kinds == [
        (DeclarationKind.CLASS, "Person"),
        (DeclarationKind.CLASS, "Account"),
        (DeclarationKind.GENERIC, "describe"),
    ]
    assert result.declarations[2].signature == "x"


def test_multiline_function_signature() -> None:
    recognizer = DeclarationRecognizer()
    lines = ["arrange <- function(df,", "                    ...) {", "  df", "}"]
    declaration = recognizer.recognize(lines, 0)
    assert declaration is not None
    assert declaration.signature == "df, ..."
    assert declaration.formals == ["df", "..."]


def test_s3_methods_use_longest_known_generic() -> None:
    recognizer = DeclarationRecognizer(s3_generics=["tidy"])
    frame = recognizer.recognize(["as.data.frame.tbl <- function(x, ...) x"], 0)
    assert frame.generic == "as.data.frame"
    assert frame.s3_class == "tbl"
    custom = recognizer.recognize(["tidy.model <- function(x) x"], 0)
    assert custom.is_s3_method
    plain = recognizer.recognize(["printer <- function(x) x"], 0)
    assert not plain.is_s3_method


def test_other_assignments_are_data() -> None:
    recognizer = DeclarationRecognizer()
    declaration = recognizer.recognize(["palette <- c('red', 'blue')"], 0)
    assert declaration.kind is DeclarationKind.DATA
    assert declaration.name == "palette"


def test_host_supplied_declarations_take_priority() -> None:
    unit = source_unit(
        """
        #' Host described
        make_thing()
        """
    )
    unit.declarations[2] = Declaration(kind=DeclarationKind.FUNCTION, name="thing", signature="a")
    result = BlockExtractor().extract(unit, rank=3)
    assert len(result.blocks) == 1
    declaration = result.blocks[0].declaration
    assert declaration.name == "thing"
    assert declaration.position.rank == 3
