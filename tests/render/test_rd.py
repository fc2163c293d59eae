"""Rd renderer tests."""

from __future__ import annotations

import textwrap

from roxdoc.aliases import attach_aliases, build_alias_index
from roxdoc.errors import DiagnosticLog
from roxdoc.models import (
    Declaration,
    DeclarationKind,
    DocType,
    FieldValue,
    Section,
    SourcePosition,
    Topic,
)
from roxdoc.render import RdRenderer, render_topic, topic_filename
from roxdoc.topics import BuildContext, MergeResolver, TopicBuilder, finalize_topics

from tests._fixtures.package_builder import parse_blocks

ARRANGE_SOURCE = """
#' Arrange rows by column values
#'
#' Orders the rows of a data frame.
#'
#' @param df A data frame.
#' @param ... Variables to sort by; 50% of the time.
#' @return An object of the same type as `df`.
#' @examples
#' arrange(mtcars, cyl, disp)
#' arrange(mtcars, desc(disp))  # 100%
#' @export
arrange <- function(df, ...) {
  UseMethod("arrange")
}
"""

ARRANGE_RD = textwrap.dedent(
    """\
    % Generated by roxdoc: do not edit by hand
    % Please edit documentation in R/arrange.R
    \\name{arrange}
    \\title{Arrange rows by column values}
    \\description{
    Orders the rows of a data frame.
    }
    \\usage{
    arrange(df, ...)
    }
    \\arguments{
    \\item{df}{A data frame.}

    \\item{...}{Variables to sort by; 50\\% of the time.}
    }
    \\value{
    An object of the same type as `df`.
    }
    \\examples{
    arrange(mtcars, cyl, disp)
    arrange(mtcars, desc(disp))  # 100%
    }
    \\alias{arrange}
    """
)


def test_arrange_end_to_end() -> None:
    log = DiagnosticLog()
    builder = TopicBuilder(BuildContext(package="dplyr"))
    topics = [builder.build(parsed, log) for parsed in parse_blocks(ARRANGE_SOURCE, path="R/arrange.R")]
    finalized = finalize_topics(MergeResolver().resolve(topics), log)
    index = build_alias_index(finalized)
    (topic,) = attach_aliases(finalized, index)

    assert topic.aliases == ("arrange",)
    assert topic.export is True
    assert [param.name for param in topic.params] == ["df", "..."]
    assert not log.errors
    assert render_topic(topic) == ARRANGE_RD
    assert topic_filename(topic) == "arrange.Rd"


def test_rendering_is_deterministic() -> None:
    topic = Topic(
        name="x",
        doc_type=DocType.FUNCTION,
        position=SourcePosition("R/x.R", 1),
        title=FieldValue("X"),
    )
    assert render_topic(topic) == render_topic(topic)


def test_field_order_and_optional_blocks() -> None:
    declaration = Declaration(
        DeclarationKind.METHOD,
        name="area",
        generic="area",
        types=("Circle",),
        signature="shape, ...",
        position=SourcePosition("R/shapes.R", 12),
    )
    topic = Topic(
        name="area,Circle-method",
        doc_type=DocType.METHOD,
        position=SourcePosition("R/shapes.R", 10),
        title=FieldValue("Area of a circle"),
        details=FieldValue("Uses pi.\n\nExact for radius."),
        sections=(Section("Precision", "Double.", (Section("Rounding", "None."),)),),
        references=("Euclid.",),
        seealso=("\\code{\\link{area}}",),
        keywords=("internal",),
        aliases=("area,Circle-method", "circle_area"),
        declarations=(declaration,),
    )
    text = RdRenderer().render(topic)
    lines = text.splitlines()
    assert "\\S4method{area}{Circle}(shape, ...)" in lines
    order = [
        "\\name{area,Circle-method}",
        "\\title{Area of a circle}",
        "\\usage{",
        "\\details{",
        "\\section{Precision}{",
        "\\subsection{Rounding}{",
        "\\references{",
        "\\seealso{",
        "\\keyword{internal}",
        "\\alias{area,Circle-method}",
        "\\alias{circle_area}",
    ]
    positions = [lines.index(item) for item in order]
    assert positions == sorted(positions)
    assert "Uses pi.\n\nExact for radius." in text
    assert "\\description{" not in text
    assert "\\arguments{" not in text
    assert topic_filename(topic) == "area_Circle-method.Rd"


def test_s3_usage_and_explicit_usage() -> None:
    s3 = Declaration(
        DeclarationKind.FUNCTION, name="print.tbl", signature="x, ...", generic="print", s3_class="tbl"
    )
    topic = Topic(
        name="print.tbl",
        doc_type=DocType.FUNCTION,
        position=SourcePosition("R/print.R", 1),
        title=FieldValue("Print"),
        declarations=(s3,),
    )
    assert RdRenderer().usage(topic) == ["\\method{print}{tbl}(x, ...)"]
    explicit = Topic(
        name="print.tbl",
        doc_type=DocType.FUNCTION,
        position=SourcePosition("R/print.R", 1),
        usage=("print(x)",),
        declarations=(s3,),
    )
    assert RdRenderer().usage(explicit) == ["print(x)"]


def test_already_escaped_percent_is_left_alone() -> None:
    topic = Topic(
        name="pct",
        doc_type=DocType.FUNCTION,
        position=SourcePosition("R/pct.R", 1),
        title=FieldValue("Share in \\% and %"),
    )
    assert "\\title{Share in \\% and \\%}" in render_topic(topic)


def test_infix_operator_names_are_escaped() -> None:
    pipe = Declaration(DeclarationKind.FUNCTION, name="%>%", signature="lhs, rhs")
    topic = Topic(
        name="%>%",
        doc_type=DocType.FUNCTION,
        position=SourcePosition("R/ops.R", 1),
        title=FieldValue("Pipe"),
        aliases=("%>%",),
        declarations=(pipe,),
    )
    text = render_topic(topic)
    assert "\\name{\\%>\\%}" in text
    assert "\\alias{\\%>\\%}" in text
    assert "\\usage{\nlhs \\%>\\% rhs\n}" in text


def test_operator_filenames_stay_distinct() -> None:
    def filename(name: str) -> str:
        return topic_filename(Topic(name=name, doc_type=DocType.FUNCTION, position=SourcePosition("R/ops.R", 1)))

    assert filename("%>%") == "grapes-greater-than-grapes.Rd"
    assert filename("%<>%") == "grapes-less-than-greater-than-grapes.Rd"
    assert filename("[.tbl") == "open-bracket-.tbl.Rd"
    assert filename("area,Circle-method") == "area_Circle-method.Rd"
