"""Collation order tests."""

from __future__ import annotations

import pytest

from roxdoc.collate import DependencyOrderer, collate, order_symbols
from roxdoc.errors import CycleError, DiagnosticLog, ValidationError
from roxdoc.models import Declaration, DeclarationKind, DocType, SourcePosition, Topic
from roxdoc.topics import IncludeDirective


def _include(unit: str, target: str) -> IncludeDirective:
    return IncludeDirective(unit=unit, target=target, position=SourcePosition(unit, 1))


def test_order_without_edges_keeps_source_order() -> None:
    orderer = DependencyOrderer(["R/a.R", "R/b.R", "R/c.R"])
    assert orderer.order() == ["R/a.R", "R/b.R", "R/c.R"]


def test_edges_are_respected_with_ties_in_source_order() -> None:
    orderer = DependencyOrderer(["R/a.R", "R/b.R", "R/c.R", "R/d.R"])
    orderer.add_edge("R/d.R", "R/a.R")
    assert orderer.order() == ["R/b.R", "R/c.R", "R/d.R", "R/a.R"]


def test_cycle_reports_full_chain() -> None:
    orderer = DependencyOrderer(["A", "B", "C"])
    orderer.add_edge("A", "B")
    orderer.add_edge("B", "C")
    orderer.add_edge("C", "A")
    assert orderer.find_cycle() == ["A", "B", "C", "A"]
    with pytest.raises(CycleError) as excinfo:
        orderer.order()
    assert excinfo.value.chain == ["A", "B", "C", "A"]
    assert "A -> B -> C -> A" in str(excinfo.value)


def test_long_include_chains_do_not_exhaust_the_stack() -> None:
    units = [f"R/u{index:05d}.R" for index in range(5000)]
    orderer = DependencyOrderer(units)
    for before, after in zip(units[1:], units):
        orderer.add_edge(before, after)
    assert orderer.order() == units[::-1]

    orderer.add_edge(units[0], units[-1])
    chain = orderer.find_cycle()
    assert chain is not None
    assert chain[0] == chain[-1] == units[0]
    assert len(chain) == len(units) + 1


def test_unknown_edge_unit_is_invalid() -> None:
    orderer = DependencyOrderer(["R/a.R"])
    with pytest.raises(ValidationError):
        orderer.add_edge("R/a.R", "R/zzz.R")


def test_includes_resolve_by_path_or_basename() -> None:
    log = DiagnosticLog()
    result = collate(
        ["R/a.R", "R/b.R", "R/utils.R"],
        [_include("R/a.R", "utils.R"), _include("R/a.R", "R/b.R"), _include("R/b.R", "nowhere.R")],
        [],
        log,
    )
    assert result.units == ["R/b.R", "R/utils.R", "R/a.R"]
    assert result.has_directives is True
    assert [item.key for item in log.errors] == ["nowhere.R"]


def test_include_cycle_is_fatal() -> None:
    with pytest.raises(CycleError):
        collate(
            ["R/a.R", "R/b.R"],
            [_include("R/a.R", "b.R"), _include("R/b.R", "a.R")],
            [],
            DiagnosticLog(),
        )


def test_exported_symbols_follow_collation_order() -> None:
    def topic(name: str, unit: str, line: int, export: bool = True) -> Topic:
        return Topic(
            name=name,
            doc_type=DocType.FUNCTION,
            position=SourcePosition(unit, line),
            export=export,
            declarations=(
                Declaration(DeclarationKind.FUNCTION, name=name, position=SourcePosition(unit, line)),
            ),
        )

    topics = [
        topic("alpha", "R/a.R", 5),
        topic("beta", "R/b.R", 1),
        topic("gamma", "R/a.R", 2),
        topic("hidden", "R/b.R", 9, export=False),
    ]
    assert order_symbols(["R/b.R", "R/a.R"], topics) == ["beta", "gamma", "alpha"]
