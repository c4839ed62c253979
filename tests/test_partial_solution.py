from __future__ import annotations

import pytest

from pubgrublib import Incompatibility, Range, Term
from pubgrublib.derivation import NoVersions
from pubgrublib.incompatibilities import Relation
from pubgrublib.partial_solution import PartialSolution


def pos(version_set):
    return Term(True, version_set)


def neg(version_set):
    return Term(False, version_set)


@pytest.fixture()
def solution():
    """A solution with two decision levels.

    root is decided at level 1, a at level 2; b is required but undecided.
    """
    solution = PartialSolution(Range)
    solution.add_derivation("root", pos(Range.singleton(1)), 0)
    solution.add_decision("root", 1)
    solution.add_derivation("a", pos(Range.higher_than(1)), 1)
    solution.add_derivation("b", pos(Range.full()), 2)
    solution.add_decision("a", 2)
    solution.add_derivation("b", neg(Range.singleton(3)), 3)
    return solution


def test_decision_levels(solution):
    assert solution.decision_level == 2
    assert [a.decision_level for a in solution] == [0, 1, 1, 1, 2, 2]
    assert [a.index for a in solution] == list(range(6))
    assert [a.is_decision() for a in solution] == [
        False,
        True,
        False,
        False,
        True,
        False,
    ]
    assert dict(solution.decisions) == {"root": 1, "a": 2}


def test_term_intersection(solution):
    assert solution.term_intersection_for_package("a") == (
        pos(Range.singleton(2))
    )
    assert solution.term_intersection_for_package("b") == (
        pos(Range.singleton(3).complement())
    )
    assert solution.term_intersection_for_package("c") is None


def test_potential_packages(solution):
    assert solution.potential_packages() == [
        ("b", Range.singleton(3).complement())
    ]


def test_potential_packages_skips_negative_terms():
    solution = PartialSolution(Range)
    solution.add_derivation("x", neg(Range.singleton(1)), 0)
    solution.add_derivation("y", pos(Range.full()), 1)
    assert solution.potential_packages() == [("y", Range.full())]


def test_backtrack(solution):
    solution.backtrack(1)
    assert solution.decision_level == 1
    assert len(solution) == 4
    assert dict(solution.decisions) == {"root": 1}
    assert solution.term_intersection_for_package("a") == (
        pos(Range.higher_than(1))
    )
    assert solution.term_intersection_for_package("b") == pos(Range.full())
    assert solution.potential_packages() == [
        ("a", Range.higher_than(1)),
        ("b", Range.full()),
    ]


def test_first_seen_order_survives_backtracking():
    solution = PartialSolution(Range)
    solution.add_decision("root", 1)
    solution.add_derivation("late", pos(Range.full()), 0)
    solution.add_derivation("early", pos(Range.full()), 1)
    solution.backtrack(0)
    solution.add_derivation("early", pos(Range.full()), 1)
    solution.add_derivation("late", pos(Range.full()), 0)
    assert [p for p, _ in solution.potential_packages()] == ["late", "early"]


def test_relation(solution):
    incompat = Incompatibility.from_dependency(
        "a", Range.singleton(2), "c", Range.full()
    )
    assert solution.relation(incompat) == (Relation.ALMOST_SATISFIED, "c")
    assert not solution.satisfies(incompat)


def test_extract_solution(solution):
    assert solution.extract_solution() == {"root": 1, "a": 2}


def test_satisfier_search(solution):
    incompat = Incompatibility.no_versions("a", pos(Range.higher_than(1)))
    package, satisfier, previous_level = solution.satisfier_search(incompat)
    assert package == "a"
    assert satisfier.index == 2
    assert not satisfier.is_decision()
    assert previous_level == 1


def test_satisfier_search_on_decision(solution):
    incompat = Incompatibility(
        {
            "a": pos(Range.singleton(2)),
            "b": neg(Range.singleton(3)),
        },
        NoVersions("a", Range.singleton(2)),
    )
    package, satisfier, previous_level = solution.satisfier_search(incompat)
    assert package == "b"
    assert satisfier.index == 5
    assert previous_level == 2

    incompat = Incompatibility(
        {"a": pos(Range.singleton(2)), "root": pos(Range.full())},
        NoVersions("a", Range.singleton(2)),
    )
    package, satisfier, previous_level = solution.satisfier_search(incompat)
    assert package == "a"
    assert satisfier.is_decision()
    assert previous_level == 1
