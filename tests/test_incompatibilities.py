from __future__ import annotations

import pytest

from pubgrublib import DefaultStringReporter, Incompatibility, Range, Term
from pubgrublib.derivation import (
    Derived,
    FromDependencyOf,
    NoVersions,
    NotRoot,
    collapse_no_versions,
)
from pubgrublib.incompatibilities import (
    DerivedFrom,
    IncompatibilityStore,
    Relation,
)


def pos(version_set):
    return Term(True, version_set)


def neg(version_set):
    return Term(False, version_set)


@pytest.fixture()
def store():
    return IncompatibilityStore()


def test_not_root():
    incompat = Incompatibility.not_root("root", 1, Range)
    assert incompat.package_terms == {"root": neg(Range.singleton(1))}
    assert incompat.kind == NotRoot("root", 1)
    assert str(incompat) == "root 1 is mandatory"
    assert not incompat.is_terminal("root", 1)


def test_from_dependency():
    incompat = Incompatibility.from_dependency(
        "a", Range.singleton(1), "b", Range.between(1, 2)
    )
    assert incompat.package_terms == {
        "a": pos(Range.singleton(1)),
        "b": neg(Range.between(1, 2)),
    }
    assert isinstance(incompat.kind, FromDependencyOf)
    assert str(incompat) == "a 1 depends on b >=1, <2"
    assert str(incompat.kind) == "a 1 depends on b >=1, <2"
    assert list(incompat) == ["a", "b"]
    assert "b" in incompat
    assert len(incompat) == 2
    assert incompat.causes() is None


def test_from_dependency_on_empty_set():
    incompat = Incompatibility.from_dependency(
        "a", Range.singleton(1), "b", Range.empty()
    )
    assert incompat.package_terms == {"a": pos(Range.singleton(1))}
    assert str(incompat.kind) == "a 1 depends on b ∅"


def test_no_versions():
    incompat = Incompatibility.no_versions("a", pos(Range.higher_than(2)))
    assert incompat.kind == NoVersions("a", Range.higher_than(2))
    assert str(incompat) == "a >=2 is forbidden"
    assert str(incompat.kind) == "there is no version of a in >=2"
    with pytest.raises(ValueError):
        Incompatibility.no_versions("a", neg(Range.higher_than(2)))


def test_unavailable():
    incompat = Incompatibility.unavailable("a", 3, Range, "offline")
    assert incompat.package_terms == {"a": pos(Range.singleton(3))}
    assert str(incompat.kind) == (
        "dependencies of a at version 3 are unavailable (offline)"
    )


def test_is_terminal():
    empty = Incompatibility({}, DerivedFrom(0, 1))
    assert empty.is_terminal("root", 1)
    root_only = Incompatibility(
        {"root": pos(Range.singleton(1))}, DerivedFrom(0, 1)
    )
    assert root_only.is_terminal("root", 1)
    other = Incompatibility({"a": pos(Range.singleton(1))}, DerivedFrom(0, 1))
    assert not other.is_terminal("root", 1)


def test_relation():
    incompat = Incompatibility.from_dependency(
        "a", Range.singleton(1), "b", Range.between(1, 2)
    )
    terms = {}
    assert incompat.relation(terms.get) == (Relation.INCONCLUSIVE, None)

    terms["a"] = pos(Range.singleton(1))
    assert incompat.relation(terms.get) == (Relation.ALMOST_SATISFIED, "b")

    terms["b"] = pos(Range.higher_than(2))
    assert incompat.relation(terms.get) == (Relation.SATISFIED, None)

    terms["b"] = pos(Range.singleton(1))
    assert incompat.relation(terms.get) == (Relation.CONTRADICTED, "b")


def test_store_ids_and_index(store):
    first = store.add(Incompatibility.not_root("root", 1, Range))
    second = store.alloc(Incompatibility.no_versions("a", pos(Range.full())))
    assert (first, second) == (0, 1)
    assert len(store) == 2
    assert store.for_package("root") == (0,)
    assert store.for_package("a") == ()

    store.index(second)
    assert store.for_package("a") == (1,)
    assert store[1].kind == NoVersions("a", Range.full())


def test_prior_cause(store):
    dependency = store.add(
        Incompatibility.from_dependency(
            "a", Range.singleton(1), "b", Range.between(1, 2)
        )
    )
    missing = store.add(
        Incompatibility.no_versions("b", pos(Range.between(1, 2)))
    )
    learned = Incompatibility.prior_cause(missing, dependency, "b", store)
    assert learned.package_terms == {"a": pos(Range.singleton(1))}
    assert learned.causes() == DerivedFrom(missing, dependency)


def test_prior_cause_keeps_package_term(store):
    first = store.add(
        Incompatibility.from_dependency(
            "a", Range.singleton(1), "b", Range.between(1, 3)
        )
    )
    second = store.add(
        Incompatibility.from_dependency(
            "c", Range.singleton(1), "b", Range.between(2, 4)
        )
    )
    learned = Incompatibility.prior_cause(first, second, "b", store)
    assert learned.package_terms == {
        "a": pos(Range.singleton(1)),
        "c": pos(Range.singleton(1)),
        "b": neg(Range.between(2, 3)),
    }


def test_derivation_tree_shared_ids(store):
    store.add(Incompatibility.not_root("root", 1, Range))
    store.add(
        Incompatibility.from_dependency(
            "root", Range.singleton(1), "a", Range.full()
        )
    )
    store.alloc(Incompatibility({"a": pos(Range.full())}, DerivedFrom(0, 1)))
    store.alloc(Incompatibility({}, DerivedFrom(2, 2)))

    tree = store.build_derivation_tree(3)
    assert isinstance(tree, Derived)
    assert tree.shared_id is None
    assert tree.cause1 is tree.cause2
    assert tree.cause1.shared_id == 2
    assert tree.cause1.cause1 == NotRoot("root", 1)
    assert tree.packages() == {"root", "a"}


def test_derivation_tree_of_external(store):
    store.add(Incompatibility.no_versions("a", pos(Range.full())))
    assert store.build_derivation_tree(0) == NoVersions("a", Range.full())


def test_deep_derivation_tree(store):
    depth = 5000
    cause = store.add(Incompatibility.no_versions("p0", pos(Range.full())))
    for i in range(1, depth + 1):
        dependency = store.add(
            Incompatibility.from_dependency(
                f"p{i}", Range.full(), f"p{i - 1}", Range.full()
            )
        )
        cause = store.alloc(
            Incompatibility(
                {f"p{i}": pos(Range.full())}, DerivedFrom(cause, dependency)
            )
        )

    tree = store.build_derivation_tree(cause)
    assert tree.packages() == {f"p{i}" for i in range(depth + 1)}
    lines = DefaultStringReporter.report(collapse_no_versions(tree)).splitlines()
    assert lines[0] == (
        "Because p1 depends on p0 and p2 depends on p1, p2 * is forbidden."
    )
    assert lines[-1].endswith(f"p{depth} * is forbidden.")
