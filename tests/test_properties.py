"""Property-based tests comparing resolution against brute force search.

Small random package indexes are generated; the resolver must return a
valid solution exactly when one exists.
"""

from __future__ import annotations

import itertools

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from pubgrublib import (
    OfflineDependencyProvider,
    Range,
    ResolutionImpossible,
    resolve,
)

PACKAGES = ["a", "b", "c"]
VERSIONS = [1, 2, 3]

version_sets = st.builds(
    Range.between,
    st.integers(min_value=1, max_value=4),
    st.integers(min_value=1, max_value=4),
)


def dependencies_of(package):
    others = [p for p in PACKAGES if p != package]
    return st.dictionaries(st.sampled_from(others), version_sets, max_size=2)


@st.composite
def indexes(draw):
    root_dependencies = st.dictionaries(
        st.sampled_from(PACKAGES), version_sets, max_size=3
    )
    index = {"root": {1: draw(root_dependencies)}}
    for package in PACKAGES:
        versions = draw(st.lists(st.sampled_from(VERSIONS), unique=True))
        index[package] = {v: draw(dependencies_of(package)) for v in versions}
    return index


def _provider(index):
    provider = OfflineDependencyProvider()
    for package, versions in index.items():
        for version, dependencies in versions.items():
            provider.add_dependencies(package, version, dependencies)
    return provider


def _is_valid(index, selection):
    for package, version in selection.items():
        for dependency, version_set in index[package][version].items():
            selected = selection.get(dependency)
            if selected is None or selected not in version_set:
                return False
    return True


def _brute_force(index):
    """Whether any selection of versions satisfies every dependency."""
    choices = [[None, *index[package]] for package in PACKAGES]
    for picked in itertools.product(*choices):
        selection = {"root": 1}
        selection.update(
            (package, version)
            for package, version in zip(PACKAGES, picked)
            if version is not None
        )
        if _is_valid(index, selection):
            return True
    return False


def _solve(index, provider=None):
    try:
        return resolve(provider or _provider(index), "root", 1)
    except ResolutionImpossible:
        return None


class PriorityProvider(OfflineDependencyProvider):
    def __init__(self, key):
        super().__init__()
        self.key = key

    def prioritize(self, package, version_set, statistics):
        return self.key(package)


@settings(max_examples=200, deadline=None)
@given(index=indexes())
def test_solution_exists_iff_brute_force_finds_one(index):
    mapping = _solve(index)
    if mapping is None:
        assert not _brute_force(index)
    else:
        assert mapping["root"] == 1
        assert _is_valid(index, mapping)


@settings(deadline=None)
@given(index=indexes())
def test_deterministic(index):
    assert _solve(index) == _solve(index)


@pytest.mark.parametrize(
    "key",
    [
        lambda package: 0,
        lambda package: package,
        lambda package: [-ord(c) for c in package],
    ],
    ids=["constant", "by-name", "by-name-reversed"],
)
@settings(deadline=None)
@given(index=indexes())
def test_priorities_do_not_change_existence(key, index):
    provider = PriorityProvider(key)
    for package, versions in index.items():
        for version, dependencies in versions.items():
            provider.add_dependencies(package, version, dependencies)
    assert (_solve(index, provider) is None) == (_solve(index) is None)


@settings(deadline=None)
@given(index=indexes(), data=st.data())
def test_removing_a_dependency_keeps_solvable(index, data):
    edges = [
        (package, version, dependency)
        for package, versions in index.items()
        for version, dependencies in versions.items()
        for dependency in dependencies
    ]
    if not edges or _solve(index) is None:
        return
    package, version, dependency = data.draw(st.sampled_from(edges))
    del index[package][version][dependency]
    assert _solve(index) is not None
