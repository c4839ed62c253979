from __future__ import annotations

from collections import namedtuple
from typing import TYPE_CHECKING, Generic, Iterator, NamedTuple, TypeVar

KT = TypeVar("KT")  # Package identifier.
VT = TypeVar("VT")  # Version.

if TYPE_CHECKING:

    class UnknownDependencies(NamedTuple):
        """Returned by a provider that cannot tell a version's dependencies."""

        reason: str | None = None

    class State(NamedTuple, Generic[KT, VT]):
        """Resolution state in a round."""

        mapping: dict[KT, VT]
        decision_level: int

    class ConflictStatistics(NamedTuple):
        affected: int = 0
        culprit: int = 0

        @property
        def conflict_count(self) -> int: ...

else:
    UnknownDependencies = namedtuple(
        "UnknownDependencies", ["reason"], defaults=[None]
    )
    State = namedtuple("State", ["mapping", "decision_level"])

    class ConflictStatistics(
        namedtuple("ConflictStatistics", ["affected", "culprit"], defaults=[0, 0])
    ):
        """How often a package took part in conflicts so far.

        * `affected` counts conflicts whose incompatibility mentions the
          package.
        * `culprit` counts conflicts in which the package's assignment was the
          one that made the incompatibility satisfied.
        """

        __slots__ = ()

        @property
        def conflict_count(self):
            return self.affected + self.culprit


class DirectedGraph(Generic[KT]):
    """Dependency graph of a resolution result.

    Vertices are package identifiers; an edge goes from a package to each of
    its dependencies. Iteration follows insertion order.
    """

    def __init__(self) -> None:
        self._children: dict[KT, dict[KT, None]] = {}
        self._parents: dict[KT, dict[KT, None]] = {}

    def __iter__(self) -> Iterator[KT]:
        return iter(self._children)

    def __len__(self) -> int:
        return len(self._children)

    def __contains__(self, key: object) -> bool:
        return key in self._children

    def add(self, key: KT) -> None:
        """Add a new vertex to the graph."""
        if key in self._children:
            raise ValueError(f"vertex {key!r} exists")
        self._children[key] = {}
        self._parents[key] = {}

    def connect(self, f: KT, t: KT) -> None:
        """Connect two existing vertices, from dependant to dependency."""
        if f not in self._children:
            raise KeyError(f)
        if t not in self._children:
            raise KeyError(t)
        self._children[f][t] = None
        self._parents[t][f] = None

    def connected(self, f: KT, t: KT) -> bool:
        return t in self._children.get(f, ())

    def iter_edges(self) -> Iterator[tuple[KT, KT]]:
        for f, children in self._children.items():
            for t in children:
                yield f, t

    def iter_children(self, key: KT) -> Iterator[KT]:
        return iter(self._children[key])

    def iter_parents(self, key: KT) -> Iterator[KT]:
        return iter(self._parents[key])
