"""Derivation trees explaining why resolution failed.

Leaves are *external* facts: things the resolver was told, as opposed to
things it derived. Internal nodes are ``Derived`` incompatibilities, each
with exactly two causes.
"""

from __future__ import annotations

from collections import namedtuple
from typing import TYPE_CHECKING, Any, Mapping, Union

if TYPE_CHECKING:
    from .terms import Term


class External:
    """Base of all leaf nodes of a derivation tree."""

    __slots__ = ()

    def packages(self) -> set[Any]:
        raise NotImplementedError

    def merge_no_versions(self, package: Any, version_set: Any) -> Node | None:
        """Fold a sibling "no versions" fact into this one.

        Return ``None`` if the two facts cannot be merged.
        """
        return None

    def collapse_no_versions(self) -> Node:
        return self


class NotRoot(External, namedtuple("NotRoot", ["package", "version"])):
    """Initial fact: the root package is requested at this version."""

    __slots__ = ()

    def __str__(self) -> str:
        return f"we are solving dependencies of {self.package} {self.version}"

    def packages(self) -> set[Any]:
        return {self.package}


class NoVersions(
    External, namedtuple("NoVersions", ["package", "version_set"])
):
    """No version of the package exists in the set."""

    __slots__ = ()

    def __str__(self) -> str:
        if self.version_set == type(self.version_set).full():
            return f"there is no available version for {self.package}"
        return f"there is no version of {self.package} in {self.version_set}"

    def packages(self) -> set[Any]:
        return {self.package}

    def merge_no_versions(self, package: Any, version_set: Any) -> Node | None:
        return NoVersions(package, version_set.union(self.version_set))


class Unavailable(
    External,
    namedtuple("Unavailable", ["package", "version_set", "reason"]),
):
    """Dependencies of the package cannot be determined."""

    __slots__ = ()

    def __str__(self) -> str:
        if self.version_set == type(self.version_set).full():
            message = f"dependencies of {self.package} are unavailable"
        else:
            message = (
                f"dependencies of {self.package} at version "
                f"{self.version_set} are unavailable"
            )
        if self.reason:
            message = f"{message} ({self.reason})"
        return message

    def packages(self) -> set[Any]:
        return {self.package}


class FromDependencyOf(
    External,
    namedtuple(
        "FromDependencyOf",
        ["package", "version_set", "dependency", "dependency_set"],
    ),
):
    """The package at these versions depends on the dependency set."""

    __slots__ = ()

    def __str__(self) -> str:
        full = type(self.version_set).full()
        if self.version_set == full and self.dependency_set == full:
            return f"{self.package} depends on {self.dependency}"
        if self.version_set == full:
            return (
                f"{self.package} depends on "
                f"{self.dependency} {self.dependency_set}"
            )
        if self.dependency_set == full:
            return (
                f"{self.package} {self.version_set} depends on "
                f"{self.dependency}"
            )
        return (
            f"{self.package} {self.version_set} depends on "
            f"{self.dependency} {self.dependency_set}"
        )

    def packages(self) -> set[Any]:
        return {self.package, self.dependency}

    def merge_no_versions(self, package: Any, version_set: Any) -> Node | None:
        if package == self.package:
            return self._replace(version_set=self.version_set.union(version_set))
        return self._replace(
            dependency_set=self.dependency_set.union(version_set)
        )


class Derived:
    """An incompatibility derived from two others.

    ``shared_id`` is set when the node is reachable through more than one
    path in the tree, so reports can refer back to it instead of explaining
    it twice.
    """

    def __init__(
        self,
        terms: Mapping[Any, Term],
        shared_id: int | None,
        cause1: Node,
        cause2: Node,
    ) -> None:
        self.terms = terms
        self.shared_id = shared_id
        self.cause1 = cause1
        self.cause2 = cause2

    def __repr__(self) -> str:
        return "Derived({!r}, shared_id={!r})".format(
            dict(self.terms), self.shared_id
        )

    def packages(self) -> set[Any]:
        packages: set[Any] = set()
        seen: set[int] = set()
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            if isinstance(node, Derived):
                packages.update(node.terms)
                stack.append(node.cause1)
                stack.append(node.cause2)
            else:
                packages.update(node.packages())
        return packages

    def merge_no_versions(self, package: Any, version_set: Any) -> Node | None:
        return self

    def collapse_no_versions(self) -> Node:
        return collapse_no_versions(self)

    def _collapse(self, cause1: Node, cause2: Node) -> Node:
        """Rebuild this node from its already collapsed causes."""
        if isinstance(self.cause1, NoVersions):
            merged = cause2.merge_no_versions(
                self.cause1.package, self.cause1.version_set
            )
            if merged is None:
                return Derived(self.terms, self.shared_id, self.cause1, cause2)
            return merged
        if isinstance(self.cause2, NoVersions):
            merged = cause1.merge_no_versions(
                self.cause2.package, self.cause2.version_set
            )
            if merged is None:
                return Derived(self.terms, self.shared_id, cause1, self.cause2)
            return merged
        return Derived(self.terms, self.shared_id, cause1, cause2)


Node = Union[External, Derived]


def collapse_no_versions(tree: Node) -> Node:
    """Return a simplified tree without standalone "no versions" leaves.

    A derived node with a "no versions" cause is replaced by its other
    cause, with the missing versions folded into it where possible.
    Nodes shared between several paths are collapsed once.
    """
    collapsed: dict[int, Node] = {}
    stack = [tree]
    while stack:
        node = stack[-1]
        if id(node) in collapsed:
            stack.pop()
            continue
        if not isinstance(node, Derived):
            collapsed[id(node)] = node
            stack.pop()
            continue
        pending = [
            cause
            for cause in (node.cause1, node.cause2)
            if id(cause) not in collapsed
        ]
        if pending:
            stack.extend(pending)
            continue
        stack.pop()
        collapsed[id(node)] = node._collapse(
            collapsed[id(node.cause1)], collapsed[id(node.cause2)]
        )
    return collapsed[id(tree)]
