from __future__ import annotations

import enum
from collections import namedtuple
from typing import (
    TYPE_CHECKING,
    Callable,
    Generic,
    ItemsView,
    Iterator,
    Mapping,
)

from .derivation import (
    Derived,
    External,
    FromDependencyOf,
    NoVersions,
    NotRoot,
    Unavailable,
)
from .reporters import DefaultStringReporter
from .structs import KT, VT
from .terms import Term, TermRelation

if TYPE_CHECKING:
    from .derivation import Node
    from .versions import VersionSet


class Relation(enum.Enum):
    """How an incompatibility relates to a partial solution."""

    # All terms are satisfied.
    SATISFIED = "satisfied"
    # One term is contradicted, the incompatibility cannot hold.
    CONTRADICTED = "contradicted"
    # All terms but one are satisfied; that one is reported as well.
    ALMOST_SATISFIED = "almost_satisfied"
    INCONCLUSIVE = "inconclusive"


DerivedFrom = namedtuple("DerivedFrom", ["cause1", "cause2"])


class Incompatibility(Generic[KT, VT]):
    """A set of package terms that must never all hold at once.

    Incompatibilities are either *external*, with a kind taken from
    ``pubgrublib.derivation``, or derived from two other incompatibilities,
    with a ``DerivedFrom`` kind holding the ids of both causes.
    """

    def __init__(
        self,
        package_terms: Mapping[KT, Term[VT]],
        kind: External | DerivedFrom,
    ) -> None:
        self.package_terms = dict(package_terms)
        self.kind = kind

    @classmethod
    def not_root(
        cls,
        package: KT,
        version: VT,
        version_set_cls: type[VersionSet[VT]],
    ) -> Incompatibility[KT, VT]:
        """Create the initial incompatibility requiring the root version."""
        term = Term(False, version_set_cls.singleton(version))
        return cls({package: term}, NotRoot(package, version))

    @classmethod
    def no_versions(
        cls, package: KT, term: Term[VT]
    ) -> Incompatibility[KT, VT]:
        """Create an incompatibility saying no version matches ``term``."""
        version_set = term.unwrap_positive()
        return cls({package: term}, NoVersions(package, version_set))

    @classmethod
    def unavailable(
        cls,
        package: KT,
        version: VT,
        version_set_cls: type[VersionSet[VT]],
        reason: str | None = None,
    ) -> Incompatibility[KT, VT]:
        """Create an incompatibility for dependencies that are unknown."""
        version_set = version_set_cls.singleton(version)
        return cls(
            {package: Term(True, version_set)},
            Unavailable(package, version_set, reason),
        )

    @classmethod
    def from_dependency(
        cls,
        package: KT,
        version_set: VersionSet[VT],
        dependency: KT,
        dependency_set: VersionSet[VT],
    ) -> Incompatibility[KT, VT]:
        """Create an incompatibility from a dependency of ``package``."""
        if dependency_set == type(dependency_set).empty():
            package_terms = {package: Term(True, version_set)}
        else:
            package_terms = {
                package: Term(True, version_set),
                dependency: Term(False, dependency_set),
            }
        kind = FromDependencyOf(package, version_set, dependency, dependency_set)
        return cls(package_terms, kind)

    @classmethod
    def prior_cause(
        cls,
        incompat_id: int,
        satisfier_cause_id: int,
        package: KT,
        store: IncompatibilityStore[KT, VT],
    ) -> Incompatibility[KT, VT]:
        """Resolve two incompatibilities on ``package``.

        The result holds whenever both inputs hold, with the term of
        ``package`` being the union of the two terms. It is dropped when
        that union is always true.
        """
        package_terms = dict(store[incompat_id].package_terms)
        first = package_terms.pop(package)
        satisfier_terms = store[satisfier_cause_id].package_terms
        for other, term in satisfier_terms.items():
            if other == package:
                continue
            try:
                package_terms[other] = package_terms[other].intersection(term)
            except KeyError:
                package_terms[other] = term
        term = first.union(satisfier_terms[package])
        if not term.is_any():
            package_terms[package] = term
        return cls(package_terms, DerivedFrom(incompat_id, satisfier_cause_id))

    def __repr__(self) -> str:
        return f"Incompatibility({self.package_terms!r}, {self.kind!r})"

    def __str__(self) -> str:
        return DefaultStringReporter.string_terms(self.package_terms)

    def __len__(self) -> int:
        return len(self.package_terms)

    def __contains__(self, package: object) -> bool:
        return package in self.package_terms

    def __iter__(self) -> Iterator[KT]:
        return iter(self.package_terms)

    def items(self) -> ItemsView[KT, Term[VT]]:
        return self.package_terms.items()

    def get(self, package: KT) -> Term[VT] | None:
        return self.package_terms.get(package)

    def causes(self) -> DerivedFrom | None:
        if isinstance(self.kind, DerivedFrom):
            return self.kind
        return None

    def is_terminal(self, root_package: KT, root_version: VT) -> bool:
        """Whether this incompatibility proves that resolution failed.

        This is the case when it is empty, or only forbids the root version.
        """
        if not self.package_terms:
            return True
        if len(self.package_terms) > 1:
            return False
        ((package, term),) = self.package_terms.items()
        return package == root_package and term.contains(root_version)

    def relation(
        self, lookup: Callable[[KT], Term[VT] | None]
    ) -> tuple[Relation, KT | None]:
        """Check how this incompatibility relates to known terms.

        ``lookup`` returns the accumulated term of a package, or ``None`` if
        nothing is known about it. The second member of the returned pair is
        the contradicted or almost satisfied package, if any.
        """
        relation = Relation.SATISFIED
        unsatisfied = None
        for package, term in self.package_terms.items():
            known = lookup(package)
            if known is None:
                term_relation = TermRelation.INCONCLUSIVE
            else:
                term_relation = term.relation_with(known)
            if term_relation is TermRelation.CONTRADICTED:
                return Relation.CONTRADICTED, package
            if term_relation is TermRelation.INCONCLUSIVE:
                if relation is Relation.SATISFIED:
                    relation = Relation.ALMOST_SATISFIED
                    unsatisfied = package
                else:
                    relation = Relation.INCONCLUSIVE
                    unsatisfied = None
        return relation, unsatisfied


class IncompatibilityStore(Generic[KT, VT]):
    """Arena owning every incompatibility known to a resolution.

    Each incompatibility gets an id, increasing monotonically from zero.
    Derived incompatibilities refer to their causes by id, so the arena
    doubles as the storage for the derivation DAG.
    """

    def __init__(self) -> None:
        self._incompatibilities: list[Incompatibility[KT, VT]] = []
        self._by_package: dict[KT, list[int]] = {}

    def __len__(self) -> int:
        return len(self._incompatibilities)

    def __iter__(self) -> Iterator[Incompatibility[KT, VT]]:
        return iter(self._incompatibilities)

    def __getitem__(self, incompat_id: int) -> Incompatibility[KT, VT]:
        return self._incompatibilities[incompat_id]

    def alloc(self, incompat: Incompatibility[KT, VT]) -> int:
        """Store an incompatibility without making it visible to lookups.

        Used for intermediate steps of conflict resolution, which only matter
        as causes of the incompatibility finally learned.
        """
        incompat_id = len(self._incompatibilities)
        self._incompatibilities.append(incompat)
        return incompat_id

    def index(self, incompat_id: int) -> None:
        for package in self[incompat_id]:
            self._by_package.setdefault(package, []).append(incompat_id)

    def add(self, incompat: Incompatibility[KT, VT]) -> int:
        """Store an incompatibility and index it by its packages."""
        incompat_id = self.alloc(incompat)
        self.index(incompat_id)
        return incompat_id

    def for_package(self, package: KT) -> tuple[int, ...]:
        """Ids of incompatibilities mentioning ``package``, oldest first."""
        return tuple(self._by_package.get(package, ()))

    def _find_shared_ids(self, root_id: int) -> set[int]:
        seen: set[int] = set()
        shared: set[int] = set()
        stack = [root_id]
        while stack:
            incompat_id = stack.pop()
            causes = self[incompat_id].causes()
            if causes is None:
                continue
            if incompat_id in seen:
                shared.add(incompat_id)
                continue
            seen.add(incompat_id)
            stack.append(causes.cause1)
            stack.append(causes.cause2)
        return shared

    def build_derivation_tree(self, root_id: int) -> Node:
        """Build the tree explaining the incompatibility ``root_id``.

        Derived nodes reachable more than once carry their id as
        ``shared_id``.
        """
        shared_ids = self._find_shared_ids(root_id)
        built: dict[int, Node] = {}
        # Causes always have smaller ids, so the walk cannot loop.
        stack = [root_id]
        while stack:
            incompat_id = stack[-1]
            if incompat_id in built:
                stack.pop()
                continue
            incompat = self[incompat_id]
            causes = incompat.causes()
            if causes is None:
                built[incompat_id] = incompat.kind
                stack.pop()
                continue
            pending = [c for c in causes if c not in built]
            if pending:
                stack.extend(pending)
                continue
            stack.pop()
            built[incompat_id] = Derived(
                incompat.package_terms,
                incompat_id if incompat_id in shared_ids else None,
                built[causes.cause1],
                built[causes.cause2],
            )
        return built[root_id]
