from __future__ import annotations

from typing import TYPE_CHECKING, Generic, Iterator, Mapping

from .incompatibilities import Relation
from .structs import KT, VT
from .terms import Term

if TYPE_CHECKING:
    from .incompatibilities import Incompatibility
    from .versions import VersionSet


class Assignment(Generic[KT, VT]):
    """A term in a partial solution, with some bookkeeping.

    A decision fixes ``version``; a derivation was forced by the
    incompatibility with id ``cause``. ``index`` is the position of the
    assignment in the chronological log.
    """

    def __init__(
        self,
        package: KT,
        term: Term[VT],
        decision_level: int,
        index: int,
        version: VT | None = None,
        cause: int | None = None,
    ) -> None:
        self.package = package
        self.term = term
        self.decision_level = decision_level
        self.index = index
        self.version = version
        self.cause = cause

    @classmethod
    def decision(
        cls,
        package: KT,
        version: VT,
        term: Term[VT],
        decision_level: int,
        index: int,
    ) -> Assignment[KT, VT]:
        return cls(package, term, decision_level, index, version=version)

    @classmethod
    def derivation(
        cls,
        package: KT,
        term: Term[VT],
        cause: int,
        decision_level: int,
        index: int,
    ) -> Assignment[KT, VT]:
        return cls(package, term, decision_level, index, cause=cause)

    def __repr__(self) -> str:
        if self.is_decision():
            what = f"{self.package} == {self.version}"
        else:
            what = f"{self.package} {self.term} (cause {self.cause})"
        return f"<Assignment #{self.index} @{self.decision_level}: {what}>"

    def is_decision(self) -> bool:
        return self.cause is None


class PartialSolution(Generic[KT, VT]):
    """Chronological log of decisions and derivations.

    Per-package indices (accumulated term, decision, assignments) are derived
    from the log. Backtracking truncates the log and rebuilds them from what
    remains, so they never hold stale data.
    """

    def __init__(self, version_set_cls: type[VersionSet[VT]]) -> None:
        self._version_set_cls = version_set_cls
        self._assignments: list[Assignment[KT, VT]] = []
        self._decision_level = 0
        self._terms: dict[KT, Term[VT]] = {}
        self._decisions: dict[KT, VT] = {}
        self._package_assignments: dict[KT, list[Assignment[KT, VT]]] = {}
        # Survives backtracking; used to break priority ties.
        self._first_seen: dict[KT, int] = {}

    def __repr__(self) -> str:
        return "PartialSolution(decision_level={}, {!r})".format(
            self._decision_level, self._assignments
        )

    def __len__(self) -> int:
        return len(self._assignments)

    def __iter__(self) -> Iterator[Assignment[KT, VT]]:
        return iter(self._assignments)

    @property
    def decision_level(self) -> int:
        return self._decision_level

    @property
    def decisions(self) -> Mapping[KT, VT]:
        return self._decisions

    def _register(self, assignment: Assignment[KT, VT]) -> None:
        package = assignment.package
        self._first_seen.setdefault(package, len(self._first_seen))
        try:
            current = self._terms[package]
        except KeyError:
            self._terms[package] = assignment.term
        else:
            self._terms[package] = current.intersection(assignment.term)
        self._package_assignments.setdefault(package, []).append(assignment)
        if assignment.is_decision():
            self._decisions[package] = assignment.version

    def add_decision(self, package: KT, version: VT) -> None:
        """Decide a version, opening a new decision level."""
        self._decision_level += 1
        term = Term.exact(self._version_set_cls, version)
        assignment = Assignment.decision(
            package,
            version,
            term,
            self._decision_level,
            len(self._assignments),
        )
        self._assignments.append(assignment)
        self._register(assignment)

    def add_derivation(self, package: KT, term: Term[VT], cause: int) -> None:
        """Record a term forced by the incompatibility ``cause``."""
        assignment = Assignment.derivation(
            package,
            term,
            cause,
            self._decision_level,
            len(self._assignments),
        )
        self._assignments.append(assignment)
        self._register(assignment)

    def backtrack(self, decision_level: int) -> None:
        """Discard every assignment made above ``decision_level``."""
        for index, assignment in enumerate(self._assignments):
            if assignment.decision_level > decision_level:
                del self._assignments[index:]
                break
        self._decision_level = decision_level
        self._terms.clear()
        self._decisions.clear()
        self._package_assignments.clear()
        for assignment in self._assignments:
            self._register(assignment)

    def term_intersection_for_package(self, package: KT) -> Term[VT] | None:
        return self._terms.get(package)

    def relation(
        self, incompat: Incompatibility[KT, VT]
    ) -> tuple[Relation, KT | None]:
        return incompat.relation(self._terms.get)

    def satisfies(self, incompat: Incompatibility[KT, VT]) -> bool:
        return self.relation(incompat)[0] is Relation.SATISFIED

    def potential_packages(self) -> list[tuple[KT, VersionSet[VT]]]:
        """Undecided packages that are required, in first-seen order."""
        packages = [
            (package, term.version_set)
            for package, term in self._terms.items()
            if term.positive and package not in self._decisions
        ]
        packages.sort(key=lambda item: self._first_seen[item[0]])
        return packages

    def extract_solution(self) -> dict[KT, VT]:
        return dict(self._decisions)

    def _satisfier(
        self,
        package: KT,
        incompat_term: Term[VT],
        start_term: Term[VT],
    ) -> Assignment[KT, VT]:
        """Find the earliest assignment after which ``incompat_term`` holds.

        Terms of the package's assignments are accumulated, starting from
        ``start_term``.
        """
        accumulated = start_term
        for assignment in self._package_assignments[package]:
            accumulated = accumulated.intersection(assignment.term)
            if accumulated.subset_of(incompat_term):
                return assignment
        raise ValueError(f"{package!r} does not satisfy {incompat_term}")

    def satisfier_search(
        self, incompat: Incompatibility[KT, VT]
    ) -> tuple[KT, Assignment[KT, VT], int]:
        """Locate the assignment that made ``incompat`` satisfied.

        Return the package of that *satisfier*, the satisfier itself, and the
        *previous satisfier level*: the decision level at which the
        incompatibility would be satisfied if the satisfier's term were
        already known (at least 1).
        """
        any_term: Term[VT] = Term.any(self._version_set_cls)
        satisfiers = {
            package: self._satisfier(package, term, any_term)
            for package, term in incompat.items()
        }
        satisfier = max(satisfiers.values(), key=lambda a: a.index)
        package = satisfier.package

        satisfiers[package] = self._satisfier(
            package, incompat.package_terms[package], satisfier.term
        )
        previous = max(satisfiers.values(), key=lambda a: a.index)
        return package, satisfier, max(previous.decision_level, 1)
