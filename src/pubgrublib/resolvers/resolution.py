from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any, Generic, Iterable, Mapping

from ..incompatibilities import Incompatibility, IncompatibilityStore, Relation
from ..partial_solution import PartialSolution
from ..reporters import BaseReporter
from ..structs import (
    KT,
    VT,
    ConflictStatistics,
    DirectedGraph,
    State,
    UnknownDependencies,
)
from ..terms import Term
from .abstract import AbstractResolver, Result
from .exceptions import (
    InconsistentCandidate,
    ProviderError,
    ResolutionCancelled,
    ResolutionImpossible,
    ResolutionTooDeep,
    ResolverException,
    SelfDependency,
)

if TYPE_CHECKING:
    from ..providers import AbstractProvider
    from ..versions import VersionSet

logger = logging.getLogger(__name__)


class Resolution(Generic[KT, VT]):
    """Stateful resolution object.

    This is designed as a one-off object that holds information to kick start
    the resolution process, and holds the results afterwards.
    """

    def __init__(
        self,
        provider: AbstractProvider[KT, VT],
        reporter: BaseReporter,
    ) -> None:
        self._p = provider
        self._r = reporter
        self._vs = provider.version_set_cls
        self._store: IncompatibilityStore[KT, VT] = IncompatibilityStore()
        self._solution: PartialSolution[KT, VT] | None = None
        self._root: tuple[KT, VT] | None = None

        # Incompatibility ids of each (package, version) seen so far.
        self._dependency_incompats: dict[tuple[KT, VT], tuple[int, ...]] = {}
        self._dependencies: dict[tuple[KT, VT], Mapping[KT, Any]] = {}

        self._statistics: dict[KT, ConflictStatistics] = {}
        self._priorities: dict[KT, tuple[Any, Any]] = {}

    @property
    def store(self) -> IncompatibilityStore[KT, VT]:
        return self._store

    @property
    def partial_solution(self) -> PartialSolution[KT, VT]:
        if self._solution is None:
            raise AttributeError("partial_solution")
        return self._solution

    @property
    def state(self) -> State[KT, VT]:
        solution = self.partial_solution
        return State(
            mapping=solution.extract_solution(),
            decision_level=solution.decision_level,
        )

    def dependencies_of(self, package: KT, version: VT) -> Mapping[KT, Any]:
        return self._dependencies.get((package, version), {})

    def statistics(self, package: KT) -> ConflictStatistics:
        return self._statistics.get(package, ConflictStatistics())

    def _add_incompatibility(self, incompat: Incompatibility[KT, VT]) -> int:
        incompat_id = self._store.add(incompat)
        self._r.adding_incompatibility(incompat)
        return incompat_id

    def _check_cancelled(self) -> None:
        try:
            self._p.should_cancel()
        except Exception as e:
            raise ResolutionCancelled(e) from e

    def _get_priority(self, package: KT, version_set: VersionSet[VT]) -> Any:
        statistics = self.statistics(package)
        key = (version_set, statistics)
        try:
            cached_key, priority = self._priorities[package]
        except KeyError:
            pass
        else:
            if cached_key == key:
                return priority
        try:
            priority = self._p.prioritize(package, version_set, statistics)
        except ResolverException:
            raise
        except Exception as e:
            raise ProviderError("prioritize", package, None, e) from e
        self._priorities[package] = (key, priority)
        return priority

    def _choose_package(
        self, candidates: list[tuple[KT, VersionSet[VT]]]
    ) -> tuple[KT, VersionSet[VT]]:
        # Candidates come in first-seen order; only a strictly higher
        # priority replaces the current pick.
        best = None
        best_priority = None
        for candidate in candidates:
            priority = self._get_priority(*candidate)
            if best is None or priority > best_priority:
                best = candidate
                best_priority = priority
        assert best is not None
        return best

    def _fetch_dependencies(
        self, package: KT, version: VT
    ) -> tuple[int, ...] | None:
        try:
            dependencies = self._p.get_dependencies(package, version)
        except ResolverException:
            raise
        except Exception as e:
            raise ProviderError("get_dependencies", package, version, e) from e

        if isinstance(dependencies, UnknownDependencies):
            logger.info(
                "dependencies of %s %s are unavailable", package, version
            )
            self._add_incompatibility(
                Incompatibility.unavailable(
                    package, version, self._vs, dependencies.reason
                )
            )
            return None
        if package in dependencies:
            raise SelfDependency(package, version)

        self._dependencies[package, version] = dependencies
        version_set = self._vs.singleton(version)
        return tuple(
            self._add_incompatibility(
                Incompatibility.from_dependency(
                    package, version_set, dependency, dependency_set
                )
            )
            for dependency, dependency_set in dependencies.items()
        )

    def _decide(self, package: KT, version_set: VersionSet[VT]) -> None:
        try:
            version = self._p.choose_version(package, version_set)
        except ResolverException:
            raise
        except Exception as e:
            raise ProviderError("choose_version", package, None, e) from e

        if version is None:
            logger.info("no version of %s in %s", package, version_set)
            self._add_incompatibility(
                Incompatibility.no_versions(package, Term(True, version_set))
            )
            return
        if not version_set.contains(version):
            raise InconsistentCandidate(package, version, version_set)

        solution = self.partial_solution
        try:
            incompat_ids = self._dependency_incompats[package, version]
        except KeyError:
            pass
        else:
            # Dependencies are already known and not satisfied.
            logger.info("decide %s %s (dependencies known)", package, version)
            solution.add_decision(package, version)
            self._r.pinning(package, version)
            return

        incompat_ids = self._fetch_dependencies(package, version)
        if incompat_ids is None:
            return
        self._dependency_incompats[package, version] = incompat_ids

        exact = Term.exact(self._vs, version)

        def lookup(p: KT) -> Term[VT] | None:
            if p == package:
                return exact
            return solution.term_intersection_for_package(p)

        if any(
            self._store[i].relation(lookup)[0] is Relation.SATISFIED
            for i in incompat_ids
        ):
            # Propagation finds the conflict and derives a new fact.
            logger.info(
                "not deciding %s %s because of its dependencies",
                package,
                version,
            )
            return
        logger.info("decide %s %s", package, version)
        solution.add_decision(package, version)
        self._r.pinning(package, version)

    def _propagate(self, package: KT) -> None:
        """Derive every term forced by the incompatibilities, from ``package``.

        Conflicts found on the way are resolved, which may backtrack.
        """
        solution = self.partial_solution
        changed = [package]
        while changed:
            current = changed.pop()
            conflict_id = None
            # Newest incompatibilities first.
            for incompat_id in reversed(self._store.for_package(current)):
                incompat = self._store[incompat_id]
                relation, almost = solution.relation(incompat)
                if relation is Relation.SATISFIED:
                    conflict_id = incompat_id
                    break
                if relation is not Relation.ALMOST_SATISFIED:
                    continue
                if almost not in changed:
                    changed.append(almost)
                term = incompat.package_terms[almost].negate()
                logger.debug("derive %s %s from %s", almost, term, incompat)
                solution.add_derivation(almost, term, incompat_id)

            if conflict_id is None:
                continue
            almost, root_cause = self._resolve_conflict(conflict_id)
            changed = [almost]
            term = self._store[root_cause].package_terms[almost].negate()
            solution.add_derivation(almost, term, root_cause)

    def _record_conflict(
        self, incompat: Incompatibility[KT, VT], culprit: KT
    ) -> None:
        for package in incompat:
            stats = self.statistics(package)
            self._statistics[package] = stats._replace(
                affected=stats.affected + 1
            )
        stats = self.statistics(culprit)
        self._statistics[culprit] = stats._replace(culprit=stats.culprit + 1)

    def _resolve_conflict(self, incompat_id: int) -> tuple[KT, int]:
        """Learn from a satisfied incompatibility, and backtrack.

        Return the package whose term the learned incompatibility now forces,
        and the id of that incompatibility.
        """
        assert self._root is not None
        solution = self.partial_solution
        self._r.resolving_conflict(self._store[incompat_id])
        learned = False
        while True:
            incompat = self._store[incompat_id]
            if incompat.is_terminal(*self._root):
                raise ResolutionImpossible(
                    self._store.build_derivation_tree(incompat_id)
                )
            package, satisfier, previous_level = solution.satisfier_search(
                incompat
            )
            if not learned:
                self._record_conflict(incompat, package)
            if (
                satisfier.is_decision()
                or previous_level < satisfier.decision_level
            ):
                logger.debug("backtrack to decision level %d", previous_level)
                solution.backtrack(previous_level)
                self._r.backtracking(previous_level)
                if learned:
                    self._store.index(incompat_id)
                    self._r.adding_incompatibility(incompat)
                return package, incompat_id

            assert satisfier.cause is not None
            prior_cause = Incompatibility.prior_cause(
                incompat_id, satisfier.cause, package, self._store
            )
            logger.debug("derived %s", prior_cause)
            incompat_id = self._store.alloc(prior_cause)
            learned = True

    def resolve(
        self, package: KT, version: VT, max_rounds: int | None = None
    ) -> State[KT, VT]:
        if self._solution is not None:
            raise RuntimeError("already resolved")

        self._root = (package, version)
        self._solution = PartialSolution(self._vs)
        self._add_incompatibility(
            Incompatibility.not_root(package, version, self._vs)
        )

        self._r.starting()

        if max_rounds is None:
            rounds: Iterable[int] = itertools.count()
        else:
            rounds = range(max_rounds)

        next_package = package
        for round_index in rounds:
            self._r.starting_round(round_index)
            self._check_cancelled()

            logger.debug("unit propagation from %s", next_package)
            self._propagate(next_package)

            candidates = self._solution.potential_packages()

            # Every required package is decided, we are done!
            if not candidates:
                state = self.state
                self._r.ending(state)
                return state

            next_package, version_set = self._choose_package(candidates)
            self._decide(next_package, version_set)
            self._r.ending_round(round_index, self.state)

        assert max_rounds is not None
        raise ResolutionTooDeep(max_rounds)


def _build_graph(
    resolution: Resolution[KT, VT], mapping: Mapping[KT, VT]
) -> DirectedGraph[KT]:
    graph: DirectedGraph[KT] = DirectedGraph()
    for package in mapping:
        graph.add(package)
    for package, version in mapping.items():
        for dependency in resolution.dependencies_of(package, version):
            if dependency in graph:
                graph.connect(package, dependency)
    return graph


class Resolver(AbstractResolver[KT, VT]):
    """The thing that performs the actual resolution work."""

    base_exception = ResolverException

    def resolve(  # type: ignore[override]
        self,
        package: KT,
        version: VT,
        max_rounds: int | None = None,
    ) -> Result[KT, VT]:
        """Find versions for everything the root package needs.

        The return value is a representation to the final resolution result.
        It is a tuple subclass with two public members:

        * `mapping`: A dict of resolved versions. Each key is a package
            identifier, and the value is the chosen version. The root package
            is included.
        * `graph`: A `DirectedGraph` instance representing the dependency
            tree. The vertices are keys of `mapping`, and each edge goes from
            a package to one of its dependencies.

        The following exceptions may be raised if a resolution cannot be found:

        * `ResolutionImpossible`: No solution exists. The exception carries
            a derivation tree explaining why.
        * `ProviderError`: The provider raised an exception.
        * `ResolutionCancelled`: The provider's `should_cancel` raised.
        * `ResolutionTooDeep`: `max_rounds` decisions were not enough.
        """
        reporter = self.reporter if self.reporter is not None else BaseReporter()
        resolution = Resolution(self.provider, reporter)
        state = resolution.resolve(package, version, max_rounds=max_rounds)
        return Result(
            mapping=state.mapping,
            graph=_build_graph(resolution, state.mapping),
        )


def resolve(
    provider: AbstractProvider[KT, VT],
    package: KT,
    version: VT,
    reporter: BaseReporter | None = None,
) -> dict[KT, VT]:
    """Resolve dependencies of ``package`` at ``version``.

    Return a mapping from each required package to its chosen version.
    """
    return dict(Resolver(provider, reporter).resolve(package, version).mapping)
