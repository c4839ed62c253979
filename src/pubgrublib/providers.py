from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Generic,
    Iterable,
    Iterator,
    Mapping,
    Tuple,
    Union,
)

from .structs import KT, VT, ConflictStatistics, UnknownDependencies
from .versions import Range, VersionSet

if TYPE_CHECKING:
    from typing import Any, Protocol

    class Priority(Protocol):
        def __gt__(self, __other: Any) -> bool: ...


Dependencies = Union[Mapping[KT, VersionSet[VT]], UnknownDependencies]


class AbstractProvider(Generic[KT, VT]):
    """Delegate class to provide the required interface for the resolver.

    ``version_set_cls`` is the version set type used in dependencies. The
    resolver uses it to build singletons and empty sets of its own.
    """

    version_set_cls: type[VersionSet] = Range

    def prioritize(
        self,
        package: KT,
        version_set: VersionSet[VT],
        statistics: ConflictStatistics,
    ) -> Priority:
        """Produce a sort key telling how urgently a package should be decided.

        The *higher* the return value is, the earlier the package is decided.
        Among packages with equal priority, the one the resolver learned about
        first wins.

        :param package: A package that is required but not decided yet.
        :param version_set: The versions of ``package`` still allowed.
        :param statistics: How often ``package`` took part in conflicts so
            far, as a `ConflictStatistics`.

        The value is cached until either ``version_set`` or ``statistics``
        change, so it should only depend on these arguments.

        Good heuristics include:

        * Packages with few versions left in ``version_set`` should be decided
          first. They are the most likely to fail, and failing early is cheap.
        * Packages often involved in conflicts should be decided first, so
          the resolver gets to learn about them early.
        """
        raise NotImplementedError

    def choose_version(
        self, package: KT, version_set: VersionSet[VT]
    ) -> VT | None:
        """Pick the version of a package to try next.

        The returned version *must* be in ``version_set``. Return ``None`` if
        no such version exists; the resolver then records that fact and looks
        for another way.
        """
        raise NotImplementedError

    def get_dependencies(self, package: KT, version: VT) -> Dependencies:
        """Get dependencies of a package version.

        Return a mapping of each dependency's identifier to the version set it
        must be in. Return an `UnknownDependencies` instance if dependencies
        cannot be determined; this version is then excluded from the
        solution, which is different from having no dependencies.
        """
        raise NotImplementedError

    def should_cancel(self) -> None:
        """Called once per decision. Raise an exception to stop resolving.

        The exception is available as ``reason`` of the `ResolutionCancelled`
        error raised by the resolver.
        """


class OfflineDependencyProvider(AbstractProvider[KT, VT]):
    """A provider holding all dependency data in memory.

    Versions of each package are picked from the highest down. Packages with
    the most conflicts, then with the fewest versions left, are decided
    first.
    """

    def __init__(self, version_set_cls: type[VersionSet] = Range) -> None:
        self.version_set_cls = version_set_cls
        self._dependencies: dict[KT, dict[VT, dict[KT, VersionSet[VT]]]] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._dependencies!r})"

    def add_dependencies(
        self,
        package: KT,
        version: VT,
        dependencies: (
            Mapping[KT, VersionSet[VT]]
            | Iterable[Tuple[KT, VersionSet[VT]]]
        ) = (),
    ) -> None:
        """Register a package version and its dependencies.

        Registering the same version again replaces its dependencies.
        """
        versions = self._dependencies.setdefault(package, {})
        versions[version] = dict(dependencies)

    def packages(self) -> Iterator[KT]:
        return iter(self._dependencies)

    def versions(self, package: KT) -> list[VT]:
        """Known versions of a package, lowest first."""
        return sorted(self._dependencies.get(package, ()))

    def dependencies(
        self, package: KT, version: VT
    ) -> Mapping[KT, VersionSet[VT]] | None:
        return self._dependencies.get(package, {}).get(version)

    def prioritize(
        self,
        package: KT,
        version_set: VersionSet[VT],
        statistics: ConflictStatistics,
    ) -> tuple[int, int]:
        count = sum(
            1 for v in self._dependencies.get(package, ()) if v in version_set
        )
        return (statistics.conflict_count, -count)

    def choose_version(
        self, package: KT, version_set: VersionSet[VT]
    ) -> VT | None:
        return max(
            (v for v in self._dependencies.get(package, ()) if v in version_set),
            default=None,
        )

    def get_dependencies(self, package: KT, version: VT) -> Dependencies:
        dependencies = self.dependencies(package, version)
        if dependencies is None:
            return UnknownDependencies(f"{package} {version} is not known")
        return dependencies
