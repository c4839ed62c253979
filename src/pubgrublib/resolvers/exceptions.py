from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..derivation import collapse_no_versions
from ..reporters import DefaultStringReporter

if TYPE_CHECKING:
    from ..derivation import Node


class ResolverException(Exception):
    """A base class for all exceptions raised by this module.

    Exceptions derived by this class should all be handled in this module. Any
    bubbling pass the resolver should be treated as a bug.
    """


class ResolutionError(ResolverException):
    pass


class ResolutionImpossible(ResolutionError):
    """No set of versions satisfies the root package's dependencies.

    ``derivation_tree`` explains why; ``str()`` of the exception is the
    default report of the tree with "no versions" leaves collapsed.
    """

    def __init__(self, derivation_tree: Node) -> None:
        super().__init__(derivation_tree)
        self.derivation_tree = derivation_tree

    def __str__(self) -> str:
        return self.report()

    def report(self, reporter_cls: type = DefaultStringReporter) -> str:
        tree = collapse_no_versions(self.derivation_tree)
        return reporter_cls.report(tree)


class ResolutionCancelled(ResolutionError):
    """The provider asked for resolution to stop.

    ``reason`` is the exception raised by ``should_cancel()``.
    """

    def __init__(self, reason: BaseException) -> None:
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"Resolution cancelled: {self.reason}"


class ProviderError(ResolutionError):
    """A provider method raised an exception; the original is in ``error``."""

    def __init__(
        self,
        operation: str,
        package: Any,
        version: Any,
        error: BaseException,
    ) -> None:
        super().__init__(operation, package, version, error)
        self.operation = operation
        self.package = package
        self.version = version
        self.error = error

    def __str__(self) -> str:
        if self.version is None:
            target = repr(self.package)
        else:
            target = f"{self.package!r} {self.version}"
        return f"{self.operation}() failed for {target}: {self.error}"


class InconsistentCandidate(ResolutionError):
    def __init__(self, package: Any, version: Any, version_set: Any) -> None:
        super().__init__(package, version, version_set)
        self.package = package
        self.version = version
        self.version_set = version_set

    def __str__(self) -> str:
        return "Provided version {!r} of {!r} does not satisfy {}".format(
            self.version, self.package, self.version_set
        )


class SelfDependency(ResolutionError):
    def __init__(self, package: Any, version: Any) -> None:
        super().__init__(package, version)
        self.package = package
        self.version = version

    def __str__(self) -> str:
        return f"{self.package} {self.version} depends on itself"


class ResolutionTooDeep(ResolutionError):
    def __init__(self, round_count: int) -> None:
        super().__init__(round_count)
        self.round_count = round_count
