from __future__ import annotations

import collections
from typing import TYPE_CHECKING, Any, Generic, Mapping

from ..structs import KT, VT

if TYPE_CHECKING:
    from ..providers import AbstractProvider
    from ..reporters import BaseReporter
    from ..structs import DirectedGraph

    class Result(Generic[KT, VT]):
        mapping: Mapping[KT, VT]
        graph: DirectedGraph[KT]

else:
    Result = collections.namedtuple("Result", ["mapping", "graph"])


class AbstractResolver(Generic[KT, VT]):
    """The thing that performs the actual resolution work."""

    base_exception = Exception

    def __init__(
        self,
        provider: AbstractProvider[KT, VT],
        reporter: BaseReporter | None = None,
    ) -> None:
        self.provider = provider
        self.reporter = reporter

    def resolve(self, package: KT, version: VT, **kwargs: Any) -> Result[KT, VT]:
        """Take a root package and version, and return the resolution result.

        This returns a representation of the final resolution state, with one
        guarenteed attribute ``mapping`` that contains resolved versions as
        values. The keys are package identifiers, as used by the provider.

        Raises an exception derived from ``base_exception`` on failure.
        """
        raise NotImplementedError
