__all__ = [
    "AbstractProvider",
    "AbstractResolver",
    "BaseReporter",
    "ConflictStatistics",
    "DefaultStringReporter",
    "Incompatibility",
    "InconsistentCandidate",
    "OfflineDependencyProvider",
    "ProviderError",
    "Range",
    "ResolutionCancelled",
    "ResolutionError",
    "ResolutionImpossible",
    "ResolutionTooDeep",
    "Resolver",
    "SelfDependency",
    "Term",
    "UnknownDependencies",
    "VersionSet",
    "__version__",
    "resolve",
]

__version__ = "0.1.0.dev0"


from .incompatibilities import Incompatibility
from .providers import AbstractProvider, OfflineDependencyProvider
from .reporters import BaseReporter, DefaultStringReporter
from .resolvers import (
    AbstractResolver,
    InconsistentCandidate,
    ProviderError,
    ResolutionCancelled,
    ResolutionError,
    ResolutionImpossible,
    ResolutionTooDeep,
    Resolver,
    SelfDependency,
    resolve,
)
from .structs import ConflictStatistics, UnknownDependencies
from .terms import Term
from .versions import Range, VersionSet
