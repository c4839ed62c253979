from .abstract import AbstractResolver, Result
from .exceptions import (
    InconsistentCandidate,
    ProviderError,
    ResolutionCancelled,
    ResolutionError,
    ResolutionImpossible,
    ResolutionTooDeep,
    ResolverException,
    SelfDependency,
)
from .resolution import Resolution, Resolver, resolve

__all__ = [
    "AbstractResolver",
    "InconsistentCandidate",
    "ProviderError",
    "Resolver",
    "Resolution",
    "ResolutionCancelled",
    "ResolutionError",
    "ResolutionImpossible",
    "ResolutionTooDeep",
    "ResolverException",
    "Result",
    "SelfDependency",
    "resolve",
]
