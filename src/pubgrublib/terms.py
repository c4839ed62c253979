from __future__ import annotations

import enum
from typing import Generic

from .structs import VT
from .versions import VersionSet


class TermRelation(enum.Enum):
    """How a term relates to a set of terms known to hold."""

    SATISFIED = "satisfied"
    CONTRADICTED = "contradicted"
    INCONCLUSIVE = "inconclusive"


class Term(Generic[VT]):
    """A version set tagged positive or negative.

    A positive term holds if a version was selected and is in the set. A
    negative term holds if no version was selected, or the selected one is
    outside the set.
    """

    def __init__(self, positive: bool, version_set: VersionSet[VT]) -> None:
        self.positive = positive
        self.version_set = version_set

    @classmethod
    def any(cls, version_set_cls: type[VersionSet]) -> Term[VT]:
        """A term that always holds."""
        return cls(False, version_set_cls.empty())

    @classmethod
    def empty(cls, version_set_cls: type[VersionSet]) -> Term[VT]:
        """A term that never holds."""
        return cls(True, version_set_cls.empty())

    @classmethod
    def exact(cls, version_set_cls: type[VersionSet], version: VT) -> Term[VT]:
        return cls(True, version_set_cls.singleton(version))

    def __repr__(self) -> str:
        polarity = "Positive" if self.positive else "Negative"
        return f"{polarity}({self.version_set!r})"

    def __str__(self) -> str:
        if self.positive:
            return str(self.version_set)
        return f"Not ( {self.version_set} )"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Term):
            return NotImplemented
        return (
            self.positive == other.positive
            and self.version_set == other.version_set
        )

    def __hash__(self) -> int:
        return hash((self.positive, self.version_set))

    def is_any(self) -> bool:
        return not self.positive and self.version_set == self._empty_set()

    def is_empty(self) -> bool:
        return self.positive and self.version_set == self._empty_set()

    def _empty_set(self) -> VersionSet[VT]:
        return type(self.version_set).empty()

    def negate(self) -> Term[VT]:
        return type(self)(not self.positive, self.version_set)

    def contains(self, version: VT) -> bool:
        """Evaluate this term against a selected version."""
        if self.positive:
            return self.version_set.contains(version)
        return not self.version_set.contains(version)

    def unwrap_positive(self) -> VersionSet[VT]:
        if not self.positive:
            raise ValueError(f"negative term {self!r} has no positive set")
        return self.version_set

    def intersection(self, other: Term[VT]) -> Term[VT]:
        if self.positive and other.positive:
            return type(self)(
                True, self.version_set.intersection(other.version_set)
            )
        if self.positive:
            return type(self)(
                True,
                self.version_set.intersection(other.version_set.complement()),
            )
        if other.positive:
            return type(self)(
                True,
                other.version_set.intersection(self.version_set.complement()),
            )
        return type(self)(False, self.version_set.union(other.version_set))

    def union(self, other: Term[VT]) -> Term[VT]:
        return self.negate().intersection(other.negate()).negate()

    def subset_of(self, other: Term[VT]) -> bool:
        """Whether this term being true implies that ``other`` is true."""
        return self.intersection(other) == self

    def is_disjoint(self, other: Term[VT]) -> bool:
        return self.intersection(other).is_empty()

    def relation_with(self, other_terms_intersection: Term[VT]) -> TermRelation:
        """Check how this term relates to the intersection of known terms.

        SATISFIED if the known terms imply this one, CONTRADICTED if they
        cannot both hold, INCONCLUSIVE otherwise.
        """
        full_intersection = self.intersection(other_terms_intersection)
        if full_intersection == other_terms_intersection:
            return TermRelation.SATISFIED
        if full_intersection.is_empty():
            return TermRelation.CONTRADICTED
        return TermRelation.INCONCLUSIVE
