from __future__ import annotations

from collections import namedtuple
from typing import Any, Generic, Iterable, Iterator, TypeVar

from .structs import VT

VS = TypeVar("VS", bound="VersionSet")


class VersionSet(Generic[VT]):
    """Delegate class describing the set algebra the resolver relies on.

    Implementations must be *canonical*: two instances denoting the same
    versions compare (and hash) equal. Subset tests are implemented as
    ``a.intersection(b) == a``, so a non-canonical representation makes the
    resolver misbehave.

    Only ``empty``, ``singleton``, ``complement``, ``intersection`` and
    ``contains`` are required; the rest is derived from them.
    """

    @classmethod
    def empty(cls: type[VS]) -> VS:
        """Build the set containing no versions."""
        raise NotImplementedError

    @classmethod
    def singleton(cls: type[VS], version: VT) -> VS:
        """Build the set containing only ``version``."""
        raise NotImplementedError

    def complement(self: VS) -> VS:
        raise NotImplementedError

    def intersection(self: VS, other: VS) -> VS:
        raise NotImplementedError

    def contains(self, version: VT) -> bool:
        raise NotImplementedError

    @classmethod
    def full(cls: type[VS]) -> VS:
        return cls.empty().complement()

    def union(self: VS, other: VS) -> VS:
        return self.complement().intersection(other.complement()).complement()

    def is_disjoint(self: VS, other: VS) -> bool:
        return self.intersection(other) == type(self).empty()

    def subset_of(self: VS, other: VS) -> bool:
        return self.intersection(other) == self

    def __contains__(self, version: VT) -> bool:
        return self.contains(version)


UNBOUNDED = 0
INCLUDED = 1
EXCLUDED = 2

Bound = namedtuple("Bound", ["kind", "version"])

_UNBOUNDED = Bound(UNBOUNDED, None)


def _flip(bound: Bound) -> Bound:
    """Turn the end of a segment into the start of the adjacent gap."""
    if bound.kind == INCLUDED:
        return Bound(EXCLUDED, bound.version)
    return Bound(INCLUDED, bound.version)


def _lower_key(bound: Bound) -> tuple:
    if bound.kind == UNBOUNDED:
        return (0,)
    return (1, bound.version, 0 if bound.kind == INCLUDED else 1)


def _upper_key(bound: Bound) -> tuple:
    if bound.kind == UNBOUNDED:
        return (2,)
    return (1, bound.version, 0 if bound.kind == EXCLUDED else 1)


def _is_valid_segment(lower: Bound, upper: Bound) -> bool:
    if lower.kind == UNBOUNDED or upper.kind == UNBOUNDED:
        return True
    if lower.version < upper.version:
        return True
    return (
        lower.version == upper.version
        and lower.kind == INCLUDED
        and upper.kind == INCLUDED
    )


def _is_above_lower(bound: Bound, version: Any) -> bool:
    if bound.kind == UNBOUNDED:
        return True
    if bound.kind == INCLUDED:
        return bound.version <= version
    return bound.version < version


def _is_below_upper(bound: Bound, version: Any) -> bool:
    if bound.kind == UNBOUNDED:
        return True
    if bound.kind == INCLUDED:
        return version <= bound.version
    return version < bound.version


def _format_segment(lower: Bound, upper: Bound) -> str:
    if lower.kind == UNBOUNDED and upper.kind == UNBOUNDED:
        return "*"
    if lower.kind == UNBOUNDED:
        op = "<=" if upper.kind == INCLUDED else "<"
        return f"{op}{upper.version}"
    if upper.kind == UNBOUNDED:
        op = ">=" if lower.kind == INCLUDED else ">"
        return f"{op}{lower.version}"
    if (
        lower.kind == INCLUDED
        and upper.kind == INCLUDED
        and lower.version == upper.version
    ):
        return str(lower.version)
    low = ">=" if lower.kind == INCLUDED else ">"
    high = "<=" if upper.kind == INCLUDED else "<"
    return f"{low}{lower.version}, {high}{upper.version}"


class Range(VersionSet[VT]):
    """Default version set: a union of intervals over ordered versions.

    Any totally ordered version type works. Segments are kept sorted,
    non-empty, and neither overlapping nor touching, which makes the
    representation canonical.

    The algebra assumes versions are dense: ``>1, <2`` is not considered
    empty even if no version exists between 1 and 2. Providers report such
    gaps by returning no version from ``choose_version()``.
    """

    def __init__(self, segments: Iterable[tuple[Bound, Bound]] = ()) -> None:
        self._segments = tuple(segments)

    @classmethod
    def empty(cls) -> Range[VT]:
        return cls()

    @classmethod
    def full(cls) -> Range[VT]:
        return cls([(_UNBOUNDED, _UNBOUNDED)])

    @classmethod
    def singleton(cls, version: VT) -> Range[VT]:
        bound = Bound(INCLUDED, version)
        return cls([(bound, bound)])

    @classmethod
    def higher_than(cls, version: VT) -> Range[VT]:
        """Versions ``>= version``."""
        return cls([(Bound(INCLUDED, version), _UNBOUNDED)])

    @classmethod
    def strictly_higher_than(cls, version: VT) -> Range[VT]:
        """Versions ``> version``."""
        return cls([(Bound(EXCLUDED, version), _UNBOUNDED)])

    @classmethod
    def lower_than(cls, version: VT) -> Range[VT]:
        """Versions ``<= version``."""
        return cls([(_UNBOUNDED, Bound(INCLUDED, version))])

    @classmethod
    def strictly_lower_than(cls, version: VT) -> Range[VT]:
        """Versions ``< version``."""
        return cls([(_UNBOUNDED, Bound(EXCLUDED, version))])

    @classmethod
    def between(cls, lower: VT, upper: VT) -> Range[VT]:
        """Versions ``>= lower, < upper``."""
        start = Bound(INCLUDED, lower)
        end = Bound(EXCLUDED, upper)
        if not _is_valid_segment(start, end):
            return cls()
        return cls([(start, end)])

    @property
    def segments(self) -> tuple[tuple[Bound, Bound], ...]:
        return self._segments

    def __repr__(self) -> str:
        return f"Range({str(self)!r})"

    def __str__(self) -> str:
        if not self._segments:
            return "∅"
        return " | ".join(_format_segment(lo, hi) for lo, hi in self._segments)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return self._segments == other._segments

    def __hash__(self) -> int:
        return hash(self._segments)

    def __bool__(self) -> bool:
        return bool(self._segments)

    def __iter__(self) -> Iterator[tuple[Bound, Bound]]:
        return iter(self._segments)

    def as_singleton(self) -> VT | None:
        """Return the only version in this set, if it is a singleton."""
        if len(self._segments) != 1:
            return None
        lower, upper = self._segments[0]
        if (
            lower.kind == INCLUDED
            and upper.kind == INCLUDED
            and lower.version == upper.version
        ):
            return lower.version
        return None

    def contains(self, version: VT) -> bool:
        for lower, upper in self._segments:
            if not _is_below_upper(upper, version):
                continue
            return _is_above_lower(lower, version)
        return False

    def complement(self) -> Range[VT]:
        if not self._segments:
            return type(self).full()
        segments = []
        start = _UNBOUNDED
        for lower, upper in self._segments:
            if lower.kind != UNBOUNDED:
                segments.append((start, _flip(lower)))
            if upper.kind == UNBOUNDED:
                return type(self)(segments)
            start = _flip(upper)
        segments.append((start, _UNBOUNDED))
        return type(self)(segments)

    def intersection(self, other: Range[VT]) -> Range[VT]:
        segments = []
        left = self._segments
        right = other._segments
        i = j = 0
        while i < len(left) and j < len(right):
            left_lower, left_upper = left[i]
            right_lower, right_upper = right[j]
            lower = max(left_lower, right_lower, key=_lower_key)
            upper = min(left_upper, right_upper, key=_upper_key)
            if _is_valid_segment(lower, upper):
                segments.append((lower, upper))
            if _upper_key(left_upper) <= _upper_key(right_upper):
                i += 1
            else:
                j += 1
        return type(self)(segments)

    def union(self, other: Range[VT]) -> Range[VT]:
        pending = sorted(
            self._segments + other._segments,
            key=lambda segment: _lower_key(segment[0]),
        )
        segments: list[tuple[Bound, Bound]] = []
        for lower, upper in pending:
            if segments and _touches(segments[-1][1], lower):
                last_lower, last_upper = segments[-1]
                segments[-1] = (
                    last_lower,
                    max(last_upper, upper, key=_upper_key),
                )
            else:
                segments.append((lower, upper))
        return type(self)(segments)


def _touches(upper: Bound, lower: Bound) -> bool:
    """Whether a segment ending at ``upper`` meets one starting at ``lower``.

    ``lower`` is known not to start before the first segment does.
    """
    if upper.kind == UNBOUNDED or lower.kind == UNBOUNDED:
        return True
    if upper.version != lower.version:
        return upper.version > lower.version
    return not (upper.kind == EXCLUDED and lower.kind == EXCLUDED)
