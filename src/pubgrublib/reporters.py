from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any, Callable, Mapping

from .derivation import Derived, External, FromDependencyOf

if TYPE_CHECKING:
    from .derivation import Node
    from .terms import Term


class BaseReporter(object):
    """Delegate class to provide progress reporting for the resolver."""

    def starting(self):
        """Called before the resolution actually starts."""

    def starting_round(self, index):
        """Called before each round of resolution starts.

        The index is zero-based.
        """

    def ending_round(self, index, state):
        """Called before each round of resolution ends.

        This is NOT called if the resolution ends at this round. Use `ending`
        if you want to report finalization. The index is zero-based.
        """

    def ending(self, state):
        """Called before the resolution ends successfully."""

    def adding_incompatibility(self, incompatibility):
        """Called when a new incompatibility is stored.

        This covers facts from the provider (dependencies, missing versions)
        as well as ones learned from conflicts.
        """

    def pinning(self, package, version):
        """Called when a version is decided for a package."""

    def resolving_conflict(self, incompatibility):
        """Called when the partial solution satisfies an incompatibility."""

    def backtracking(self, decision_level):
        """Called when decisions above ``decision_level`` are undone."""


class DefaultStringReporter(object):
    """Turn a derivation tree into a human-readable explanation.

    Lines are produced causes first. A derived incompatibility used more
    than once is explained a single time, with a ``(n)`` marker at the end of
    its line, and later lines refer back to it by that number.
    """

    def __init__(self) -> None:
        self._ref_count = 0
        self._shared_with_ref: dict[int, int] = {}
        self._lines: list[str] = []
        # Pending work, last in first out.
        self._steps: list[Callable[[], None]] = []

    @classmethod
    def report(cls, derivation_tree: Node) -> str:
        if isinstance(derivation_tree, External):
            return str(derivation_tree)
        reporter = cls()
        reporter._explain(derivation_tree)
        while reporter._steps:
            reporter._steps.pop()()
        return "\n".join(reporter._lines)

    @staticmethod
    def string_terms(terms: Mapping[Any, Term]) -> str:
        """Describe an incompatibility from its terms."""
        items = list(terms.items())
        if not items:
            return "version solving failed"
        if len(items) == 1:
            ((package, term),) = items
            if term.positive:
                return f"{package} {term.version_set} is forbidden"
            return f"{package} {term.version_set} is mandatory"
        if len(items) == 2:
            (p1, t1), (p2, t2) = items
            if t1.positive and not t2.positive:
                return str(
                    FromDependencyOf(p1, t1.version_set, p2, t2.version_set)
                )
            if not t1.positive and t2.positive:
                return str(
                    FromDependencyOf(p2, t2.version_set, p1, t1.version_set)
                )
        joined = ", ".join(f"{package} {term}" for package, term in items)
        return f"{joined} are incompatible"

    def _add_line_ref(self) -> None:
        self._ref_count += 1
        if self._lines:
            self._lines[-1] = f"{self._lines[-1]} ({self._ref_count})"

    def _line_ref_of(self, shared_id: int | None) -> int | None:
        if shared_id is None:
            return None
        return self._shared_with_ref.get(shared_id)

    def _then_line(self, line: str) -> None:
        self._steps.append(functools.partial(self._lines.append, line))

    def _explain(self, derived: Derived) -> None:
        """Schedule the lines explaining ``derived``.

        Steps scheduled before this call run after the explanation.
        """
        self._steps.append(functools.partial(self._assign_line_ref, derived))
        self._steps.append(functools.partial(self._explain_causes, derived))

    def _assign_line_ref(self, derived: Derived) -> None:
        if derived.shared_id is not None:
            if derived.shared_id not in self._shared_with_ref:
                self._add_line_ref()
                self._shared_with_ref[derived.shared_id] = self._ref_count

    def _explain_causes(self, current: Derived) -> None:
        cause1, cause2 = current.cause1, current.cause2
        terms = self.string_terms(current.terms)
        if isinstance(cause1, External) and isinstance(cause2, External):
            self._lines.append(f"Because {cause1} and {cause2}, {terms}.")
        elif isinstance(cause1, Derived) and isinstance(cause2, External):
            self._report_one_each(cause1, cause2, terms)
        elif isinstance(cause1, External) and isinstance(cause2, Derived):
            self._report_one_each(cause2, cause1, terms)
        else:
            self._report_both_derived(current, cause1, cause2, terms)

    def _report_both_derived(
        self,
        current: Derived,
        derived1: Derived,
        derived2: Derived,
        terms: str,
    ) -> None:
        ref1 = self._line_ref_of(derived1.shared_id)
        ref2 = self._line_ref_of(derived2.shared_id)
        if ref1 is not None and ref2 is not None:
            self._lines.append(
                "Because {} ({}) and {} ({}), {}.".format(
                    self.string_terms(derived1.terms),
                    ref1,
                    self.string_terms(derived2.terms),
                    ref2,
                    terms,
                )
            )
        elif ref1 is not None:
            self._then_line(self._and_explain_ref(ref1, derived1, terms))
            self._explain(derived2)
        elif ref2 is not None:
            self._then_line(self._and_explain_ref(ref2, derived2, terms))
            self._explain(derived1)
        else:
            self._steps.append(
                functools.partial(
                    self._after_first_derived, current, derived1, derived2, terms
                )
            )
            self._explain(derived1)

    def _after_first_derived(
        self,
        current: Derived,
        derived1: Derived,
        derived2: Derived,
        terms: str,
    ) -> None:
        if derived1.shared_id is not None:
            # It now has a line reference, start over from this node.
            self._lines.append("")
            self._explain(current)
            return
        self._add_line_ref()
        ref1 = self._ref_count
        self._lines.append("")
        self._then_line(self._and_explain_ref(ref1, derived1, terms))
        self._explain(derived2)

    def _report_one_each(
        self, derived: Derived, external: External, terms: str
    ) -> None:
        ref = self._line_ref_of(derived.shared_id)
        if ref is not None:
            self._lines.append(
                "Because {} ({}) and {}, {}.".format(
                    self.string_terms(derived.terms), ref, external, terms
                )
            )
            return
        prior1, prior2 = derived.cause1, derived.cause2
        if isinstance(prior1, Derived) and isinstance(prior2, External):
            self._then_line(f"And because {prior2} and {external}, {terms}.")
            self._explain(prior1)
        elif isinstance(prior1, External) and isinstance(prior2, Derived):
            self._then_line(f"And because {prior1} and {external}, {terms}.")
            self._explain(prior2)
        else:
            self._then_line(f"And because {external}, {terms}.")
            self._explain(derived)

    def _and_explain_ref(self, ref: int, derived: Derived, terms: str) -> str:
        return "And because {} ({}), {}.".format(
            self.string_terms(derived.terms), ref, terms
        )
