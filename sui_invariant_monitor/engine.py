"""Invariant engine: owns the check registry and the previous snapshot."""

from collections.abc import Iterable, Sequence

from sui_invariant_monitor.invariants import AdvisoryInvariant, Invariant, default_invariants
from sui_invariant_monitor.models import InvariantResult, InvariantStatus, ProtocolState, SuggestedInvariant


class InvariantEngine:
    """
    Evaluates registered invariants against the current snapshot and the one before it.

    Two states: no previous snapshot (initial) and has previous snapshot. Every evaluate_all()
    call moves to (or stays in) the latter. Not safe for concurrent mutation; callers serialize
    evaluation and registry changes.
    """

    def __init__(self, invariants: Iterable[Invariant] | None = None):
        self.invariants: list[Invariant] = list(invariants) if invariants is not None else default_invariants()
        self._previous_state: ProtocolState | None = None

    @property
    def previous_state(self) -> ProtocolState | None:
        return self._previous_state

    def evaluate_all(self, state: ProtocolState) -> list[InvariantResult]:
        """Evaluate every executable invariant, then retain `state` as the previous snapshot."""
        results = [inv.evaluate(state, self._previous_state) for inv in self.invariants if inv.executable]
        self._previous_state = state
        return results

    # Registry

    def ids(self) -> list[str]:
        return [inv.id for inv in self.invariants]

    def get(self, invariant_id: str) -> Invariant | None:
        for inv in self.invariants:
            if inv.id == invariant_id:
                return inv
        return None

    def register(self, invariant: Invariant) -> None:
        """Add an invariant, replacing any entry with the same id in place."""
        for i, inv in enumerate(self.invariants):
            if inv.id == invariant.id:
                self.invariants[i] = invariant
                return
        self.invariants.append(invariant)

    def add_suggested(
        self, suggestions: Iterable[SuggestedInvariant], *, package_id: str = "", module_name: str = ""
    ) -> int:
        """Append advisory entries for suggestions whose id is not registered yet. Returns the count added."""
        added = 0
        for suggestion in suggestions:
            if self.get(suggestion.id) is not None:
                continue
            self.invariants.append(AdvisoryInvariant(suggestion, package_id=package_id, module_name=module_name))
            added += 1
        return added

    def remove(self, invariant_id: str) -> bool:
        before = len(self.invariants)
        self.invariants = [inv for inv in self.invariants if inv.id != invariant_id]
        return len(self.invariants) != before

    def pending_results(self) -> list[InvariantResult]:
        """Listing placeholders for advisory (non-executable) entries."""
        return [inv.placeholder() for inv in self.invariants if isinstance(inv, AdvisoryInvariant)]

    # Derived queries over a result sequence

    @staticmethod
    def violation_count(results: Sequence[InvariantResult]) -> int:
        return sum(1 for r in results if r.status is InvariantStatus.VIOLATED)

    @staticmethod
    def error_count(results: Sequence[InvariantResult]) -> int:
        return sum(1 for r in results if r.status is InvariantStatus.ERROR)

    @staticmethod
    def all_ok(results: Sequence[InvariantResult]) -> bool:
        """True iff at least one result exists and every result is Ok."""
        return bool(results) and all(r.status is InvariantStatus.OK for r in results)

    @staticmethod
    def get_violations(results: Sequence[InvariantResult]) -> list[InvariantResult]:
        return [r for r in results if r.status is InvariantStatus.VIOLATED]
