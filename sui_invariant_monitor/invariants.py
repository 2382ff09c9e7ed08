"""Invariant definitions evaluated against protocol snapshots.

Every check builds an InvariantComputation holding each numeric input it used and a rendering of
its final comparison, so a result can be explained without re-reading the snapshot.

Quantities are attacker-influenced on-chain values: derived amounts use saturating arithmetic
clamped at u128, and pass/fail decisions never rely on a value that wrapped or went negative.
"""

from abc import ABC, abstractmethod

from sui_invariant_monitor.constants import MIN_COLLATERAL_RATIO_PERCENT, PERCENT, U128_MAX
from sui_invariant_monitor.formatters import abs_diff, format_index, saturating_add, saturating_mul
from sui_invariant_monitor.models import InvariantComputation, InvariantResult, ProtocolState, SuggestedInvariant


class Invariant(ABC):
    """A named rule comparing the current (and optionally previous) snapshot."""

    id: str = ""
    name: str = ""
    description: str = ""
    formula: str = ""
    executable: bool = True

    def evaluate(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        """Evaluate the invariant. Never raises: failures become Error results."""
        try:
            return self.check(state, previous)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            return InvariantResult.error(self.id, self.name, self.description, str(ex) or type(ex).__name__)

    @abstractmethod
    def check(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        """Run the comparison. Implementations may raise; evaluate() contains it."""

    def _ok(self, computation: InvariantComputation) -> InvariantResult:
        return InvariantResult.ok(self.id, self.name, self.description, computation)

    def _violated(self, computation: InvariantComputation, reason: str) -> InvariantResult:
        return InvariantResult.violated(self.id, self.name, self.description, computation, reason)


class TotalSupplyConservation(Invariant):
    """INV-001: total supply must equal reserves plus outstanding borrows."""

    id = "INV-001"
    name = "Total Supply Conservation"
    description = "Protocol total supply equals reserves plus outstanding borrows"
    formula = "total_supply == total_reserves + total_borrowed"

    def check(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        expected = saturating_add(state.total_reserves, state.total_borrowed)
        actual = state.total_supply
        holds = actual == expected

        computation = (
            InvariantComputation(self.formula)
            .with_input("total_supply", actual)
            .with_input("total_reserves", state.total_reserves)
            .with_input("total_borrowed", state.total_borrowed)
            .with_input("expected", expected)
            .with_result(f"{actual} {'==' if holds else '!='} {expected}")
        )
        if holds:
            return self._ok(computation)
        return self._violated(computation, f"Supply mismatch: actual {actual} != expected {expected}")


class CollateralizationRatio(Invariant):
    """INV-002: outstanding borrows must be over-collateralized (minimum 150%)."""

    id = "INV-002"
    name = "Collateralization Ratio"
    description = f"Outstanding borrows must be over-collateralized (minimum {MIN_COLLATERAL_RATIO_PERCENT}%)"
    formula = "collateral_value >= total_borrowed * 1.5"

    def check(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        collateral = state.collateral_value
        borrowed = state.total_borrowed

        if borrowed == 0:
            computation = (
                InvariantComputation(self.formula)
                .with_input("collateral_value", collateral)
                .with_input("total_borrowed", 0)
                .with_input("required_collateral", 0)
                .with_result("No borrows outstanding - OK")
            )
            return self._ok(computation)

        required = saturating_mul(borrowed, MIN_COLLATERAL_RATIO_PERCENT) // PERCENT
        # Cross-multiplied on unbounded ints: no flooring of the 1.5x requirement, no clamping.
        collateral_scaled = collateral * PERCENT
        borrowed_scaled = borrowed * MIN_COLLATERAL_RATIO_PERCENT
        holds = collateral_scaled >= borrowed_scaled
        current_ratio = min(collateral_scaled // borrowed, U128_MAX)
        op = ">=" if holds else "<"

        computation = (
            InvariantComputation(self.formula)
            .with_input("collateral_value", collateral)
            .with_input("total_borrowed", borrowed)
            .with_input("required_collateral", required)
            .with_input("collateral_x100", collateral_scaled)
            .with_input("borrowed_x150", borrowed_scaled)
            .with_input("current_ratio_percent", current_ratio)
            .with_input("min_ratio_percent", MIN_COLLATERAL_RATIO_PERCENT)
            .with_result(
                f"{collateral} * {PERCENT} {op} {borrowed} * {MIN_COLLATERAL_RATIO_PERCENT} "
                f"({current_ratio}% {op} {MIN_COLLATERAL_RATIO_PERCENT}%)"
            )
        )
        if holds:
            return self._ok(computation)
        return self._violated(
            computation, f"Under-collateralized: {current_ratio}% < {MIN_COLLATERAL_RATIO_PERCENT}% minimum"
        )


class AccountingBalanceIntegrity(Invariant):
    """INV-003: reserves tracked internally must equal the tokens actually held on-chain."""

    id = "INV-003"
    name = "Accounting Balance Integrity"
    description = "Internal balance matches on-chain token balance"
    formula = "internal_balance == on_chain_balance"

    def check(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        internal = state.total_reserves
        on_chain = state.on_chain_balance
        holds = internal == on_chain

        computation = (
            InvariantComputation(self.formula)
            .with_input("internal_balance", internal)
            .with_input("on_chain_balance", on_chain)
            .with_input("difference", abs_diff(internal, on_chain))
            .with_result(f"{internal} {'==' if holds else '!='} {on_chain}")
        )
        if holds:
            return self._ok(computation)
        return self._violated(computation, f"Balance mismatch: internal {internal} != on-chain {on_chain}")


class InterestMonotonicity(Invariant):
    """INV-004: the interest index must never decrease between cycles."""

    id = "INV-004"
    name = "Interest Index Monotonicity"
    description = "Interest index must never decrease over time"
    formula = "current_index >= previous_index"

    def check(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        current_index = state.interest_index

        if previous is None:
            computation = (
                InvariantComputation(self.formula)
                .with_input("current_index", current_index)
                .with_input("previous_index", "N/A (first check)")
                .with_result("First evaluation - no previous state to compare")
            )
            return self._ok(computation)

        previous_index = previous.interest_index
        holds = current_index >= previous_index

        computation = (
            InvariantComputation(self.formula)
            .with_input("current_index", current_index)
            .with_input("previous_index", previous_index)
            .with_input("current_index_decimal", format_index(current_index))
            .with_input("previous_index_decimal", format_index(previous_index))
            .with_input("delta", current_index - previous_index if holds else 0)
        )
        if holds:
            return self._ok(computation.with_result(f"{current_index} >= {previous_index}"))

        decrease = previous_index - current_index
        computation = computation.with_input("decrease", decrease).with_result(f"{current_index} < {previous_index}")
        return self._violated(
            computation,
            f"Interest index decreased: {previous_index} -> {current_index} (delta: {decrease})",
        )


class LiquidityConstraint(Invariant):
    """INV-005: total borrowed must not exceed total supply."""

    id = "INV-005"
    name = "Liquidity Constraint"
    description = "Total borrowed must not exceed total supply"
    formula = "total_borrowed <= total_supply"

    def check(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        supply = state.total_supply
        borrowed = state.total_borrowed
        holds = borrowed <= supply

        available = supply - borrowed if supply >= borrowed else 0
        if supply > 0:
            utilization = saturating_mul(borrowed, PERCENT) // supply
        elif borrowed == 0:
            utilization = 0
        else:
            # Borrowed without supply.
            utilization = U128_MAX

        computation = (
            InvariantComputation(self.formula)
            .with_input("total_supply", supply)
            .with_input("total_borrowed", borrowed)
            .with_input("available_liquidity", available)
            .with_input("utilization_percent", utilization)
            .with_result(f"{borrowed} {'<=' if holds else '>'} {supply} ({utilization}% utilization)")
        )
        if holds:
            return self._ok(computation)
        return self._violated(computation, f"Over-borrowed: {borrowed} > {supply} (negative liquidity)")


class AdvisoryInvariant(Invariant):
    """
    Registry entry proposed by LLM analysis.

    Carries descriptive text only and is never evaluated. It is listed with a "Pending evaluation"
    placeholder until an executable invariant is registered under the same id.
    """

    executable = False

    def __init__(self, suggestion: SuggestedInvariant, *, package_id: str = "", module_name: str = ""):
        self.suggestion = suggestion
        self.id = suggestion.id
        self.name = suggestion.name
        self.description = suggestion.description
        self.formula = suggestion.formula
        self.package_id = package_id
        self.module_name = module_name

    def check(self, state: ProtocolState, previous: ProtocolState | None) -> InvariantResult:
        raise NotImplementedError(f"{self.id} is advisory and has no executable comparison")

    def placeholder(self) -> InvariantResult:
        computation = (
            InvariantComputation(self.formula)
            .with_input("severity", self.suggestion.severity)
            .with_input("fields_used", ", ".join(self.suggestion.fields_used) or "n/a")
            .with_result("Pending evaluation")
        )
        if self.package_id:
            computation = computation.with_input("source", f"{self.package_id}::{self.module_name}")
        return self._ok(computation)


def default_invariants() -> list[Invariant]:
    """The built-in invariants, in evaluation order."""
    return [
        TotalSupplyConservation(),
        CollateralizationRatio(),
        AccountingBalanceIntegrity(),
        InterestMonotonicity(),
        LiquidityConstraint(),
    ]
