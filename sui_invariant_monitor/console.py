"""Console output for evaluation cycles."""

from collections.abc import Sequence

from sui_invariant_monitor.formatters import format_index, format_sci, format_timestamp
from sui_invariant_monitor.models import InvariantResult, InvariantStatus, ProtocolState

STATUS_EMOJI = {
    InvariantStatus.OK: "✅",
    InvariantStatus.VIOLATED: "🚨",
    InvariantStatus.ERROR: "⚠️",
}


def print_snapshot(s: ProtocolState) -> None:
    """Print the normalized snapshot fields."""
    print(f"📦 Snapshot @ {format_timestamp(s.timestamp)}  •  epoch={s.last_update_epoch}")
    print(f"   • Supply:      {s.total_supply} ({format_sci(s.total_supply)})")
    print(f"   • Borrowed:    {s.total_borrowed} ({format_sci(s.total_borrowed)})")
    print(f"   • Reserves:    {s.total_reserves} ({format_sci(s.total_reserves)})")
    print(f"   • Collateral:  {s.collateral_value} ({format_sci(s.collateral_value)})")
    print(f"   • Shares:      {s.outstanding_shares}")
    print(f"   • Interest:    {format_index(s.interest_index)}")
    print(f"   • On-chain:    {s.on_chain_balance}")


def print_cycle_summary(results: Sequence[InvariantResult], snapshot: ProtocolState) -> None:
    """Print one evaluation cycle: snapshot, one line per invariant, totals."""
    violations = sum(1 for r in results if r.status is InvariantStatus.VIOLATED)
    errors = sum(1 for r in results if r.status is InvariantStatus.ERROR)

    print("\n" + "=" * 70)
    print_snapshot(snapshot)
    print("-" * 70)
    for r in results:
        print(f"{STATUS_EMOJI[r.status]} {r.id}  {r.name}")
        print(f"      {r.computation.result}")
        if r.violation_reason:
            print(f"      ↳ {r.violation_reason}")
    print("-" * 70)
    headline = "🚨" if violations else ("⚠️" if errors else "✅")
    print(f"{headline} Evaluation complete: {len(results)} invariants, {violations} violations, {errors} errors")
    print("=" * 70)
