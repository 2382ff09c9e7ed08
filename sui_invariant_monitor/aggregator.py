"""Fold raw on-chain records into one ProtocolState snapshot."""

import sys
import time
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from sui_invariant_monitor.constants import U64_FIELDS, U64_MAX, U128_FIELDS, U128_MAX
from sui_invariant_monitor.errors import AggregationError
from sui_invariant_monitor.formatters import as_uint
from sui_invariant_monitor.models import ProtocolState, RawRecord


def extract_fields(record: RawRecord, *, record_index: int = 0) -> dict[str, int]:
    """
    Extract recognized fields from one record.

    Unknown keys are ignored. A recognized key with an unparsable value is reported on stderr
    and skipped, so one bad field never aborts the cycle.
    """
    out: dict[str, int] = {}
    for name, maximum in [*((f, U128_MAX) for f in U128_FIELDS), *((f, U64_MAX) for f in U64_FIELDS)]:
        if name not in record:
            continue
        raw = record[name]
        value = as_uint(raw, maximum=maximum)
        if value is None:
            print(f"⚠️  Ignoring malformed field {name}={raw!r} in record #{record_index}", file=sys.stderr)
            continue
        out[name] = value
    return out


def aggregate(records: Sequence[Any], on_chain_balance: int) -> ProtocolState:
    """
    Aggregate protocol state from raw records.

    Starts from a default state stamped "now" carrying `on_chain_balance`, then overlays each
    record's recognized fields in input order (last write wins per field).

    Raises:
        AggregationError: if `on_chain_balance` is not an unsigned u128 integer.
    """
    balance = as_uint(on_chain_balance)
    if balance is None:
        raise AggregationError(f"Invalid on-chain balance: {on_chain_balance!r}")

    overlay: dict[str, int] = {}
    for i, record in enumerate(records):
        if not isinstance(record, Mapping):
            print(f"⚠️  Skipping record #{i}: expected a mapping, got {type(record).__name__}", file=sys.stderr)
            continue
        overlay.update(extract_fields(record, record_index=i))

    state = ProtocolState(timestamp=int(time.time()), on_chain_balance=balance)
    return replace(state, **overlay)
