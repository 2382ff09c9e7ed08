import time

import pytest

from sui_invariant_monitor.aggregator import aggregate, extract_fields
from sui_invariant_monitor.constants import INTEREST_INDEX_SCALE, U64_MAX, U128_MAX
from sui_invariant_monitor.errors import AggregationError
from sui_invariant_monitor.models import ProtocolState


def test_aggregate_without_records_returns_defaults():
    before = int(time.time())
    s = aggregate([], 400)

    assert s.timestamp >= before
    assert s.on_chain_balance == 400
    assert s.total_supply == 0
    assert s.total_borrowed == 0
    assert s.interest_index == INTEREST_INDEX_SCALE
    assert s.last_update_epoch == 0


def test_aggregate_parses_strings_and_native_ints():
    s = aggregate(
        [
            {
                "total_supply": "1000",
                "total_borrowed": 600,
                "total_reserves": " 400 ",
                "collateral_value": "900",
                "outstanding_shares": "5",
                "interest_index": "1050000000",
                "last_update_epoch": "42",
            }
        ],
        400,
    )
    assert (s.total_supply, s.total_borrowed, s.total_reserves) == (1000, 600, 400)
    assert s.collateral_value == 900
    assert s.outstanding_shares == 5
    assert s.interest_index == 1_050_000_000
    assert s.last_update_epoch == 42


def test_aggregate_last_write_wins_per_field():
    s = aggregate(
        [
            {"total_supply": "1", "total_reserves": "7"},
            {"total_supply": "2", "total_borrowed": "3"},
        ],
        0,
    )
    assert s.total_supply == 2
    assert s.total_borrowed == 3
    # Not overwritten by the second record.
    assert s.total_reserves == 7


def test_malformed_field_keeps_previous_value(capsys):
    s = aggregate([{"total_supply": "10"}, {"total_supply": "-1", "total_borrowed": "5"}], 0)

    assert s.total_supply == 10
    assert s.total_borrowed == 5
    assert "Ignoring malformed field total_supply" in capsys.readouterr().err


def test_malformed_field_falls_back_to_default():
    s = aggregate([{"interest_index": "not-a-number", "total_supply": "3"}], 0)
    assert s.interest_index == INTEREST_INDEX_SCALE
    assert s.total_supply == 3


def test_integer_width_limits():
    s = aggregate(
        [{"total_supply": str(U128_MAX), "total_borrowed": str(U128_MAX + 1), "last_update_epoch": str(U64_MAX + 1)}],
        0,
    )
    assert s.total_supply == U128_MAX
    assert s.total_borrowed == 0
    assert s.last_update_epoch == 0


def test_unknown_keys_are_ignored():
    assert extract_fields({"id": {"id": "0x1"}, "owner": "0x2", "total_supply": "9"}) == {"total_supply": 9}


def test_non_mapping_record_is_skipped(capsys):
    s = aggregate(["garbage", None, {"total_supply": "8"}], 0)
    assert s.total_supply == 8
    assert "Skipping record #0" in capsys.readouterr().err


@pytest.mark.parametrize("balance", [-1, U128_MAX + 1, "abc", None, 1.0])
def test_invalid_on_chain_balance_raises(balance):
    with pytest.raises(AggregationError):
        aggregate([], balance)


def test_protocol_state_dict_preserves_large_integers():
    s = ProtocolState(timestamp=1, total_supply=U128_MAX, interest_index=INTEREST_INDEX_SCALE)
    data = s.to_dict()

    assert data["total_supply"] == str(U128_MAX)
    assert ProtocolState.from_dict(data) == s
