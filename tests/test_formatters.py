import pytest

from sui_invariant_monitor.constants import U64_MAX, U128_MAX
from sui_invariant_monitor.formatters import (
    abs_diff,
    as_uint,
    format_index,
    format_sci,
    format_timestamp,
    saturating_add,
    saturating_mul,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("123", 123),
        ("  42  ", 42),
        (7, 7),
        (0, 0),
        ("0", 0),
        (str(U128_MAX), U128_MAX),
        (str(U128_MAX + 1), None),
        ("-1", None),
        (-1, None),
        (1.5, None),
        (True, None),
        ("0x10", None),
        ("12abc", None),
        ("", None),
        (None, None),
        ("١٢", None),
    ],
)
def test_as_uint(value, expected):
    assert as_uint(value) == expected


def test_as_uint_respects_maximum():
    assert as_uint(str(U64_MAX), maximum=U64_MAX) == U64_MAX
    assert as_uint(str(U64_MAX + 1), maximum=U64_MAX) is None


def test_saturating_ops_clamp_at_u128():
    assert saturating_add(1, 2) == 3
    assert saturating_add(U128_MAX, 1) == U128_MAX
    assert saturating_mul(10, 150) == 1500
    assert saturating_mul(U128_MAX, 150) == U128_MAX
    assert saturating_mul(U64_MAX, U64_MAX) == U64_MAX * U64_MAX


def test_abs_diff_never_negative():
    assert abs_diff(5, 3) == 2
    assert abs_diff(3, 5) == 2
    assert abs_diff(0, U128_MAX) == U128_MAX


def test_format_index():
    assert format_index(1_000_000_000) == "1.000000000"
    assert format_index(1_050_000_001) == "1.050000001"
    assert format_index(0) == "0.000000000"


def test_format_sci():
    assert format_sci(0) == "0"
    assert format_sci(1000) == "1e3"
    assert format_sci(16900000000000) == "1.69e13"
    assert format_sci(-1000) == "-1e3"


def test_format_timestamp():
    assert format_timestamp(0) == "1970-01-01 00:00:00 UTC"
