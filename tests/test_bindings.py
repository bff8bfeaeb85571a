import datetime
from decimal import Decimal

import pytest

from snowlite import Binding, to_binding
from snowlite.bindings import bindings_to_wire


@pytest.mark.parametrize(
    "value, expected",
    [
        (10, Binding("FIXED", "10")),
        (-(2**127), Binding("FIXED", str(-(2**127)))),
        (1.5, Binding("REAL", "1.5")),
        (True, Binding("BOOLEAN", "true")),
        (False, Binding("BOOLEAN", "false")),
        ("Henry", Binding("TEXT", "Henry")),
        (b"foo", Binding("TEXT", "666f6f")),
        (Decimal("12"), Binding("FIXED", "12")),
        (Decimal("1.25"), Binding("REAL", "1.25")),
        (None, Binding("TEXT", None)),
        (datetime.date(2023, 1, 1), Binding("TEXT", "2023-01-01")),
        (datetime.time(1, 1, 1), Binding("TEXT", "01:01:01")),
        (datetime.datetime(2023, 1, 1, 1, 1, 1), Binding("TEXT", "2023-01-01 01:01:01")),
    ],
)
def test_to_binding(value, expected):
    assert to_binding(value) == expected


def test_integer_outside_128_bits_is_rejected():
    with pytest.raises(OverflowError):
        to_binding(2**127)


def test_unsupported_type_is_rejected():
    with pytest.raises(TypeError, match="list"):
        to_binding([1, 2])


def test_wire_positions_follow_binding_order():
    wire = bindings_to_wire([to_binding(10), to_binding("Henry")])
    assert wire == {
        "1": {"type": "FIXED", "value": "10"},
        "2": {"type": "TEXT", "value": "Henry"},
    }
    assert list(wire) == ["1", "2"]


def test_null_binding_serializes_null_value():
    assert bindings_to_wire([to_binding(None)]) == {"1": {"type": "TEXT", "value": None}}
