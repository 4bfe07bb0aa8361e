"""Test scientific functions and operand parsing."""
import pytest

from pocket_calculator.common.errors import InvalidValue
from pocket_calculator.common.functions import apply_scientific, parse_operand


@pytest.mark.parametrize("value,expected", [
    ("12.5", 12.5),
    ("-3", -3.0),
    (4, 4.0),
])
def test_parse_operand(value, expected):
    assert parse_operand(value) == expected


@pytest.mark.parametrize("value", ["Error", "inf", "nan", None, ""])
def test_parse_operand_invalid(value):
    """Non-numeric and non-finite operands raise InvalidValue."""
    with pytest.raises(InvalidValue):
        parse_operand(value)


@pytest.mark.parametrize("name,value,expected", [
    ("sqrt", 16, 4.0),
    ("power", -3, 9.0),
    ("log", 100, 2.0),
    ("sin", 90, 1.0),
])
def test_apply_scientific(name, value, expected):
    assert apply_scientific(name, value) == pytest.approx(expected)


@pytest.mark.parametrize("name,value", [
    ("sqrt", -1),
    ("log", 0),
    ("exp", 1),
    ("power", 1e200),
])
def test_apply_scientific_invalid(name, value):
    """Domain errors, overflow and unknown functions raise InvalidValue."""
    with pytest.raises(InvalidValue):
        apply_scientific(name, value)
