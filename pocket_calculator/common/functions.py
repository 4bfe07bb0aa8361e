"""Scientific one-argument functions."""
import math
from typing import Callable, Dict

from pocket_calculator.common.errors import InvalidValue


def _sqrt(value: float) -> float:
    if value < 0:
        raise InvalidValue("Square root of a negative number is not defined")
    return math.sqrt(value)


def _log(value: float) -> float:
    if value <= 0:
        raise InvalidValue("Logarithm of a non-positive number is not defined")
    return math.log10(value)


# Trigonometric functions take degrees
SCIENTIFIC_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "sqrt": _sqrt,
    "power": lambda value: math.pow(value, 2),
    "sin": lambda value: math.sin(math.radians(value)),
    "cos": lambda value: math.cos(math.radians(value)),
    "tan": lambda value: math.tan(math.radians(value)),
    "log": _log,
}


def parse_operand(value) -> float:
    """
    Convert a displayed value into a finite float.

    :param value: Number or display string (e.g., "12.5")

    :return: Parsed value
    :rtype: float
    :raises InvalidValue: If the value is not a finite number
    """
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidValue(f"Invalid value: {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidValue(f"Invalid value: {value!r}")
    return number


def apply_scientific(name: str, value) -> float:
    """
    Apply a scientific function by name.

    :param str name: One of ``sqrt``, ``power``, ``sin``, ``cos``, ``tan``, ``log``
    :param value: Operand, parsed with ``parse_operand``

    :return: Raw (uncleaned) result
    :rtype: float
    :raises InvalidValue: On an unknown function, a non-finite operand or a domain error
    """
    if name not in SCIENTIFIC_FUNCTIONS:
        raise InvalidValue(f"Unknown function: {name!r}")
    operand = parse_operand(value)
    try:
        result = SCIENTIFIC_FUNCTIONS[name](operand)
    except OverflowError as exc:
        raise InvalidValue(f"{name}({operand}) is too large") from exc
    if not math.isfinite(result):
        raise InvalidValue(f"{name}({operand}) is not a finite number")
    return result
