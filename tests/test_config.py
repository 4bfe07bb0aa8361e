"""Test class CalculatorSettings."""
from pydantic import ValidationError
import pytest

from pocket_calculator.common.config import CalculatorSettings


def test_defaults() -> None:
    """Defaults match the calculator's limits."""
    settings = CalculatorSettings()
    assert settings.max_length == 20
    assert settings.history_limit == 10
    assert settings.zero_tolerance == 1e-10
    assert settings.decimals == 10
    assert settings.notification_duration_ms == 3000


def test_from_env() -> None:
    """POCKET_CALCULATOR_* variables override defaults."""
    settings = CalculatorSettings.from_env(
        {"POCKET_CALCULATOR_MAX_LENGTH": "30", "POCKET_CALCULATOR_HISTORY_LIMIT": "5", "OTHER": "x"}
    )
    assert settings.max_length == 30
    assert settings.history_limit == 5
    assert settings.decimals == 10


def test_from_env_invalid_value() -> None:
    with pytest.raises(ValidationError):
        CalculatorSettings.from_env({"POCKET_CALCULATOR_MAX_LENGTH": "0"})


def test_settings_are_frozen() -> None:
    """Settings cannot be changed once created."""
    settings = CalculatorSettings()
    with pytest.raises(ValidationError):
        settings.max_length = 5
