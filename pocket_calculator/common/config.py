"""Calculator settings."""
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "POCKET_CALCULATOR_"


class CalculatorSettings(BaseModel):
    """
    Limits and numeric tolerances shared by the evaluator and the sessions.

    Settings are immutable so one instance can be shared by any number of
    sessions without one of them changing the limits of another.
    """

    model_config = ConfigDict(frozen=True)

    max_length: int = Field(default=20, ge=1, description="Maximum expression length")
    history_limit: int = Field(default=10, ge=1, description="Number of history entries kept")
    zero_tolerance: float = Field(default=1e-10, ge=0, description="Results closer to zero snap to 0")
    decimals: int = Field(default=10, ge=0, le=15, description="Decimal places kept in results")
    notification_duration_ms: int = Field(default=3000, ge=0, description="Notification display time")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CalculatorSettings":
        """
        Build settings from ``POCKET_CALCULATOR_*`` environment variables.

        ``POCKET_CALCULATOR_MAX_LENGTH=30`` overrides ``max_length`` and so on.
        Unset variables keep their defaults; invalid values raise a pydantic
        ``ValidationError``.

        :param Mapping environ: Environment to read, ``os.environ`` by default

        :return: Validated settings
        :rtype: CalculatorSettings
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = f"{ENV_PREFIX}{name.upper()}"
            if key in environ:
                values[name] = environ[key]
        return cls(**values)


DEFAULT_SETTINGS = CalculatorSettings()
