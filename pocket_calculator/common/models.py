"""Pydantic models for history entries and batch results."""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from pocket_calculator.common.parser import format_number


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    """A successful calculation kept in the session history."""

    expression: str = Field(..., description="Expression as typed by the user")
    result: float = Field(..., description="Evaluated numeric result")
    timestamp: datetime = Field(default_factory=_utcnow, description="When the calculation happened")


class OperationResult(BaseModel):
    """Outcome of one line of a batch operations file."""

    line: int = Field(..., ge=1, description="Line number in the input file")
    expression: str = Field(..., description="Original arithmetic expression")
    result: Optional[float] = Field(default=None, description="Evaluated result, if any")
    error: Optional[str] = Field(default=None, description="Error message when evaluation failed")

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_line(self) -> str:
        """Render the result the way it is written to a results file."""
        if self.ok:
            return f"{self.expression} = {format_number(self.result)}"
        return f"{self.expression} -> ERROR: {self.error}"
