"""Notification sinks used by calculator sessions."""
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from pocket_calculator.common.config import DEFAULT_SETTINGS
from pocket_calculator.common.logger import logger


@runtime_checkable
class Notifier(Protocol):
    """Anything that can show a short message to the user."""

    def notify(self, message: str) -> None:
        ...


class Notification(BaseModel):
    """A message shown for a fixed duration, then dismissed."""

    message: str = Field(..., description="Text shown to the user")
    duration_ms: int = Field(default=DEFAULT_SETTINGS.notification_duration_ms, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_visible(self, now: Optional[datetime] = None) -> bool:
        """Return True until ``duration_ms`` has elapsed since creation."""
        now = now or datetime.now(timezone.utc)
        return now - self.created_at < timedelta(milliseconds=self.duration_ms)


class LoggingNotifier(BaseModel):
    """Log every message and keep the latest one as the visible notification."""

    duration_ms: int = Field(default=DEFAULT_SETTINGS.notification_duration_ms, ge=0)
    current: Optional[Notification] = None

    def notify(self, message: str) -> None:
        logger.info(f"🔔 {message}")
        self.current = Notification(message=message, duration_ms=self.duration_ms)

    def visible_message(self, now: Optional[datetime] = None) -> Optional[str]:
        """Return the current message if it has not been dismissed yet."""
        if self.current is not None and self.current.is_visible(now):
            return self.current.message
        return None


class RecordingNotifier(BaseModel):
    """Collect messages in order; used by the REPL and by tests."""

    messages: List[str] = Field(default_factory=list)

    def notify(self, message: str) -> None:
        self.messages.append(message)

    @property
    def last(self) -> Optional[str]:
        return self.messages[-1] if self.messages else None
