"""Injectable time source."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

from .models import Timestamp, parse_timestamp


class Clock(ABC):
    """Source of the current instant for deadline and window logic."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        pass


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock pinned to an instant; tests move it with ``advance``/``set``."""

    def __init__(self, instant: Optional[Timestamp] = None):
        self._now = parse_timestamp(instant) if instant is not None else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, instant: Timestamp) -> None:
        self._now = parse_timestamp(instant)

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now
