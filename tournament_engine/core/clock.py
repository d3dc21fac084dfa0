"""Clock abstraction injected into every engine operation.

All timestamps handled by the engine are naive UTC datetimes, which is
also what SQLite hands back after a round trip.
"""
from datetime import date, datetime, timezone


class Clock:
    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock(Clock):
    """A clock that only moves when told to. Used by tests and replays."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, delta) -> datetime:
        self.current = self.current + delta
        return self.current


system_clock = SystemClock()
