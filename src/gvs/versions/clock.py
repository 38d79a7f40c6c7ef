"""Wall-clock implementation of the Clock capability."""

from datetime import datetime, timezone

from .interfaces import Clock


def _as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC so they can be compared with aware ones."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class RealClock(Clock):
    """Clock backed by the system time, always in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def is_before(self, first: datetime, second: datetime) -> bool:
        return _as_utc(first) < _as_utc(second)

    def is_after(self, first: datetime, second: datetime) -> bool:
        return _as_utc(first) > _as_utc(second)

    def hours_since(self, moment: datetime) -> float:
        return (self.now() - _as_utc(moment)).total_seconds() / 3600
