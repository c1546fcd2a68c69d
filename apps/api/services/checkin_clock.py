"""
Canonical clock for the check-in jobs.

Every job reads "now" once, in one configured time zone, and derives the
calendar date, the minute and the weekday name from that single reading.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, FrozenSet, Optional
from zoneinfo import ZoneInfo

from core.exceptions import ScheduleDataError

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class ClockReading:
    instant: datetime  # aware, UTC
    local_date: date
    minute: time  # seconds and microseconds zeroed
    weekday: str


class CheckinClock:
    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def read(self, now: Optional[datetime] = None) -> ClockReading:
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            # Naive instants are taken as UTC.
            now = now.replace(tzinfo=timezone.utc)

        local = now.astimezone(self.tz)
        return ClockReading(
            instant=now.astimezone(timezone.utc),
            local_date=local.date(),
            minute=time(local.hour, local.minute),
            weekday=WEEKDAYS[local.weekday()],
        )


def parse_active_days(timing_id: Any, raw: Any) -> FrozenSet[str]:
    """
    Normalize a timing's active_days value to a set of weekday names.

    Accepts a list of names or a JSON string holding one. Anything else
    raises ScheduleDataError so the caller can skip the timing.
    """
    value = raw
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise ScheduleDataError(timing_id, f"active_days is not valid JSON: {e}") from e

    if not isinstance(value, (list, tuple)):
        raise ScheduleDataError(timing_id, f"active_days must be a list, got {type(value).__name__}")

    days = set()
    for entry in value:
        if not isinstance(entry, str):
            raise ScheduleDataError(timing_id, f"active_days entry {entry!r} is not a weekday name")
        name = entry.strip().lower()
        if name not in WEEKDAYS:
            raise ScheduleDataError(timing_id, f"active_days entry {entry!r} is not a weekday name")
        days.add(name)
    return frozenset(days)
