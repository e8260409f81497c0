"""
Display Clock
=============

Injectable clock deciding what "now" means for the display.

MODES:
- REAL: venue wall time (system time at the venue's fixed UTC offset)
- TEST: configured start date + day offset + time of day, moved by hand
  in 5 and 30 minute steps so the selector can be exercised without
  waiting for real time to pass

All times are naive venue-local datetimes, the same convention the
schedule parser uses.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from .contracts import OperatingMode


FIVE_MINUTES = 5
HALF_HOUR = 30


def venue_now(utc_offset_hours: float) -> datetime:
    """Current wall time at the venue, naive."""
    venue = timezone(timedelta(hours=utc_offset_hours))
    return datetime.now(venue).replace(tzinfo=None)


@dataclass
class TestClock:
    """
    A hand-driven clock anchored on the first conference day.

    Moving past midnight rolls the day offset forward, and moving back
    before midnight rolls it back.
    """
    __test__ = False  # not a pytest test class

    start_date: date
    day: int = 0
    time_of_day: time = time(9, 0)

    def now(self) -> datetime:
        return datetime.combine(self.start_date + timedelta(days=self.day), self.time_of_day)

    def advance(self, minutes: int) -> datetime:
        moment = self.now() + timedelta(minutes=minutes)
        self.day = (moment.date() - self.start_date).days
        self.time_of_day = moment.time()
        return moment

    def retreat(self, minutes: int) -> datetime:
        return self.advance(-minutes)


@dataclass
class DisplayClock:
    """Switches between venue wall time and a TestClock."""
    test_clock: TestClock
    mode: OperatingMode = OperatingMode.REAL
    utc_offset_hours: float = 1.0
    wall: Optional[Callable[[], datetime]] = field(default=None, repr=False)

    def now(self) -> datetime:
        if self.mode is OperatingMode.TEST:
            return self.test_clock.now()
        if self.wall is not None:
            return self.wall()
        return venue_now(self.utc_offset_hours)

    def is_test_mode(self) -> bool:
        return self.mode is OperatingMode.TEST

    def toggle_mode(self) -> OperatingMode:
        if self.mode is OperatingMode.TEST:
            self.mode = OperatingMode.REAL
        else:
            self.mode = OperatingMode.TEST
        return self.mode
