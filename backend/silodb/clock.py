from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

# Ledger timestamps are stored as naive wall-clock time of the site.
UTC_OFFSET_HOURS = float(os.getenv("SILODB_UTC_OFFSET_HOURS", "-4"))


class Clock:
    """Produces ledger timestamps at a fixed UTC offset."""

    def __init__(self, utc_offset_hours: Optional[float] = None) -> None:
        hours = UTC_OFFSET_HOURS if utc_offset_hours is None else utc_offset_hours
        self.tz = timezone(timedelta(hours=hours))

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz).replace(tzinfo=None)


class FixedClock(Clock):
    """Clock frozen at a given instant; `advance` moves it forward."""

    def __init__(self, at: datetime) -> None:
        super().__init__()
        self._at = at

    def now(self) -> datetime:
        return self._at

    def advance(self, **kwargs) -> datetime:
        self._at = self._at + timedelta(**kwargs)
        return self._at


default_clock = Clock()


def resolve_clock(clock: Optional[Clock]) -> Clock:
    return clock or default_clock
