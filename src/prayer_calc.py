"""Locate the next and previous prayer, compute countdowns and holding windows.

Everything here is a pure function of a Timeline and the current instant.
"""

import datetime
import math
from typing import Dict, NamedTuple, Optional

from src.prayer_times import PRAYER_ORDER, Timeline

# Countdown modes
TO_ATHAN = "athan"
TO_IQAMAH = "iqamah"

DEFAULT_HOLDING_DURATIONS: Dict[str, datetime.timedelta] = {
    "fajr": datetime.timedelta(minutes=15),
    "sunrise": datetime.timedelta(0),
    "dhuhr": datetime.timedelta(minutes=10),
    "jumuah1": datetime.timedelta(minutes=20),
    "jumuah2": datetime.timedelta(minutes=20),
    "asr": datetime.timedelta(minutes=10),
    "maghrib": datetime.timedelta(minutes=15),
    "isha": datetime.timedelta(minutes=15),
}


class NextPrayer(NamedTuple):
    prayer: str
    athan: Optional[datetime.datetime]
    iqamah: Optional[datetime.datetime]


class PreviousPrayer(NamedTuple):
    prayer: str
    start: datetime.datetime
    iqamah: Optional[datetime.datetime]


class Countdown(NamedTuple):
    target: datetime.datetime
    mode: str
    remaining: int


def find_next(timeline: Timeline, now: datetime.datetime) -> str:
    """
    Name of the next prayer whose athan or iqamah is still ahead.

    Prayers without any leg are skipped. Returns "fajr" once every leg of the
    day has passed, meaning the next event is tomorrow's fajr.
    """
    for prayer in PRAYER_ORDER:
        time = timeline[prayer]
        if time.is_empty:
            continue
        if time.athan is not None and now < time.athan:
            return prayer
        if time.iqamah is not None and now < time.iqamah:
            return prayer
    return "fajr"


def next_prayer(timeline: Timeline, now: datetime.datetime) -> NextPrayer:
    prayer = find_next(timeline, now)
    time = timeline[prayer]
    return NextPrayer(prayer, time.athan, time.iqamah)


def find_previous(timeline: Timeline, now: datetime.datetime) -> Optional[PreviousPrayer]:
    """
    The prayer with the latest effective start at or before now, or None.

    The effective start is the athan, or the iqamah for prayers without an
    athan (jumuah2). Ties go to the prayer earliest in display order.
    """
    found = None
    for prayer in PRAYER_ORDER:
        time = timeline[prayer]
        start = time.start
        if start is None or start > now:
            continue
        if found is None or start > found.start:
            found = PreviousPrayer(prayer, start, time.iqamah)
    return found


def seconds_until(target: datetime.datetime, now: datetime.datetime) -> int:
    """Whole seconds from now until target, floored (negative if past)."""
    return math.floor((target - now).total_seconds())


def compute_countdown(
    timeline: Timeline,
    next_name: str,
    now: datetime.datetime,
    next_day_fajr: Optional[datetime.datetime] = None,
) -> Optional[Countdown]:
    """
    Decide what the countdown runs to.

    After the effective isha (iqamah, else athan) it runs to next_day_fajr.
    Between a prayer's athan and iqamah it runs to the iqamah. Otherwise it
    runs to the next prayer's start. Returns None when there is no target.
    """
    isha = timeline["isha"]
    isha_effective = isha.iqamah if isha.iqamah is not None else isha.athan
    if isha_effective is None or now >= isha_effective:
        if next_day_fajr is None:
            return None
        return Countdown(next_day_fajr, TO_ATHAN, seconds_until(next_day_fajr, now))

    time = timeline[next_name]
    if time.athan is not None and now > time.athan and time.iqamah is not None:
        return Countdown(time.iqamah, TO_IQAMAH, seconds_until(time.iqamah, now))

    target = time.start
    if target is None:
        return None
    return Countdown(target, TO_ATHAN, seconds_until(target, now))


def get_prayer_holding_duration(prayer: str, durations: Optional[Dict[str, datetime.timedelta]] = None) -> datetime.timedelta:
    """Holding duration for a prayer; unknown names use the dhuhr duration."""
    table = durations if durations is not None else DEFAULT_HOLDING_DURATIONS
    if prayer in table:
        return table[prayer]
    return table.get("dhuhr", DEFAULT_HOLDING_DURATIONS["dhuhr"])


def is_within_holding_period(
    iqamah: Optional[datetime.datetime], now: datetime.datetime, duration: datetime.timedelta
) -> bool:
    """True for now in [iqamah, iqamah + duration)."""
    if iqamah is None:
        return False
    return iqamah <= now < iqamah + duration


def format_time_to_go(seconds: int) -> str:
    """Format seconds as HH:MM:SS. Hours are not wrapped; negatives show 00:00:00."""
    if seconds < 0:
        return "00:00:00"
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_friendly_countdown(seconds: int) -> str:
    """Format seconds as '1h 1m 1s', '2m 5s' or '45s'. Negatives show '0s'."""
    if seconds < 0:
        return "0s"
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    if h > 0:
        return f"{h}h {m}m {s}s"
    if m > 0:
        return f"{m}m {s}s"
    return f"{s}s"


def convert_to_12_hour_format(time24: str) -> str:
    """'13:45' -> '1:45', '00:00' -> '12:00' (no AM/PM)."""
    hours, minutes = time24.split(":")
    hours12 = int(hours) % 12 or 12
    return f"{hours12}:{minutes}"


def format_time(value) -> str:
    """Format an 'HH:MM' string or a datetime as 12-hour H:MM; empty for None."""
    if not value:
        return ""
    if isinstance(value, datetime.datetime):
        value = value.strftime("%H:%M")
    return convert_to_12_hour_format(value)


def get_prayer_display_state(
    prayer: str, timeline: Timeline, now: datetime.datetime, current_prayer: Optional[str] = None
) -> str:
    """'now' for the active prayer, 'past' once started while a prayer is active, else 'future'."""
    if current_prayer == prayer:
        return "now"
    start = timeline[prayer].start
    if start is None:
        return "future"
    if current_prayer and now >= start:
        return "past"
    return "future"
