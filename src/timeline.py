"""Build the combined athan/iqamah timeline for a calendar date.

Friday substitution: when the day's iqamah record carries jumuah1, jumuah1
takes dhuhr's athan, dhuhr loses its iqamah and jumuah2 has an iqamah only.
Maghrib's iqamah is always its athan; sunrise never has an iqamah.
"""

import datetime
import logging
from typing import Callable, Dict, Optional, Tuple

from src.prayer_data import find_athan_by_date, find_iqamah_by_date, to_date_string
from src.prayer_times import PRAYER_ORDER, PrayerTime, Timeline
from src.schemas import AthanEntry, IqamahEntry

logger = logging.getLogger(__name__)

MAX_CACHED_DAYS = 4


def _own_athan(prayer):
    return lambda athan, iqamah, friday: getattr(athan, prayer)


def _own_iqamah(prayer):
    return lambda athan, iqamah, friday: getattr(iqamah, prayer) if iqamah else None


def _friday_only(getter):
    return lambda athan, iqamah, friday: getter(athan, iqamah, friday) if friday else None


def _unless_friday(getter):
    return lambda athan, iqamah, friday: None if friday else getter(athan, iqamah, friday)


def _never(athan, iqamah, friday):
    return None


# prayer -> (athan resolver, iqamah resolver); each takes (athan, iqamah, friday)
LEG_RESOLVERS: Dict[str, Tuple[Callable, Callable]] = {
    "fajr": (_own_athan("fajr"), _own_iqamah("fajr")),
    "sunrise": (_own_athan("sunrise"), _never),
    "dhuhr": (_own_athan("dhuhr"), _unless_friday(_own_iqamah("dhuhr"))),
    "jumuah1": (_friday_only(_own_athan("dhuhr")), _friday_only(_own_iqamah("jumuah1"))),
    "jumuah2": (_never, _friday_only(_own_iqamah("jumuah2"))),
    "asr": (_own_athan("asr"), _own_iqamah("asr")),
    "maghrib": (_own_athan("maghrib"), _own_athan("maghrib")),
    "isha": (_own_athan("isha"), _own_iqamah("isha")),
}


def is_friday_mode(iqamah: Optional[IqamahEntry]) -> bool:
    return iqamah is not None and iqamah.jumuah1 is not None


def resolve_legs(
    prayer: str, athan: AthanEntry, iqamah: Optional[IqamahEntry], friday: bool
) -> Tuple[Optional[str], Optional[str]]:
    """Return the (athan, iqamah) 'HH:MM' strings for one prayer on one day."""
    athan_leg, iqamah_leg = LEG_RESOLVERS[prayer]
    return athan_leg(athan, iqamah, friday), iqamah_leg(athan, iqamah, friday)


def to_instant(date: datetime.date, time_str: Optional[str], tz=None) -> Optional[datetime.datetime]:
    """Combine a date and an 'HH:MM' string into a datetime, localized when tz is given."""
    if not time_str:
        return None
    hour, minute = map(int, time_str.split(":"))
    naive = datetime.datetime.combine(date, datetime.time(hour, minute))
    return tz.localize(naive) if tz else naive


def empty_timeline(date: datetime.date) -> Timeline:
    return Timeline(date, {prayer: PrayerTime() for prayer in PRAYER_ORDER})


def build_timeline(
    date: datetime.date, athan: Optional[AthanEntry], iqamah: Optional[IqamahEntry], tz=None
) -> Timeline:
    """
    Combine one day's raw records into a Timeline.

    Pure function of its inputs. Without an athan record every leg is absent.
    """
    if athan is None:
        return empty_timeline(date)
    friday = is_friday_mode(iqamah)
    times = {}
    for prayer in PRAYER_ORDER:
        athan_str, iqamah_str = resolve_legs(prayer, athan, iqamah, friday)
        times[prayer] = PrayerTime(to_instant(date, athan_str, tz), to_instant(date, iqamah_str, tz))
    return Timeline(date, times)


def _as_date(date) -> datetime.date:
    if isinstance(date, datetime.datetime):
        return date.date()
    if isinstance(date, str):
        return datetime.date.fromisoformat(date)
    return date


def get_combined_timeline(date, tz=None) -> Timeline:
    """Look up the records for a date and build its timeline (all absent when there is no data)."""
    day = _as_date(date)
    date_str = to_date_string(day)
    return build_timeline(day, find_athan_by_date(date_str), find_iqamah_by_date(date_str), tz)


class TimelineCache:
    """Timelines keyed by date string, so each date is built once."""

    def __init__(self, tz=None, builder: Callable = get_combined_timeline):
        self.tz = tz
        self._builder = builder
        self._timelines: Dict[str, Timeline] = {}

    def get(self, date) -> Timeline:
        day = _as_date(date)
        key = day.isoformat()
        timeline = self._timelines.get(key)
        if timeline is None:
            timeline = self._builder(day, self.tz)
            if timeline.is_empty:
                logger.warning(f"No prayer times available for {key}")
            else:
                logger.info(f"Built prayer timeline for {key}")
            self._timelines[key] = timeline
            while len(self._timelines) > MAX_CACHED_DAYS:
                self._timelines.pop(next(iter(self._timelines)))
        return timeline

    def clear(self) -> None:
        self._timelines.clear()

    def __len__(self) -> int:
        return len(self._timelines)
