"""Prayer names and the per-day combined athan/iqamah timeline."""

import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# Canonical display order. Locating and tie-breaking always follow this order.
PRAYER_ORDER = ["fajr", "sunrise", "dhuhr", "jumuah1", "jumuah2", "asr", "maghrib", "isha"]

PRAYER_LABELS = {
    "fajr": "Fajr",
    "sunrise": "Sunrise",
    "dhuhr": "Dhuhr",
    "jumuah1": "Jumu'ah",
    "jumuah2": "Jumu'ah 2",
    "asr": "Asr",
    "maghrib": "Maghrib",
    "isha": "Isha",
    "athan": "Athan",
    "iqamah": "Iqamah",
    "prayer": "Prayer",
}

ATHAN = "athan"
IQAMAH = "iqamah"


@dataclass(frozen=True)
class PrayerTime:
    """Athan and iqamah instants for one prayer; either leg may be absent."""

    athan: Optional[datetime.datetime] = None
    iqamah: Optional[datetime.datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.athan is None and self.iqamah is None

    @property
    def start(self) -> Optional[datetime.datetime]:
        """Effective start: the athan, or the iqamah when there is no athan."""
        return self.athan if self.athan is not None else self.iqamah


EMPTY = PrayerTime()


@dataclass(frozen=True)
class Timeline:
    """Combined prayer times for one calendar date."""

    date: datetime.date
    times: Dict[str, PrayerTime] = field(default_factory=dict)

    def __getitem__(self, prayer: str) -> PrayerTime:
        return self.times.get(prayer, EMPTY)

    @property
    def date_string(self) -> str:
        return self.date.isoformat()

    @property
    def is_empty(self) -> bool:
        return all(self[p].is_empty for p in PRAYER_ORDER)

    @property
    def friday_mode(self) -> bool:
        """True when the day has a Jumu'ah congregation."""
        return self["jumuah1"].iqamah is not None

    @property
    def has_iqamah(self) -> bool:
        return self["fajr"].iqamah is not None

    def tick_view(self) -> "Timeline":
        """
        The timeline evaluated on each tick.

        On Friday mode days dhuhr is dropped: it is hidden from the table and
        shares its start with jumuah1, which must win the location.
        """
        if not self.friday_mode:
            return self
        times = {p: t for p, t in self.times.items() if p != "dhuhr"}
        return Timeline(self.date, times)

    def events(self) -> List[Tuple[datetime.datetime, str, str]]:
        """Every present leg as (instant, prayer, leg), ordered by instant then display order."""
        events = []
        for index, prayer in enumerate(PRAYER_ORDER):
            time = self[prayer]
            for leg_index, leg in enumerate((ATHAN, IQAMAH)):
                instant = getattr(time, leg)
                if instant is not None:
                    events.append((instant, index, leg_index, prayer, leg))
        events.sort(key=lambda e: (e[0], e[1], e[2]))
        return [(instant, prayer, leg) for instant, _, _, prayer, leg in events]
