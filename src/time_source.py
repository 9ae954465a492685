"""Current time for the screen: the real clock, or a simulated one for testing transitions."""

import datetime
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MIN_SPEED = 1
MAX_SPEED = 3600
MIN_TICK_MS = 16
REAL_TICK_MS = 1000
MANUAL_SET_GUARD = 0.5  # seconds without automatic advance after a manual edit


DATETIME_INPUT_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M")
TIME_INPUT_FORMATS = ("%H:%M:%S", "%H:%M")


def parse_time_input(text: str, today: datetime.date) -> datetime.datetime:
    """
    Parse a typed simulated time into a naive datetime.

    Accepts 'YYYY-MM-DD HH:MM[:SS]' (or with a 'T') or just 'HH:MM[:SS]',
    which is taken on `today`. Raises ValueError for anything else.
    """
    text = text.strip()
    for fmt in DATETIME_INPUT_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt)
        except ValueError:
            continue
    for fmt in TIME_INPUT_FORMATS:
        try:
            return datetime.datetime.combine(today, datetime.datetime.strptime(text, fmt).time())
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time {text!r}")


def shift(instant: datetime.datetime, delta: datetime.timedelta) -> datetime.datetime:
    """Add a timedelta, keeping pytz offsets right across DST changes."""
    shifted = instant + delta
    if shifted.tzinfo is not None and hasattr(shifted.tzinfo, "normalize"):
        shifted = shifted.tzinfo.normalize(shifted)
    return shifted


class TimeSource:
    """
    Supplies "now" once per tick.

    In production the real clock is re-sampled on every tick. Otherwise time
    may be simulated: each tick advances the simulated time by one second and
    the speed multiplier shortens the tick interval instead.
    """

    def __init__(
        self,
        tz=None,
        production: bool = True,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.tz = tz
        self.production = production
        self._clock = clock or (lambda: datetime.datetime.now(self.tz) if self.tz else datetime.datetime.now())
        self._monotonic = monotonic
        self._simulated: Optional[datetime.datetime] = None
        self._speed = MIN_SPEED
        self._last_manual_set = None
        self._current = self._clock()

    @property
    def is_simulating(self) -> bool:
        return not self.production and self._simulated is not None

    @property
    def speed(self) -> int:
        return self._speed

    @property
    def tick_interval_ms(self) -> int:
        if not self.is_simulating:
            return REAL_TICK_MS
        return max(MIN_TICK_MS, REAL_TICK_MS // self._speed)

    def now(self) -> datetime.datetime:
        return self._current

    def tick(self) -> datetime.datetime:
        """Advance to the next instant and return it."""
        if not self.is_simulating:
            self._current = self._clock()
            return self._current
        if self._last_manual_set is not None and self._monotonic() - self._last_manual_set < MANUAL_SET_GUARD:
            return self._current
        self._simulated = shift(self._simulated, datetime.timedelta(seconds=1))
        self._current = self._simulated
        return self._current

    def _localize(self, instant: datetime.datetime) -> datetime.datetime:
        if self.tz is None:
            return instant
        if instant.tzinfo is None:
            return self.tz.localize(instant)
        return self.tz.normalize(instant.astimezone(self.tz))

    def set_simulated_time(self, instant: datetime.datetime) -> None:
        if self.production:
            return
        self._simulated = self._localize(instant)
        self._current = self._simulated
        self._last_manual_set = self._monotonic()
        logger.info(f"Simulated time set to {self._simulated.isoformat()}")

    def set_speed(self, multiplier: int) -> None:
        if self.production:
            return
        self._speed = max(MIN_SPEED, min(int(multiplier), MAX_SPEED))
        logger.info(f"Simulation speed set to {self._speed}x")

    def jump_forward(self, minutes: float) -> None:
        """Move the simulated time by a signed number of minutes, starting simulation if needed."""
        if self.production:
            return
        base = self._simulated if self._simulated is not None else self._clock()
        self.set_simulated_time(shift(base, datetime.timedelta(minutes=minutes)))

    def reset(self) -> None:
        """Go back to the real clock at normal speed."""
        if self.production:
            return
        self._simulated = None
        self._speed = MIN_SPEED
        self._last_manual_set = None
        self._current = self._clock()
        logger.info("Simulation reset to real time")
