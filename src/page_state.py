"""Sequence one tick: timeline -> next/previous prayer -> countdown -> holding state.

PrayerPageState produces a read-only PageSnapshot per tick for the screen and
exposes the simulation controls used during development.
"""

import datetime
import logging
from typing import List, NamedTuple, Optional

from src.holding import HoldingController
from src.prayer_calc import (
    Countdown,
    NextPrayer,
    PreviousPrayer,
    compute_countdown,
    find_previous,
    format_friendly_countdown,
    format_time_to_go,
    next_prayer,
)
from src.prayer_times import ATHAN, Timeline
from src.time_source import TimeSource, shift
from src.timeline import TimelineCache

logger = logging.getLogger(__name__)

EVENT_LEAD = datetime.timedelta(seconds=5)
END_OF_DAY = datetime.time(23, 59, 55)


class Evaluation(NamedTuple):
    next_prayer: NextPrayer
    previous_prayer: Optional[PreviousPrayer]
    countdown: Optional[Countdown]


class PageSnapshot(NamedTuple):
    now: datetime.datetime
    timeline: Timeline
    next_prayer: NextPrayer
    previous_prayer: Optional[PreviousPrayer]
    countdown: str
    countdown_mode: Optional[str]
    countdown_target: Optional[datetime.datetime]
    remaining_seconds: Optional[int]
    show_prayer_now: bool
    holding_prayer: Optional[str]
    holding_remaining: str
    has_iqamah: bool
    jumuah1_has_iqamah: bool
    is_simulating: bool
    speed: int


def evaluate(timeline: Timeline, now: datetime.datetime, next_day_fajr: Optional[datetime.datetime] = None) -> Evaluation:
    """Locate the next and previous prayer and the countdown for one instant."""
    view = timeline.tick_view()
    upcoming = next_prayer(view, now)
    previous = find_previous(view, now)
    countdown = compute_countdown(view, upcoming.prayer, now, next_day_fajr)
    return Evaluation(upcoming, previous, countdown)


class PrayerPageState:
    """Holds the time source, the timeline cache and the holding controller for one screen."""

    def __init__(
        self,
        time_source: TimeSource,
        timelines: Optional[TimelineCache] = None,
        holding: Optional[HoldingController] = None,
    ):
        self.time_source = time_source
        self.timelines = timelines if timelines is not None else TimelineCache(time_source.tz)
        self.holding = holding if holding is not None else HoldingController()
        self._date: Optional[datetime.date] = None

    def tick(self) -> PageSnapshot:
        """Advance the time source one tick and evaluate."""
        return self._evaluate(self.time_source.tick())

    def refresh(self) -> PageSnapshot:
        """Evaluate the current instant without advancing time."""
        return self._evaluate(self.time_source.now())

    def next_day_fajr(self, timeline: Timeline) -> Optional[datetime.datetime]:
        """Tomorrow's fajr athan; today's fajr time a day later when tomorrow has no data."""
        tomorrow = self.timelines.get(timeline.date + datetime.timedelta(days=1))
        if tomorrow["fajr"].athan is not None:
            return tomorrow["fajr"].athan
        fajr = timeline["fajr"].athan
        if fajr is None:
            return None
        return shift(fajr, datetime.timedelta(days=1))

    def _evaluate(self, now: datetime.datetime) -> PageSnapshot:
        today = now.date()
        if today != self._date:
            if self._date is not None:
                logger.info(f"Date changed from {self._date} to {today}")
            self._date = today
        timeline = self.timelines.get(today)
        result = evaluate(timeline, now, self.next_day_fajr(timeline))

        show_prayer_now = self.holding.update(result.previous_prayer, now)
        holding_remaining = self.holding.remaining(now)

        countdown = result.countdown
        return PageSnapshot(
            now=now,
            timeline=timeline,
            next_prayer=result.next_prayer,
            previous_prayer=result.previous_prayer,
            # one second of compensation so the display does not skip at second boundaries
            countdown=format_time_to_go(countdown.remaining + 1) if countdown else "",
            countdown_mode=countdown.mode if countdown else None,
            countdown_target=countdown.target if countdown else None,
            remaining_seconds=countdown.remaining if countdown else None,
            show_prayer_now=show_prayer_now,
            holding_prayer=self.holding.state.prayer if show_prayer_now else None,
            holding_remaining=format_friendly_countdown(holding_remaining) if holding_remaining is not None else "",
            has_iqamah=timeline.has_iqamah,
            jumuah1_has_iqamah=timeline.friday_mode,
            is_simulating=self.time_source.is_simulating,
            speed=self.time_source.speed,
        )

    def close(self) -> None:
        """Tear down: no holding timer may outlive the screen."""
        self.holding.close()

    # Developer controls. A manual time change cancels the holding timer
    # before recomputing so a stale timer cannot fire for the old timeline.

    def _manual_change(self, change) -> PageSnapshot:
        if self.time_source.production:
            return self.refresh()
        self.holding.reset()
        change()
        return self.refresh()

    def set_time(self, instant: datetime.datetime) -> PageSnapshot:
        return self._manual_change(lambda: self.time_source.set_simulated_time(instant))

    def set_speed(self, multiplier: int) -> PageSnapshot:
        self.time_source.set_speed(multiplier)
        return self.refresh()

    def jump_forward(self, minutes: float) -> PageSnapshot:
        return self._manual_change(lambda: self.time_source.jump_forward(minutes))

    def reset(self) -> PageSnapshot:
        return self._manual_change(self.time_source.reset)

    def jump_to_prayer(self, prayer: str, leg: str = ATHAN) -> PageSnapshot:
        """Jump to five seconds before a prayer leg of the current day."""
        instant = getattr(self.timelines.get(self.time_source.now().date())[prayer], leg)
        if instant is None:
            return self.refresh()
        return self.set_time(shift(instant, -EVENT_LEAD))

    def jump_to_end_of_day(self) -> PageSnapshot:
        """Jump to 23:59:55 of the current day to watch the date roll over."""
        now = self.time_source.now()
        naive = datetime.datetime.combine(now.date(), END_OF_DAY)
        tz = self.time_source.tz
        return self.set_time(tz.localize(naive) if tz is not None else naive)

    def event_instants(self, date: datetime.date) -> List[datetime.datetime]:
        """Distinct athan/iqamah instants of a day, ascending."""
        instants = []
        for instant, _, _ in self.timelines.get(date).tick_view().events():
            if not instants or instants[-1] != instant:
                instants.append(instant)
        return instants

    def step_event(self, direction: int) -> PageSnapshot:
        """Jump to five seconds before the next (direction > 0) or previous event, crossing days."""
        now = self.time_source.now()
        today = now.date()
        events = self.event_instants(today)
        current = -1
        for index, instant in enumerate(events):
            if now >= instant - EVENT_LEAD:
                current = index
        if direction > 0:
            if current + 1 < len(events):
                target = events[current + 1]
            else:
                upcoming = self.event_instants(today + datetime.timedelta(days=1))
                target = upcoming[0] if upcoming else None
        else:
            if current > 0:
                target = events[current - 1]
            else:
                earlier = self.event_instants(today - datetime.timedelta(days=1))
                target = earlier[-1] if earlier else None
        if target is None:
            return self.refresh()
        return self.set_time(shift(target, -EVENT_LEAD))
