"""The "prayer now" holding state and its single expiry timer.

decide_holding() is the pure state machine. HoldingController applies its
decisions and owns the only expiry timer; nothing else may arm or cancel it.
"""

import datetime
import logging
import threading
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from src.prayer_calc import PreviousPrayer, get_prayer_holding_duration, is_within_holding_period

logger = logging.getLogger(__name__)

ARM = "arm"
CANCEL = "cancel"
KEEP = "keep"


class HoldingState(NamedTuple):
    """Which prayer instance is (or was) held. active=False with a prayer set means the window expired."""

    prayer: Optional[str] = None
    iqamah: Optional[datetime.datetime] = None
    expires_at: Optional[datetime.datetime] = None
    active: bool = False


IDLE = HoldingState()


def decide_holding(
    previous: Optional[PreviousPrayer],
    now: datetime.datetime,
    state: HoldingState,
    durations: Optional[Dict[str, datetime.timedelta]] = None,
) -> Tuple[HoldingState, str]:
    """
    Return (new state, timer action) for one evaluation.

    Holding applies while now is in [iqamah, iqamah + duration) of the
    previous prayer. Entering arms the timer; leaving cancels it. A window
    already entered (or already expired by its timer) is left alone.
    """
    within = False
    duration = None
    if previous is not None and previous.iqamah is not None:
        duration = get_prayer_holding_duration(previous.prayer, durations)
        within = is_within_holding_period(previous.iqamah, now, duration)

    if within:
        if state.prayer == previous.prayer and state.iqamah == previous.iqamah:
            return state, KEEP
        return HoldingState(previous.prayer, previous.iqamah, previous.iqamah + duration, True), ARM

    if state.active:
        return IDLE, CANCEL
    return IDLE, KEEP


class ThreadingScheduler:
    """Schedules callbacks on daemon threading.Timer objects."""

    def schedule(self, delay: float, callback: Callable) -> threading.Timer:
        t = threading.Timer(max(delay, 0), callback)
        t.daemon = True
        t.start()
        return t

    def cancel(self, handle: threading.Timer) -> None:
        handle.cancel()


class ExpiryTimer:
    """
    At most one outstanding timer.

    arm() always cancels the previous timer before scheduling a new one;
    cancel() is safe to call when nothing is armed. A timer that fires after
    being replaced does nothing.
    """

    def __init__(self, scheduler=None, lock=None):
        self.scheduler = scheduler or ThreadingScheduler()
        self._lock = lock or threading.RLock()
        self._handle = None
        self._token = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, delay: float, callback: Callable) -> None:
        token = object()

        def fire():
            with self._lock:
                if self._token is not token:
                    return
                self._handle = None
                self._token = None
            callback()

        with self._lock:
            self.cancel()
            self._token = token
            self._handle = self.scheduler.schedule(delay, fire)
        logger.debug(f"Armed holding expiry timer for {delay:.0f}s")

    def cancel(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            self.scheduler.cancel(self._handle)
            self._handle = None
            self._token = None
        logger.debug("Cancelled holding expiry timer")


class HoldingController:
    """Tracks whether the screen shows "prayer now" and owns its expiry timer."""

    def __init__(self, durations=None, scheduler=None, on_expire: Optional[Callable] = None):
        self.durations = durations
        self.on_expire = on_expire
        self._lock = threading.RLock()
        self._timer = ExpiryTimer(scheduler, self._lock)
        self._state = IDLE

    @property
    def state(self) -> HoldingState:
        return self._state

    @property
    def is_holding(self) -> bool:
        return self._state.active

    @property
    def timer_armed(self) -> bool:
        return self._timer.armed

    def update(self, previous: Optional[PreviousPrayer], now: datetime.datetime) -> bool:
        """Re-evaluate for this tick and return whether holding is active. Never raises."""
        with self._lock:
            try:
                new_state, action = decide_holding(previous, now, self._state, self.durations)
                if action == ARM:
                    delay = (new_state.expires_at - now).total_seconds()
                    self._timer.arm(delay, lambda: self._expire(new_state))
                    logger.info(f"Prayer now: {new_state.prayer} until {new_state.expires_at:%H:%M:%S}")
                elif action == CANCEL:
                    self._timer.cancel()
                    logger.info(f"Prayer now ended: {self._state.prayer}")
                self._state = new_state
            except Exception:
                logger.exception("Holding state evaluation failed, falling back to idle")
                self._timer.cancel()
                self._state = IDLE
            return self._state.active

    def remaining(self, now: datetime.datetime) -> Optional[int]:
        """Whole seconds left in the active holding window."""
        state = self._state
        if not state.active:
            return None
        return max(int((state.expires_at - now).total_seconds()), 0)

    def reset(self) -> None:
        """Cancel any armed timer and return to idle."""
        with self._lock:
            self._timer.cancel()
            self._state = IDLE

    def close(self) -> None:
        self.reset()

    def _expire(self, armed_for: HoldingState) -> None:
        with self._lock:
            if self._state != armed_for:
                return
            logger.info(f"Prayer now expired: {self._state.prayer}")
            self._state = self._state._replace(active=False)
        if self.on_expire:
            self.on_expire()
