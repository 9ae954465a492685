"""Clock and date strings for the screen (Gregorian and Hijri)."""

import datetime
import logging

from hijridate import Gregorian

logger = logging.getLogger(__name__)


def format_clock(now: datetime.datetime) -> str:
    """12-hour clock without AM/PM, e.g. '1:05:09'."""
    return f"{now.hour % 12 or 12}:{now:%M:%S}"


def format_gregorian_date(now: datetime.datetime) -> str:
    """e.g. 'Friday, 16 January 2026'."""
    return f"{now:%A}, {now.day} {now:%B %Y}"


def format_hijri_date(now: datetime.datetime) -> str:
    """Umm al-Qura date, e.g. '27 Rajab 1447 AH'. Empty when outside the supported range."""
    try:
        hijri = Gregorian(now.year, now.month, now.day).to_hijri()
    except (OverflowError, ValueError) as e:
        logger.debug(f"No Hijri date for {now.date()}: {e}")
        return ""
    return f"{hijri.day} {hijri.month_name()} {hijri.year} AH"
