"""Load, validate and look up the yearly athan and iqamah data files.

Data lives in ``<data_dir>/athan/<year>.json`` and ``<data_dir>/iqamah/<year>.json``.
A year is supported when both files exist. Each year is validated once and
cached; a year that fails validation is never cached. Date lookups report a
bad year once and then treat it as having no data until the cache is cleared.
"""

import datetime
import json
import logging
import os
from typing import Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from src.config import DEFAULT_CONFIG
from src.schemas import (
    AthanEntry,
    IqamahEntry,
    format_validation_errors,
    validate_athan_data,
    validate_iqamah_data,
)

logger = logging.getLogger(__name__)

DATA_DIR = DEFAULT_CONFIG["data_dir"]

_athan_cache: Dict[int, Dict[str, AthanEntry]] = {}
_iqamah_cache: Dict[int, Dict[str, IqamahEntry]] = {}
_failed: Set[Tuple[str, int]] = set()


class PrayerDataError(Exception):
    """Raised when prayer data is unavailable or invalid."""

    def __init__(self, message: str, year: Optional[int] = None, data_type: Optional[str] = None):
        super().__init__(message)
        self.year = year
        self.data_type = data_type


def set_data_dir(path: str) -> None:
    """Point the loader at another data directory and drop cached years."""
    global DATA_DIR
    DATA_DIR = path
    clear_cache()


def clear_cache() -> None:
    _athan_cache.clear()
    _iqamah_cache.clear()
    _failed.clear()


def _year_file(data_type: str, year: int) -> str:
    return os.path.join(DATA_DIR, data_type, f"{year}.json")


def get_supported_years() -> List[int]:
    """Years with both an athan and an iqamah file, ascending."""
    years = []
    athan_dir = os.path.join(DATA_DIR, "athan")
    if not os.path.isdir(athan_dir):
        return years
    for name in os.listdir(athan_dir):
        stem, ext = os.path.splitext(name)
        if ext != ".json" or not stem.isdigit():
            continue
        year = int(stem)
        if os.path.isfile(_year_file("iqamah", year)):
            years.append(year)
    return sorted(years)


def is_supported_year(year: int) -> bool:
    return os.path.isfile(_year_file("athan", year)) and os.path.isfile(_year_file("iqamah", year))


def has_data_for_year(year: int) -> bool:
    return is_supported_year(year)


def _load_year(data_type: str, year: int, validate) -> list:
    if not is_supported_year(year):
        supported = ", ".join(str(y) for y in get_supported_years()) or "none"
        raise PrayerDataError(
            f"Unsupported year: {year}. Supported years are: {supported}.", year, data_type
        )
    path = _year_file(data_type, year)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read {data_type} data for {year}: {e}")
        _failed.add((data_type, year))
        raise PrayerDataError(f"Could not read {data_type} data for {year}: {e}", year, data_type) from e
    try:
        return validate(raw)
    except ValidationError as e:
        details = format_validation_errors(e)
        logger.error(f"Invalid {data_type} data for {year}:\n{details}")
        _failed.add((data_type, year))
        raise PrayerDataError(f"Invalid {data_type} data for {year}:\n{details}", year, data_type) from e


def get_athan_data(year: int) -> Dict[str, AthanEntry]:
    """
    Return validated athan entries for a year, keyed by date string.

    Raises PrayerDataError if the year is unsupported or its data is invalid.
    """
    cached = _athan_cache.get(year)
    if cached is not None:
        return cached
    entries = _load_year("athan", year, validate_athan_data)
    by_date = {entry.date: entry for entry in entries}
    _athan_cache[year] = by_date
    _failed.discard(("athan", year))
    return by_date


def get_iqamah_data(year: int) -> Dict[str, IqamahEntry]:
    """
    Return validated iqamah entries for a year, keyed by date string.

    Raises PrayerDataError if the year is unsupported or its data is invalid.
    """
    cached = _iqamah_cache.get(year)
    if cached is not None:
        return cached
    entries = _load_year("iqamah", year, validate_iqamah_data)
    by_date = {entry.date: entry for entry in entries}
    _iqamah_cache[year] = by_date
    _failed.discard(("iqamah", year))
    return by_date


def to_date_string(date) -> str:
    """Accept a date, datetime or 'YYYY-MM-DD' string and return 'YYYY-MM-DD'."""
    if isinstance(date, str):
        return date
    if isinstance(date, datetime.datetime):
        date = date.date()
    return date.isoformat()


def _lookup_year(data_type: str, year: int) -> bool:
    if not is_supported_year(year):
        logger.debug(f"No {data_type} data for unsupported year {year}")
        return False
    if (data_type, year) in _failed:
        logger.debug(f"Skipping {data_type} data for {year}: it failed to load")
        return False
    return True


def find_athan_by_date(date) -> Optional[AthanEntry]:
    """
    Athan entry for a date, or None when the year or date has no data.

    The first lookup in a year whose file is invalid raises PrayerDataError;
    later lookups in that year return None.
    """
    date_str = to_date_string(date)
    year = int(date_str[:4])
    if not _lookup_year("athan", year):
        return None
    return get_athan_data(year).get(date_str)


def find_iqamah_by_date(date) -> Optional[IqamahEntry]:
    """Iqamah entry for a date, or None when the year or date has no data (see find_athan_by_date)."""
    date_str = to_date_string(date)
    year = int(date_str[:4])
    if not _lookup_year("iqamah", year):
        return None
    return get_iqamah_data(year).get(date_str)


def preload() -> List[int]:
    """Validate every supported year up front. Raises PrayerDataError on the first bad file."""
    years = get_supported_years()
    for year in years:
        get_athan_data(year)
        get_iqamah_data(year)
    logger.info(f"Loaded prayer data for years: {years}")
    return years
