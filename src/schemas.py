"""Validation schemas for the yearly athan and iqamah data files."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class AthanEntry(BaseModel):
    """One day of call-to-prayer times."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: str = Field(pattern=DATE_PATTERN)
    fajr: str = Field(pattern=TIME_PATTERN)
    sunrise: str = Field(pattern=TIME_PATTERN)
    dhuhr: str = Field(pattern=TIME_PATTERN)
    asr: str = Field(pattern=TIME_PATTERN)
    maghrib: str = Field(pattern=TIME_PATTERN)
    isha: str = Field(pattern=TIME_PATTERN)


class IqamahEntry(BaseModel):
    """One day of congregation times. jumuah1/jumuah2 appear on Fridays only."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    date: str = Field(pattern=DATE_PATTERN)
    fajr: str = Field(pattern=TIME_PATTERN)
    dhuhr: str = Field(pattern=TIME_PATTERN)
    asr: str = Field(pattern=TIME_PATTERN)
    isha: str = Field(pattern=TIME_PATTERN)
    jumuah1: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    jumuah2: Optional[str] = Field(default=None, pattern=TIME_PATTERN)


_athan_year = TypeAdapter(List[AthanEntry])
_iqamah_year = TypeAdapter(List[IqamahEntry])


def validate_athan_data(data) -> List[AthanEntry]:
    """Validate a full year of athan entries. Raises pydantic.ValidationError."""
    return _athan_year.validate_python(data)


def validate_iqamah_data(data) -> List[IqamahEntry]:
    """Validate a full year of iqamah entries. Raises pydantic.ValidationError."""
    return _iqamah_year.validate_python(data)


def format_validation_errors(error: ValidationError) -> str:
    """Render every issue of a validation error as '  - path: message' lines."""
    lines = []
    for issue in error.errors():
        path = ".".join(str(part) for part in issue["loc"])
        lines.append(f"  - {path}: {issue['msg']}")
    return "\n".join(lines)
